"""
Game model interface consumed by the IS-MCTS core.

The search only ever talks to a game through the methods below. States,
actions and players are opaque to the core; it hashes actions and players
(dictionary keys) and compares information-set keys with ``==``.

Any object implementing these methods can be searched; games do not need
to inherit from GameModel (structural subtyping).
"""

from typing import Any, Hashable, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np


State = Any
Action = Hashable
PlayerId = Hashable
InfoSetKey = Hashable


@runtime_checkable
class GameModel(Protocol):
    """Rules, observations and determinization sampling for one game."""

    def legal_actions(self, state: State) -> Sequence[Action]:
        """
        Return the legal actions at ``state`` in a stable order.

        Must be non-empty for every non-terminal state. The order is used
        for deterministic tie-breaking.
        """
        ...

    def apply(self, state: State, action: Action) -> State:
        """Return the successor state. Must not mutate ``state``."""
        ...

    def is_terminal(self, state: State) -> bool:
        """Return True when the game is over."""
        ...

    def reward(self, state: State) -> Mapping[PlayerId, float]:
        """Return the reward of every player. Only called on terminal states."""
        ...

    def information_set_key(self, state: State, player: PlayerId) -> InfoSetKey:
        """
        Return everything ``player`` has observed at ``state``.

        Two states that ``player`` cannot tell apart must map to equal keys.
        """
        ...

    def sample_determinization(
        self, state: State, observer: PlayerId, rng: np.random.Generator
    ) -> State:
        """
        Sample a concrete state from ``observer``'s information set.

        Args:
            state: Any state in the observer's information set. Hidden parts
                may hold placeholder values.
            observer: Player whose information set is sampled
            rng: Generator to draw hidden information from

        Returns:
            A fully specified state whose information_set_key for
            ``observer`` equals that of ``state``.
        """
        ...

    def acting_player(self, state: State) -> PlayerId:
        """Return the player to move at a non-terminal state."""
        ...
