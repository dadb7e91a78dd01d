"""
Small synthetic games with known answers.

    SingleDecisionGame      one player, one move: A pays 1, B pays 0
    HiddenAvailabilityGame  one information set over two equally likely
                            hidden states; A is legal only in the first,
                            B only in the second
    NoisyBanditGame         one move among arms with different win
                            probabilities; the coin flips are hidden and
                            drawn during determinization
    TenMoveGame             two players, two moves from 0-9 each; a player
                            scores 1 if the last move equals its id
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


class SingleDecisionGame:
    """Full-information, single-player, single-decision game."""

    PAYOFFS = {'A': 1.0, 'B': 0.0}

    def initial_state(self) -> Tuple[str, ...]:
        return ()

    def legal_actions(self, state: Tuple[str, ...]) -> List[str]:
        return [] if state else list(self.PAYOFFS)

    def apply(self, state: Tuple[str, ...], action: str) -> Tuple[str, ...]:
        return state + (action,)

    def is_terminal(self, state: Tuple[str, ...]) -> bool:
        return len(state) == 1

    def reward(self, state: Tuple[str, ...]) -> Dict[int, float]:
        return {0: self.PAYOFFS[state[0]]}

    def information_set_key(self, state: Tuple[str, ...], player: int) -> Tuple[str, ...]:
        return state

    def sample_determinization(self, state, observer, rng):
        return state

    def acting_player(self, state: Tuple[str, ...]) -> int:
        return 0


@dataclass(frozen=True)
class HiddenState:
    """
    Attributes:
        hidden: 1 or 2, or None in the player's view
        history: Actions taken
    """

    hidden: Optional[int] = None
    history: Tuple[str, ...] = ()


class HiddenAvailabilityGame:
    """
    One decision whose legal actions depend on a hidden coin.

    Each hidden value has probability 0.5; A is legal only when hidden == 1,
    B only when hidden == 2. The player's information set does not include
    the coin, so both determinizations share the root node.
    """

    REWARDS = {'A': 1.0, 'B': 0.5}

    def initial_state(self) -> HiddenState:
        return HiddenState()

    def legal_actions(self, state: HiddenState) -> List[str]:
        if state.history:
            return []
        return ['A'] if state.hidden == 1 else ['B']

    def apply(self, state: HiddenState, action: str) -> HiddenState:
        return replace(state, history=state.history + (action,))

    def is_terminal(self, state: HiddenState) -> bool:
        return len(state.history) == 1

    def reward(self, state: HiddenState) -> Dict[int, float]:
        return {0: self.REWARDS[state.history[0]]}

    def information_set_key(self, state: HiddenState, player: int) -> Tuple[str, ...]:
        return state.history

    def sample_determinization(
        self, state: HiddenState, observer: int, rng: np.random.Generator
    ) -> HiddenState:
        return replace(state, hidden=int(rng.integers(1, 3)))

    def acting_player(self, state: HiddenState) -> int:
        return 0


@dataclass(frozen=True)
class BanditState:
    """
    Attributes:
        coin: Uniform draw in [0, 1) deciding the outcome, None when unseen
        history: Arm pulled, if any
    """

    coin: Optional[float] = None
    history: Tuple[str, ...] = ()


class NoisyBanditGame:
    """
    Pull one arm; win 1 with the arm's probability, else 0.

    The best arm is the one with the highest win probability, so it is the
    dominant move in expectation even though single outcomes are noisy.
    """

    def __init__(self, win_probabilities: Optional[Dict[str, float]] = None):
        self.win_probabilities = win_probabilities or {'a': 0.2, 'b': 0.5, 'c': 0.8}

    @property
    def best_arm(self) -> str:
        return max(self.win_probabilities, key=self.win_probabilities.get)

    def initial_state(self) -> BanditState:
        return BanditState()

    def legal_actions(self, state: BanditState) -> List[str]:
        return [] if state.history else list(self.win_probabilities)

    def apply(self, state: BanditState, action: str) -> BanditState:
        return replace(state, history=(action,))

    def is_terminal(self, state: BanditState) -> bool:
        return bool(state.history)

    def reward(self, state: BanditState) -> Dict[int, float]:
        won = state.coin < self.win_probabilities[state.history[0]]
        return {0: 1.0 if won else 0.0}

    def information_set_key(self, state: BanditState, player: int) -> Tuple[str, ...]:
        return state.history

    def sample_determinization(
        self, state: BanditState, observer: int, rng: np.random.Generator
    ) -> BanditState:
        return replace(state, coin=float(rng.random()))

    def acting_player(self, state: BanditState) -> int:
        return 0


class TenMoveGame:
    """Two players alternate picking 0-9; player p scores 1 if the last pick is p."""

    TOTAL_TURNS = 2

    def initial_state(self) -> Tuple[int, ...]:
        return ()

    def legal_actions(self, state: Sequence[int]) -> List[int]:
        return [] if self.is_terminal(state) else list(range(10))

    def apply(self, state: Tuple[int, ...], action: int) -> Tuple[int, ...]:
        return state + (action,)

    def is_terminal(self, state: Sequence[int]) -> bool:
        return len(state) >= self.TOTAL_TURNS

    def reward(self, state: Sequence[int]) -> Dict[int, float]:
        return {player: 1.0 if state[-1] == player else 0.0 for player in (0, 1)}

    def information_set_key(self, state: Tuple[int, ...], player: int) -> Tuple[int, ...]:
        return state

    def sample_determinization(self, state, observer, rng):
        return state

    def acting_player(self, state: Sequence[int]) -> int:
        return len(state) % 2
