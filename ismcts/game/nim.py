"""
Nim, a perfect-information example game.

Two players alternately remove one or more objects from a single heap.
In standard play the player who takes the last object wins; in misère play
that player loses. Rewards are +1 for the winner and -1 for the loser.

With perfect information every determinization is the state itself, so
IS-MCTS behaves like plain UCT here. Useful as a sanity check and a demo
opponent.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

import numpy as np


STANDARD = 'standard'
MISERE = 'misere'


@dataclass(frozen=True)
class NimMove:
    """Take ``amount`` objects from heap ``heap`` (0-indexed)."""

    heap: int
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}@{self.heap}"


@dataclass(frozen=True)
class NimState:
    """
    Attributes:
        heaps: Objects left in each heap
        player_to_move: 0 or 1
    """

    heaps: Tuple[int, ...]
    player_to_move: int = 0


class Nim:
    """
    Game model for Nim.

    Attributes:
        mode: 'standard' or 'misere'
    """

    def __init__(self, mode: str = STANDARD):
        if mode not in (STANDARD, MISERE):
            raise ValueError(f"mode must be '{STANDARD}' or '{MISERE}', got {mode}")
        self.mode = mode

    def initial_state(self, heaps=(3, 4, 5), player_to_move: int = 0) -> NimState:
        return NimState(heaps=tuple(heaps), player_to_move=player_to_move)

    def legal_actions(self, state: NimState) -> List[NimMove]:
        return [
            NimMove(heap, amount)
            for heap, size in enumerate(state.heaps)
            for amount in range(1, size + 1)
        ]

    def apply(self, state: NimState, action: NimMove) -> NimState:
        if not 0 <= action.heap < len(state.heaps):
            raise ValueError(f"Heap {action.heap} out of range")
        if not 1 <= action.amount <= state.heaps[action.heap]:
            raise ValueError(
                f"Cannot take {action.amount} from heap of {state.heaps[action.heap]}"
            )
        heaps = list(state.heaps)
        heaps[action.heap] -= action.amount
        return replace(state, heaps=tuple(heaps), player_to_move=1 - state.player_to_move)

    def is_terminal(self, state: NimState) -> bool:
        return not any(state.heaps)

    def reward(self, state: NimState) -> Dict[int, float]:
        # Turn already passed, so the player who took last is the other one
        took_last = 1 - state.player_to_move
        winner = took_last if self.mode == STANDARD else state.player_to_move
        return {winner: 1.0, 1 - winner: -1.0}

    def information_set_key(self, state: NimState, player: int) -> Tuple:
        return (state.heaps, state.player_to_move)

    def sample_determinization(
        self, state: NimState, observer: int, rng: np.random.Generator
    ) -> NimState:
        # No-op, perfect information
        return state

    def acting_player(self, state: NimState) -> int:
        return state.player_to_move

    def nim_sum(self, state: NimState) -> int:
        """XOR of heap sizes; zero means the player to move loses standard Nim."""
        value = 0
        for size in state.heaps:
            value ^= size
        return value
