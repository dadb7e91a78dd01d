"""
Game models for the IS-MCTS search.

This package contains the game model interface and example games:
- GameModel: Protocol every searchable game implements
- Nim: Perfect-information take-away game (standard and misère)
- KuhnPoker: Three-card poker with a hidden opponent card
- toy: Synthetic games with known best moves, used in tests
"""

from ismcts.game.interface import GameModel
from ismcts.game.nim import Nim, NimMove, NimState
from ismcts.game.kuhn_poker import KuhnPoker, KuhnState

__all__ = [
    "GameModel",
    "Nim",
    "NimMove",
    "NimState",
    "KuhnPoker",
    "KuhnState",
]
