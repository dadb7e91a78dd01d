"""
Information-Set Monte Carlo Tree Search (IS-MCTS).

This module provides the search core for games with hidden information:
- SearchTree / TreeNode: Tree keyed by information sets, with per-action
  visit and availability statistics
- DeterminizationSampler: Samples concrete states from the root information set
- ISMCTS: Four-phase search loop and root decision extraction
- UniformRandomPolicy: Default rollout policy

The implementation uses:
- Availability-corrected UCB1 selection
- Single-node expansion per iteration
- Visit-count based root decision (first-seen tie-break)
- Optional root-parallel or shared-tree parallel search

Example:
    >>> from ismcts.config import SearchConfig
    >>> from ismcts.game.kuhn_poker import KuhnPoker
    >>> from ismcts.mcts import ISMCTS
    >>>
    >>> game = KuhnPoker()
    >>> state = game.initial_state("Q", "J").view(0)
    >>> result = ISMCTS(game, SearchConfig(iterations=1000, seed=3)).search(state)
    >>> print(result.format_table())
"""

from ismcts.mcts.node import ActionStats, ActionSummary, TreeNode, SearchTree
from ismcts.mcts.determinization import DeterminizationSampler
from ismcts.mcts.policy import RolloutPolicy, UniformRandomPolicy, FunctionPolicy
from ismcts.mcts.search import ISMCTS, SearchResult, SearchStatus
from ismcts.mcts.exceptions import (
    ISMCTSError,
    GameContractError,
    DuplicateChildError,
    NoIterationsCompletedError,
    RolloutDepthExceededError,
)

__all__ = [
    "ActionStats",
    "ActionSummary",
    "TreeNode",
    "SearchTree",
    "DeterminizationSampler",
    "RolloutPolicy",
    "UniformRandomPolicy",
    "FunctionPolicy",
    "ISMCTS",
    "SearchResult",
    "SearchStatus",
    "ISMCTSError",
    "GameContractError",
    "DuplicateChildError",
    "NoIterationsCompletedError",
    "RolloutDepthExceededError",
]
