"""
Error taxonomy for the IS-MCTS core.

Contract violations by the game model are fatal: the search stops with a
diagnostic instead of folding inconsistent data into the tree statistics.
A terminal root is not an error and is reported through SearchResult.status.
"""

from typing import Any


class ISMCTSError(Exception):
    """Base exception for search errors."""

    pass


class GameContractError(ISMCTSError):
    """Raised when the game model breaks its interface contract."""

    def __init__(self, call: str, state: Any, reason: str):
        self.call = call
        self.state = state
        self.reason = reason
        super().__init__(f"{call}() contract violated: {reason} (state={state!r})")


class DuplicateChildError(ISMCTSError):
    """Raised when adding a child for an action that already has one."""

    def __init__(self, node_id: int, action: Any):
        self.node_id = node_id
        self.action = action
        super().__init__(f"Node {node_id} already has a child for action {action!r}")


class NoIterationsCompletedError(ISMCTSError):
    """Raised when the budget ran out before a single iteration completed."""

    pass


class RolloutDepthExceededError(ISMCTSError):
    """Raised when a rollout hits the depth cap without reaching a terminal state."""

    def __init__(self, max_depth: int, state: Any):
        self.max_depth = max_depth
        self.state = state
        super().__init__(
            f"Rollout reached max depth {max_depth} without a terminal state (state={state!r})"
        )
