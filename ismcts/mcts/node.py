"""
Search tree for Information-Set MCTS.

This module implements the tree structure for IS-MCTS: nodes represent
information sets of the acting player rather than concrete game states,
children are keyed by action, and every node keeps per-action availability
counts alongside the usual visit and reward statistics.

Architecture Note:
    Nodes live in an arena (SearchTree.nodes) and refer to their children by
    integer id. There are no parent pointers; backpropagation walks the path
    recorded during the iteration. The tree only grows: nodes are appended
    and never removed or merged.

Statistics invariants (hold after every completed iteration):
    action.visit_count <= action.availability_count <= node.visit_count
    sum(child.visit_count for child in children) <= node.visit_count
"""

from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterator, List, Optional, Sequence
import logging
import math
import threading

from ismcts.mcts.exceptions import DuplicateChildError

logger = logging.getLogger(__name__)


@dataclass
class ActionStats:
    """
    Per-action statistics stored at a node.

    Attributes:
        visit_count: Iterations that chose this action at the node
        availability_count: Iterations in which this action was legal at the node
        total_reward: Sum of the acting player's rewards over iterations
                      that chose this action
    """

    visit_count: int = 0
    availability_count: int = 0
    total_reward: float = 0.0

    @property
    def mean_reward(self) -> float:
        if self.visit_count == 0:
            return 0.0
        return self.total_reward / self.visit_count


@dataclass(frozen=True)
class ActionSummary:
    """Read-only view of one action's statistics, used for diagnostics."""

    visits: int
    availability: int
    mean_reward: float


class TreeNode:
    """
    One information set for one acting player.

    Attributes:
        node_id: Index of this node in the tree arena
        info_key: Information-set key of the acting player when the node was created
        acting_player: Player whose decision this node represents
        action_taken: Action that led here from the parent (None for root)
        visit_count: Completed iterations that passed through this node
        total_reward: Per-player sum of terminal rewards seen through this node
        children: Mapping action -> child node id
        action_stats: Mapping action -> ActionStats, in first-seen order
        lock: Guards the counters when several threads share the tree
    """

    def __init__(
        self,
        node_id: int,
        info_key: Hashable,
        acting_player: Hashable,
        action_taken: Optional[Hashable] = None,
    ):
        self.node_id = node_id
        self.info_key = info_key
        self.acting_player = acting_player
        self.action_taken = action_taken

        self.visit_count = 0
        self.total_reward: Dict[Hashable, float] = {}

        self.children: Dict[Hashable, int] = {}
        self.action_stats: Dict[Hashable, ActionStats] = {}

        self.lock = threading.Lock()

    def is_leaf(self) -> bool:
        """True if no child has been created yet."""
        return not self.children

    def stats_for(self, action: Hashable) -> ActionStats:
        """Return the statistics record for ``action``, creating it on first sight."""
        stats = self.action_stats.get(action)
        if stats is None:
            stats = ActionStats()
            self.action_stats[action] = stats
        return stats

    def record_availability(self, legal_actions: Sequence[Hashable]) -> None:
        """
        Count one availability for every action legal in this determinization.

        Called once per iteration that reaches this node, before the action
        is chosen, so unchosen legal actions are counted as well.
        """
        with self.lock:
            for action in legal_actions:
                self.stats_for(action).availability_count += 1

    def untried_actions(self, legal_actions: Sequence[Hashable]) -> List[Hashable]:
        """Return the legal actions that have no child yet, in legal order."""
        return [a for a in legal_actions if a not in self.children]

    def mean_reward(self, action: Hashable) -> float:
        """Average reward of the acting player over iterations that chose ``action``."""
        stats = self.action_stats.get(action)
        return stats.mean_reward if stats is not None else 0.0

    def ucb_score(self, action: Hashable, exploration: float) -> float:
        """
        Availability-corrected UCB1 score.

        score(a) = mean_reward(a) + C * sqrt(ln(availability(a)) / visits(a))

        The exploration term uses the number of iterations in which the
        action was available instead of the parent's visit count, so actions
        that are often illegal in sampled determinizations are not mistaken
        for under-explored ones.

        Args:
            action: Action to score
            exploration: Exploration constant C

        Returns:
            UCB score; infinite for an action that has never been chosen
        """
        stats = self.action_stats.get(action)
        if stats is None or stats.visit_count == 0:
            return math.inf
        exploration_term = math.sqrt(
            math.log(stats.availability_count) / stats.visit_count
        )
        return stats.mean_reward + exploration * exploration_term

    def select_action(
        self, legal_actions: Sequence[Hashable], exploration: float
    ) -> Hashable:
        """
        Choose the legal action with the highest UCB score.

        Ties go to the action that comes first in ``legal_actions``.

        Raises:
            ValueError: If legal_actions is empty
        """
        if not legal_actions:
            raise ValueError("Cannot select action: no legal actions provided")

        best_score = -math.inf
        best_action = None
        with self.lock:
            for action in legal_actions:
                score = self.ucb_score(action, exploration)
                if best_action is None or score > best_score:
                    best_score = score
                    best_action = action

        return best_action

    def update(
        self,
        action: Optional[Hashable],
        rewards: Dict[Hashable, float],
    ) -> None:
        """
        Backpropagation step for this node.

        Args:
            action: Action chosen at this node in the iteration (None for the
                    last node of the path)
            rewards: Terminal reward of every player
        """
        with self.lock:
            self.visit_count += 1
            for player, value in rewards.items():
                self.total_reward[player] = self.total_reward.get(player, 0.0) + value
            if action is not None:
                stats = self.stats_for(action)
                stats.visit_count += 1
                stats.total_reward += rewards[self.acting_player]

    def summary(self) -> Dict[Hashable, ActionSummary]:
        """Statistics of every expanded action, in first-seen order."""
        with self.lock:
            return {
                action: ActionSummary(
                    visits=stats.visit_count,
                    availability=stats.availability_count,
                    mean_reward=stats.mean_reward,
                )
                for action, stats in self.action_stats.items()
                if action in self.children
            }

    def __repr__(self) -> str:
        return (
            f"TreeNode(id={self.node_id}, action={self.action_taken!r}, "
            f"player={self.acting_player!r}, visits={self.visit_count}, "
            f"children={len(self.children)})"
        )


class SearchTree:
    """
    Arena of TreeNodes rooted at one information set.

    Nodes are addressed by stable integer ids. All mutation is append-only.

    Example:
        >>> tree = SearchTree()
        >>> root = tree.get_or_create_root(("K", ()), "first")
        >>> child = tree.add_child(root, "bet", "second", ("?", ("bet",)))
        >>> tree.child_for(root, "bet") is child
        True
    """

    def __init__(self):
        self.nodes: List[TreeNode] = []
        self.root_id: Optional[int] = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(self.nodes)

    @property
    def root(self) -> TreeNode:
        if self.root_id is None:
            raise ValueError("Tree has no root")
        return self.nodes[self.root_id]

    def node(self, node_id: int) -> TreeNode:
        return self.nodes[node_id]

    def _append(
        self,
        info_key: Hashable,
        acting_player: Hashable,
        action_taken: Optional[Hashable] = None,
    ) -> TreeNode:
        node = TreeNode(len(self.nodes), info_key, acting_player, action_taken)
        self.nodes.append(node)
        return node

    def get_or_create_root(self, info_key: Hashable, acting_player: Hashable) -> TreeNode:
        """
        Return the root for ``info_key``, creating it on an empty tree.

        Raises:
            ValueError: If the tree is rooted at a different information set
        """
        with self._lock:
            if self.root_id is None:
                self.root_id = self._append(info_key, acting_player).node_id
                return self.nodes[self.root_id]

        root = self.root
        if root.info_key != info_key or root.acting_player != acting_player:
            raise ValueError(
                f"Tree is rooted at {root.info_key!r} for {root.acting_player!r}, "
                f"not {info_key!r} for {acting_player!r}"
            )
        return root

    def child_for(self, node: TreeNode, action: Hashable) -> Optional[TreeNode]:
        """Return the child reached by ``action``, or None if not expanded."""
        child_id = node.children.get(action)
        return self.nodes[child_id] if child_id is not None else None

    def add_child(
        self,
        node: TreeNode,
        action: Hashable,
        acting_player: Hashable,
        info_key: Hashable = None,
    ) -> TreeNode:
        """
        Create the child of ``node`` reached by ``action``.

        Raises:
            DuplicateChildError: If ``node`` already has a child for ``action``
        """
        with self._lock:
            return self._add_child_locked(node, action, acting_player, info_key)

    def ensure_child(
        self,
        node: TreeNode,
        action: Hashable,
        acting_player: Hashable,
        info_key: Hashable = None,
    ) -> TreeNode:
        """Atomic check-then-add used when several threads grow the tree."""
        with self._lock:
            child_id = node.children.get(action)
            if child_id is not None:
                return self.nodes[child_id]
            return self._add_child_locked(node, action, acting_player, info_key)

    def _add_child_locked(
        self,
        node: TreeNode,
        action: Hashable,
        acting_player: Hashable,
        info_key: Hashable,
    ) -> TreeNode:
        if action in node.children:
            raise DuplicateChildError(node.node_id, action)
        child = self._append(info_key, acting_player, action)
        node.children[action] = child.node_id
        return child

    def total_visits(self) -> int:
        """Sum of visit counts over the root's children."""
        if self.root_id is None:
            return 0
        return sum(self.nodes[c].visit_count for c in self.root.children.values())

    def max_visits(self) -> int:
        """Largest visit count among the root's children."""
        if self.root_id is None:
            return 0
        return max(
            (self.nodes[c].visit_count for c in self.root.children.values()),
            default=0,
        )

    def subtree(self, *actions: Hashable) -> "SearchTree":
        """
        Copy the subtree reached by following ``actions`` from the root.

        The returned tree is independent of this one: nodes are re-indexed
        and statistics are copied.

        Args:
            *actions: Actions to follow from the root

        Returns:
            New SearchTree rooted at the reached node

        Raises:
            KeyError: If one of the actions was never expanded
        """
        node = self.root
        for action in actions:
            child = self.child_for(node, action)
            if child is None:
                raise KeyError(f"Action {action!r} was never expanded at node {node.node_id}")
            node = child

        new_tree = SearchTree()
        new_tree.root_id = new_tree._copy_from(self, node, action_taken=None)
        return new_tree

    def _copy_from(
        self,
        source: "SearchTree",
        source_node: TreeNode,
        action_taken: Optional[Hashable],
    ) -> int:
        copy = self._append(source_node.info_key, source_node.acting_player, action_taken)
        copy.visit_count = source_node.visit_count
        copy.total_reward = dict(source_node.total_reward)
        copy.action_stats = {
            action: ActionStats(s.visit_count, s.availability_count, s.total_reward)
            for action, s in source_node.action_stats.items()
        }
        for action, child_id in source_node.children.items():
            copy.children[action] = self._copy_from(source, source.nodes[child_id], action)
        return copy.node_id

    def debug_children(self, exploration: float = math.sqrt(2)) -> None:
        """Log the root's action statistics, most visited last."""
        summary = self.root.summary()
        for action, stats in sorted(summary.items(), key=lambda item: item[1].visits):
            logger.debug(
                "action=%r visits=%d availability=%d mean=%.3f ucb=%.3f",
                action,
                stats.visits,
                stats.availability,
                stats.mean_reward,
                self.root.ucb_score(action, exploration),
            )

    def debug_path(self, exploration: float = math.sqrt(2)) -> List[Hashable]:
        """
        Log the UCB descent from the root through expanded children.

        At each node the expanded action with the highest UCB score is
        followed, as selection would when every expanded action is legal.

        Returns:
            Actions along the traced path
        """
        actions: List[Hashable] = []
        node = self.root
        while node.children:
            action = node.select_action(list(node.children), exploration)
            stats = node.action_stats.get(action)
            logger.debug(
                "depth=%d node=%d player=%r action=%r visits=%d ucb=%.3f",
                len(actions),
                node.node_id,
                node.acting_player,
                action,
                stats.visit_count if stats is not None else 0,
                node.ucb_score(action, exploration),
            )
            actions.append(action)
            node = self.nodes[node.children[action]]
        return actions

    def __repr__(self) -> str:
        return f"SearchTree(nodes={len(self.nodes)}, root_visits={self.root.visit_count if self.root_id is not None else 0})"
