"""
Tests for the IS-MCTS search tree.

Tests cover:
- ActionStats and TreeNode initialization
- Availability counting
- Availability-corrected UCB scores and tie-breaking
- Backpropagation updates
- SearchTree arena operations (root, children, duplicates)
- Subtree copies for tree reuse
"""

import logging
import math

import pytest

from ismcts.mcts.exceptions import DuplicateChildError
from ismcts.mcts.node import ActionStats, ActionSummary, SearchTree, TreeNode


class TestTreeNodeBasics:
    """Test basic node state."""

    def test_node_initialization(self):
        """Test node initializes with empty statistics."""
        node = TreeNode(0, ("K", ()), 0)

        assert node.node_id == 0
        assert node.info_key == ("K", ())
        assert node.acting_player == 0
        assert node.action_taken is None
        assert node.visit_count == 0
        assert node.total_reward == {}
        assert node.children == {}
        assert node.action_stats == {}
        assert node.is_leaf() is True

    def test_action_stats_mean_reward(self):
        """Test mean reward is zero before any visit."""
        stats = ActionStats()
        assert stats.mean_reward == 0.0

        stats = ActionStats(visit_count=4, availability_count=6, total_reward=3.0)
        assert stats.mean_reward == 0.75

    def test_node_mean_reward_per_action(self):
        """Test per-action mean reward, zero for unknown actions."""
        node = TreeNode(0, None, 0)
        node.action_stats["a"] = ActionStats(visit_count=2, availability_count=2, total_reward=3.0)

        assert node.mean_reward("a") == 1.5
        assert node.mean_reward("b") == 0.0

    def test_node_repr(self):
        """Test string representation."""
        node = TreeNode(3, "key", "first", action_taken="bet")
        node.visit_count = 10

        repr_str = repr(node)
        assert "id=3" in repr_str
        assert "action='bet'" in repr_str
        assert "visits=10" in repr_str


class TestAvailability:
    """Test availability counting."""

    def test_record_availability_counts_every_legal_action(self):
        """Test all legal actions are counted, chosen or not."""
        node = TreeNode(0, None, 0)

        node.record_availability(["a", "b"])
        node.record_availability(["b", "c"])

        assert node.action_stats["a"].availability_count == 1
        assert node.action_stats["b"].availability_count == 2
        assert node.action_stats["c"].availability_count == 1
        assert all(s.visit_count == 0 for s in node.action_stats.values())

    def test_action_stats_keep_first_seen_order(self):
        """Test statistics are stored in the order actions were first legal."""
        node = TreeNode(0, None, 0)

        node.record_availability(["b", "a"])
        node.record_availability(["c", "a"])

        assert list(node.action_stats) == ["b", "a", "c"]

    def test_untried_actions(self):
        """Test untried actions are legal actions without a child."""
        tree = SearchTree()
        root = tree.get_or_create_root("root", 0)
        tree.add_child(root, "b", 1)

        assert root.untried_actions(["a", "b", "c"]) == ["a", "c"]
        assert root.untried_actions(["b"]) == []


class TestUCBSelection:
    """Test availability-corrected UCB selection."""

    def test_ucb_score_uses_availability(self):
        """Test the exploration term uses availability, not parent visits."""
        node = TreeNode(0, None, 0)
        node.visit_count = 100
        node.action_stats["a"] = ActionStats(visit_count=4, availability_count=10, total_reward=2.0)

        expected = 0.5 + math.sqrt(2) * math.sqrt(math.log(10) / 4)
        assert node.ucb_score("a", math.sqrt(2)) == pytest.approx(expected)

    def test_ucb_score_unvisited_is_infinite(self):
        """Test an action never chosen scores infinity."""
        node = TreeNode(0, None, 0)
        node.record_availability(["a"])

        assert node.ucb_score("a", 1.0) == math.inf
        assert node.ucb_score("never-seen", 1.0) == math.inf

    def test_rarely_available_action_not_over_explored(self):
        """Test a rarely available action gets a smaller bonus than with parent visits."""
        node = TreeNode(0, None, 0)
        node.visit_count = 1000
        node.action_stats["rare"] = ActionStats(visit_count=5, availability_count=6, total_reward=2.5)

        corrected = node.ucb_score("rare", 1.0)
        classical = 0.5 + math.sqrt(math.log(1000) / 5)
        assert corrected < classical

    def test_select_action_picks_highest_score(self):
        """Test select_action returns the best scoring legal action."""
        node = TreeNode(0, None, 0)
        node.action_stats["a"] = ActionStats(visit_count=10, availability_count=20, total_reward=2.0)
        node.action_stats["b"] = ActionStats(visit_count=10, availability_count=20, total_reward=9.0)

        assert node.select_action(["a", "b"], exploration=0.5) == "b"

    def test_select_action_ignores_illegal_actions(self):
        """Test only actions legal in this determinization are considered."""
        node = TreeNode(0, None, 0)
        node.action_stats["a"] = ActionStats(visit_count=10, availability_count=20, total_reward=2.0)
        node.action_stats["b"] = ActionStats(visit_count=10, availability_count=20, total_reward=9.0)

        assert node.select_action(["a"], exploration=0.5) == "a"

    def test_select_action_tie_goes_to_first_legal(self):
        """Test ties are broken by legal-action order."""
        node = TreeNode(0, None, 0)
        node.action_stats["a"] = ActionStats(visit_count=3, availability_count=6, total_reward=1.5)
        node.action_stats["b"] = ActionStats(visit_count=3, availability_count=6, total_reward=1.5)

        assert node.select_action(["a", "b"], exploration=1.0) == "a"
        assert node.select_action(["b", "a"], exploration=1.0) == "b"

    def test_select_action_with_empty_actions_raises(self):
        """Test select_action raises ValueError with no legal actions."""
        node = TreeNode(0, None, 0)

        with pytest.raises(ValueError, match="no legal actions"):
            node.select_action([], exploration=1.0)


class TestBackpropagationUpdate:
    """Test node updates during backpropagation."""

    def test_update_with_action(self):
        """Test update counts the visit and the acting player's reward."""
        node = TreeNode(0, None, 1)
        node.record_availability(["x", "y"])

        node.update("x", {0: -1.0, 1: 1.0})

        assert node.visit_count == 1
        assert node.total_reward == {0: -1.0, 1: 1.0}
        assert node.action_stats["x"].visit_count == 1
        assert node.action_stats["x"].total_reward == 1.0
        assert node.action_stats["x"].availability_count == 1
        assert node.action_stats["y"].visit_count == 0

    def test_update_leaf_without_action(self):
        """Test the last node of a path only counts the visit and rewards."""
        node = TreeNode(0, None, None)

        node.update(None, {0: 2.0})
        node.update(None, {0: 1.0})

        assert node.visit_count == 2
        assert node.total_reward == {0: 3.0}
        assert node.action_stats == {}

    def test_summary_lists_expanded_actions_only(self):
        """Test summary skips actions that were available but never expanded."""
        tree = SearchTree()
        root = tree.get_or_create_root("root", 0)
        root.record_availability(["a", "b"])
        tree.add_child(root, "a", 0)
        root.update("a", {0: 1.0})

        summary = root.summary()
        assert list(summary) == ["a"]
        assert summary["a"] == ActionSummary(visits=1, availability=1, mean_reward=1.0)


class TestSearchTree:
    """Test the node arena."""

    def test_get_or_create_root(self):
        """Test root is created once and then returned."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)

        assert len(tree) == 1
        assert tree.root is root
        assert tree.get_or_create_root("key", 0) is root
        assert len(tree) == 1

    def test_get_or_create_root_rejects_other_information_set(self):
        """Test a tree cannot be re-rooted at a different key."""
        tree = SearchTree()
        tree.get_or_create_root("key", 0)

        with pytest.raises(ValueError, match="rooted at"):
            tree.get_or_create_root("other", 0)

    def test_root_of_empty_tree_raises(self):
        """Test accessing the root of an empty tree fails."""
        with pytest.raises(ValueError, match="no root"):
            SearchTree().root

    def test_add_child_and_child_for(self):
        """Test children are addressed by action."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)

        child = tree.add_child(root, "bet", 1, "child-key")

        assert tree.child_for(root, "bet") is child
        assert tree.child_for(root, "check") is None
        assert child.action_taken == "bet"
        assert child.acting_player == 1
        assert child.info_key == "child-key"
        assert tree.node(child.node_id) is child
        assert root.is_leaf() is False

    def test_add_child_twice_raises(self):
        """Test adding a duplicate child raises DuplicateChildError."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)
        tree.add_child(root, "bet", 1)

        with pytest.raises(DuplicateChildError):
            tree.add_child(root, "bet", 1)
        assert len(tree) == 2

    def test_ensure_child_is_idempotent(self):
        """Test ensure_child returns the existing child."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)

        first = tree.ensure_child(root, "bet", 1)
        second = tree.ensure_child(root, "bet", 1)

        assert first is second
        assert len(tree) == 2

    def test_total_and_max_visits(self):
        """Test root visit totals over children."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)
        assert tree.total_visits() == 0
        assert tree.max_visits() == 0

        a = tree.add_child(root, "a", 0)
        b = tree.add_child(root, "b", 0)
        a.visit_count = 3
        b.visit_count = 5

        assert tree.total_visits() == 8
        assert tree.max_visits() == 5

    def test_debug_children_logs_root_actions(self, caplog):
        """Test the debug dump lists every expanded root action."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)
        root.record_availability(["a", "b"])
        tree.add_child(root, "a", 0)
        root.update("a", {0: 1.0})

        with caplog.at_level(logging.DEBUG, logger="ismcts.mcts.node"):
            tree.debug_children()

        assert "action='a'" in caplog.text
        assert "action='b'" not in caplog.text

    def test_debug_path_follows_best_ucb_child(self, caplog):
        """Test the traced descent picks the highest scoring child at each level."""
        tree = SearchTree()
        root = tree.get_or_create_root("key", 0)
        for _ in range(2):
            root.record_availability(["a", "b"])
        a = tree.add_child(root, "a", 0)
        tree.add_child(root, "b", 0)
        root.update("a", {0: 1.0})
        root.update("b", {0: 0.0})
        a.record_availability(["x"])
        tree.add_child(a, "x", 0)
        a.update("x", {0: 1.0})

        with caplog.at_level(logging.DEBUG, logger="ismcts.mcts.node"):
            path = tree.debug_path()

        assert path == ["a", "x"]
        assert "depth=0" in caplog.text
        assert "depth=1" in caplog.text

    def test_debug_path_of_bare_root_is_empty(self):
        """Test a root without children gives an empty trace."""
        tree = SearchTree()
        tree.get_or_create_root("key", 0)

        assert tree.debug_path() == []


class TestSubtree:
    """Test subtree copies used for tree reuse."""

    def _build(self):
        tree = SearchTree()
        root = tree.get_or_create_root("root", 0)
        root.record_availability(["a", "b"])
        a = tree.add_child(root, "a", 1, "a-key")
        tree.add_child(root, "b", 1, "b-key")
        a.record_availability(["x"])
        ax = tree.add_child(a, "x", 0, "ax-key")
        for _ in range(3):
            ax.update(None, {0: 1.0, 1: 0.0})
            a.update("x", {0: 1.0, 1: 0.0})
            root.update("a", {0: 1.0, 1: 0.0})
        return tree

    def test_subtree_copies_statistics(self):
        """Test the new root carries the old node's statistics and children."""
        tree = self._build()

        sub = tree.subtree("a")

        assert len(sub) == 2
        assert sub.root.info_key == "a-key"
        assert sub.root.action_taken is None
        assert sub.root.visit_count == 3
        assert sub.root.action_stats["x"] == ActionStats(3, 1, 0.0)
        assert sub.child_for(sub.root, "x").visit_count == 3

    def test_subtree_is_independent(self):
        """Test updates to the copy do not touch the original."""
        tree = self._build()
        sub = tree.subtree("a")

        sub.root.update("x", {0: 0.0, 1: 1.0})

        assert sub.root.visit_count == 4
        assert tree.child_for(tree.root, "a").visit_count == 3

    def test_subtree_with_no_actions_copies_whole_tree(self):
        """Test an empty path copies from the root."""
        tree = self._build()
        assert len(tree.subtree()) == len(tree)

    def test_subtree_unknown_action_raises(self):
        """Test following an unexpanded action raises KeyError."""
        tree = self._build()

        with pytest.raises(KeyError):
            tree.subtree("a", "missing")
