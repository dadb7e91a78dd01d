"""
Information-Set Monte Carlo Tree Search.

This module implements single-observer IS-MCTS: one tree whose nodes are
information sets of the acting player, grown by iterations that each work
on a freshly sampled determinization of the root information set.

Main Components:
    - ISMCTS: Search class that orchestrates iterations
    - Four-phase loop: Selection, Expansion, Simulation, Backpropagation
    - Availability-corrected UCB selection (see TreeNode.ucb_score)
    - Root decision extraction by highest visit count
    - Iteration count / wall-clock budget and cancellation between iterations

Iteration:
    1. Determinize: sample a concrete state from the root information set
    2. Select: descend while every legal action already has a child and
       pick one untried legal action where the descent stops
    3. Simulate: play the rollout policy to a terminal state (skipped when
       selection already reached one)
    4. Expand: create the child for the untried action
    5. Backpropagate: count the availability of every legal action seen on
       the path and update visits and rewards

    The tree is only written in steps 4 and 5, once the terminal reward is
    known, so an iteration that fails leaves no partial update behind.

Example:
    >>> from ismcts.config import SearchConfig
    >>> from ismcts.game.kuhn_poker import KuhnPoker
    >>> from ismcts.mcts import ISMCTS
    >>>
    >>> game = KuhnPoker()
    >>> state = game.initial_state(first_card="K", second_card="J")
    >>> mcts = ISMCTS(game, SearchConfig(iterations=2000, seed=7))
    >>> result = mcts.search(state)
    >>> result.action in game.legal_actions(state)
    True
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import numpy as np

from ismcts.config import SearchConfig
from ismcts.game.interface import GameModel
from ismcts.mcts.determinization import DeterminizationSampler
from ismcts.mcts.exceptions import (
    GameContractError,
    NoIterationsCompletedError,
    RolloutDepthExceededError,
)
from ismcts.mcts.node import ActionSummary, SearchTree, TreeNode
from ismcts.mcts.policy import RolloutPolicy, UniformRandomPolicy

logger = logging.getLogger(__name__)


class SearchStatus(Enum):
    DECIDED = "decided"
    NO_DECISION_REQUIRED = "no_decision_required"


@dataclass
class SearchResult:
    """
    Outcome of one search.

    Attributes:
        status: DECIDED, or NO_DECISION_REQUIRED for a terminal root
        action: Recommended action (None when no decision is required)
        iterations: Iterations completed by this search
        cancelled: Whether the loop stopped on the cancel event
        elapsed_s: Wall-clock duration of the search
        root_stats: Action -> ActionSummary at the root, first-seen order
        tree: Searched tree (None for merged root-parallel searches)
        trees: Per-worker trees of a root-parallel search
    """

    status: SearchStatus
    action: Optional[Hashable] = None
    iterations: int = 0
    cancelled: bool = False
    elapsed_s: float = 0.0
    root_stats: Dict[Hashable, ActionSummary] = field(default_factory=dict)
    tree: Optional[SearchTree] = None
    trees: List[SearchTree] = field(default_factory=list)

    def format_table(self) -> str:
        """Render the root statistics, one line per action."""
        lines = [f"{'action':<16}{'visits':>8}{'avail':>8}{'mean':>9}"]
        for action, stats in self.root_stats.items():
            marker = " *" if action == self.action else ""
            lines.append(
                f"{str(action):<16}{stats.visits:>8}{stats.availability:>8}"
                f"{stats.mean_reward:>9.3f}{marker}"
            )
        return "\n".join(lines)


@dataclass
class PathStep:
    """
    One (node, action) pair of an iteration's search path.

    Attributes:
        node: Node on the path
        action: Action taken at the node (None for the last node)
        legal_actions: Actions legal at the node in this determinization;
                       counted as available during backpropagation
        adopted: (acting player, information-set key) for a node created at a
                 terminal state and now reached at a non-terminal one
    """

    node: TreeNode
    action: Optional[Hashable]
    legal_actions: Optional[List[Hashable]] = None
    adopted: Optional[Tuple[Hashable, Hashable]] = None

    @property
    def acting_player(self) -> Optional[Hashable]:
        if self.node.acting_player is None and self.adopted is not None:
            return self.adopted[0]
        return self.node.acting_player


@dataclass
class PendingChild:
    """Child chosen for expansion, created once the iteration's reward is known."""

    parent: TreeNode
    action: Hashable
    acting_player: Optional[Hashable]
    info_key: Optional[Hashable]


def select_most_visited(root_stats: Dict[Hashable, ActionSummary]) -> Hashable:
    """
    Return the most visited action; ties go to the first-seen action.

    Raises:
        NoIterationsCompletedError: If no action has been visited
    """
    best_action = None
    best_visits = 0
    for action, stats in root_stats.items():
        if stats.visits > best_visits:
            best_visits = stats.visits
            best_action = action

    if best_action is None:
        raise NoIterationsCompletedError(
            "No completed iterations at the root: the budget was exhausted "
            "before one iteration finished"
        )
    return best_action


class ISMCTS:
    """
    Information-Set MCTS over a GameModel.

    The search is rooted at the searching player's information set. Every
    iteration samples its own determinization, so no statistic depends on
    the true hidden state.

    Attributes:
        game: Game model (rules, observations, determinization sampling)
        config: Search configuration
        rollout_policy: Policy used in the simulation phase

    Example:
        >>> mcts = ISMCTS(game, SearchConfig(iterations=500, seed=1))
        >>> result = mcts.search(state)
        >>> print(result.format_table())
    """

    def __init__(
        self,
        game: GameModel,
        config: Optional[SearchConfig] = None,
        rollout_policy: Optional[RolloutPolicy] = None,
    ):
        """
        Initialize search.

        Args:
            game: Game model to search
            config: Search configuration (defaults to SearchConfig())
            rollout_policy: Simulation policy (default: uniform random)

        Raises:
            ValueError: If the configuration is invalid
        """
        self.game = game
        self.config = config if config is not None else SearchConfig()
        self.config.validate()
        self.rollout_policy = rollout_policy if rollout_policy is not None else UniformRandomPolicy()

    def search(
        self,
        root_state: Any,
        player: Optional[Hashable] = None,
        tree: Optional[SearchTree] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> SearchResult:
        """
        Run IS-MCTS from the searching player's information set.

        Args:
            root_state: Any state in the searching player's information set
            player: Searching player (default: acting player of root_state)
            tree: Tree to keep growing (default: a fresh tree)
            cancel_event: Checked before every iteration; stops the loop when set
            progress_callback: Called with the completed iteration count after
                               every iteration (single worker only)

        Returns:
            SearchResult with the recommended action and root statistics

        Raises:
            NoIterationsCompletedError: If no iteration completed
            GameContractError: If the game model violates its contract
            ValueError: If player is not the acting player of root_state
        """
        start = time.perf_counter()

        if self.game.is_terminal(root_state):
            logger.debug("Root state is terminal; no decision required")
            return SearchResult(
                status=SearchStatus.NO_DECISION_REQUIRED,
                elapsed_s=time.perf_counter() - start,
                tree=tree if tree is not None else SearchTree(),
            )

        acting_player = self.game.acting_player(root_state)
        if player is None:
            player = acting_player
        elif player != acting_player:
            # Root statistics are credited to the player on move
            raise ValueError(
                f"Cannot search for player {player!r}: player {acting_player!r} is to act"
            )

        deadline = None
        if self.config.time_budget_s is not None:
            deadline = start + self.config.time_budget_s

        if self.config.num_workers > 1:
            from ismcts.mcts.parallel import parallel_search

            return parallel_search(
                self, root_state, player, tree, deadline, cancel_event, start
            )

        sampler = DeterminizationSampler(
            self.game, player, root_state, self.config.validate_determinizations
        )
        if tree is None:
            tree = SearchTree()
        tree.get_or_create_root(sampler.root_key, player)

        rng = np.random.default_rng(self.config.seed)
        completed, cancelled = self.grow(
            tree,
            sampler,
            rng,
            self.config.iterations,
            deadline,
            cancel_event,
            progress_callback,
        )

        root_stats = tree.root.summary()
        action = select_most_visited(root_stats)
        elapsed = time.perf_counter() - start
        logger.debug(
            "Search finished: %d iterations, %d nodes, %.3fs, action=%r",
            completed,
            len(tree),
            elapsed,
            action,
        )
        if logger.isEnabledFor(logging.DEBUG):
            tree.debug_children(self.config.exploration_constant)
            tree.debug_path(self.config.exploration_constant)

        return SearchResult(
            status=SearchStatus.DECIDED,
            action=action,
            iterations=completed,
            cancelled=cancelled,
            elapsed_s=elapsed,
            root_stats=root_stats,
            tree=tree,
        )

    def grow(
        self,
        tree: SearchTree,
        sampler: DeterminizationSampler,
        rng: np.random.Generator,
        max_iterations: Optional[int],
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
        shared: bool = False,
    ) -> Tuple[int, bool]:
        """
        Run iterations until the count, the deadline or the cancel event stops them.

        With max_iterations None only the deadline or the cancel event ends
        the loop.

        Budget and cancellation are checked between iterations only, so the
        tree never holds a partially applied iteration.

        Returns:
            Tuple of (completed iterations, cancelled)
        """
        completed = 0
        while max_iterations is None or completed < max_iterations:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Search cancelled after %d iterations", completed)
                return completed, True
            if deadline is not None and time.perf_counter() >= deadline:
                break

            self.run_iteration(tree, sampler, rng, shared)
            completed += 1

            if progress_callback is not None:
                progress_callback(completed)

        return completed, False

    def run_iteration(
        self,
        tree: SearchTree,
        sampler: DeterminizationSampler,
        rng: np.random.Generator,
        shared: bool = False,
    ) -> None:
        """
        Run one IS-MCTS iteration (all phases).

        Selection and simulation only read the tree. Availability counts,
        the expanded child and the visit statistics are all written during
        backpropagation, after the terminal reward is known, so an iteration
        that raises leaves the tree as it was.

        Args:
            tree: Tree to grow; its root must already exist
            sampler: Determinization sampler for the root information set
            rng: Generator for determinization, expansion and rollout
            shared: Use atomic child creation (several threads on one tree)
        """
        # DETERMINIZATION
        state = sampler.sample(rng)

        # SELECTION
        path, pending, state = self._select(tree, state, rng)

        # SIMULATION
        if not self.game.is_terminal(state):
            state = self._simulate(state, rng)

        rewards = self._terminal_rewards(state, path)

        # EXPANSION
        if pending is not None:
            path.append(PathStep(self._expand(tree, pending, shared), None))

        # BACKPROPAGATION
        self._backpropagate(path, rewards)

    def _legal_actions(self, state: Any) -> List[Hashable]:
        legal_actions = list(self.game.legal_actions(state))
        if not legal_actions:
            raise GameContractError(
                "legal_actions", state, "no legal actions for a non-terminal state"
            )
        return legal_actions

    def _select(
        self,
        tree: SearchTree,
        state: Any,
        rng: np.random.Generator,
    ) -> Tuple[List[PathStep], Optional[PendingChild], Any]:
        """
        Descend from the root through the determinization.

        Stops at a terminal state or at the first node with an untried legal
        action; that action is returned as the pending expansion.

        Returns:
            Tuple of (search path, pending child or None, state reached)
        """
        path: List[PathStep] = []
        node = tree.root

        while True:
            if self.game.is_terminal(state):
                path.append(PathStep(node, None))
                return path, None, state

            adopted = None
            if node.acting_player is None:
                # Node was created at a terminal state of another determinization
                acting_player = self.game.acting_player(state)
                adopted = (acting_player, self.game.information_set_key(state, acting_player))

            legal_actions = self._legal_actions(state)

            untried = node.untried_actions(legal_actions)
            if untried:
                action = self._choose_untried(untried, rng)
                state = self.game.apply(state, action)
                path.append(PathStep(node, action, legal_actions, adopted))
                return path, self._pending_child(node, action, state), state

            action = node.select_action(legal_actions, self.config.exploration_constant)
            path.append(PathStep(node, action, legal_actions, adopted))
            state = self.game.apply(state, action)
            node = tree.child_for(node, action)

    def _pending_child(self, node: TreeNode, action: Hashable, state: Any) -> PendingChild:
        if self.game.is_terminal(state):
            return PendingChild(node, action, None, None)
        acting_player = self.game.acting_player(state)
        info_key = self.game.information_set_key(state, acting_player)
        return PendingChild(node, action, acting_player, info_key)

    def _adopt_player(self, node: TreeNode, acting_player: Hashable, info_key: Hashable) -> None:
        with node.lock:
            if node.acting_player is None:
                node.acting_player = acting_player
                node.info_key = info_key

    def _choose_untried(self, untried: List[Hashable], rng: np.random.Generator) -> Hashable:
        if self.config.untried_order == 'first':
            return untried[0]
        return untried[int(rng.integers(len(untried)))]

    def _expand(self, tree: SearchTree, pending: PendingChild, shared: bool) -> TreeNode:
        """Create the pending child; with shared, reuse one another thread created."""
        if shared:
            return tree.ensure_child(
                pending.parent, pending.action, pending.acting_player, pending.info_key
            )
        return tree.add_child(
            pending.parent, pending.action, pending.acting_player, pending.info_key
        )

    def _simulate(self, state: Any, rng: np.random.Generator) -> Any:
        """
        Play the rollout policy from ``state`` to a terminal state.

        No tree nodes are created here.

        Raises:
            RolloutDepthExceededError: If max_rollout_depth is reached first
        """
        start_t = time.perf_counter() if _SEARCH_PROFILING_ENABLED else 0.0
        max_depth = self.config.max_rollout_depth

        depth = 0
        while not self.game.is_terminal(state):
            if max_depth is not None and depth >= max_depth:
                raise RolloutDepthExceededError(max_depth, state)
            legal_actions = self._legal_actions(state)
            action = self.rollout_policy.choose(state, legal_actions, rng)
            state = self.game.apply(state, action)
            depth += 1

        if _SEARCH_PROFILING_ENABLED:
            _SEARCH_METRICS['rollouts'] += 1
            _SEARCH_METRICS['rollout_steps'] += depth
            _SEARCH_METRICS['rollout_total_sec'] += time.perf_counter() - start_t

        return state

    def _terminal_rewards(self, state: Any, path: List[PathStep]) -> Dict[Hashable, float]:
        rewards = {player: float(value) for player, value in self.game.reward(state).items()}
        for step in path:
            if step.action is not None and step.acting_player not in rewards:
                raise GameContractError(
                    "reward", state, f"no reward for player {step.acting_player!r}"
                )
        return rewards

    def _backpropagate(self, path: List[PathStep], rewards: Dict[Hashable, float]) -> None:
        """Count availability and update every node on the path, leaf first."""
        for step in reversed(path):
            if step.adopted is not None:
                self._adopt_player(step.node, *step.adopted)
            if step.legal_actions is not None:
                step.node.record_availability(step.legal_actions)
            step.node.update(step.action, rewards)

    @staticmethod
    def extract_decision(tree: SearchTree) -> Hashable:
        """
        Return the root's most visited action.

        Raises:
            NoIterationsCompletedError: If the root has no visited action
        """
        return select_most_visited(tree.root.summary())


# -------------------
# Lightweight metrics
# -------------------
_SEARCH_PROFILING_ENABLED = False
_SEARCH_METRICS = {
    'rollouts': 0,
    'rollout_steps': 0,
    'rollout_total_sec': 0.0,
}


def enable_metrics(enabled: bool = True) -> None:
    global _SEARCH_PROFILING_ENABLED
    _SEARCH_PROFILING_ENABLED = bool(enabled)


def reset_metrics() -> None:
    for k in list(_SEARCH_METRICS.keys()):
        _SEARCH_METRICS[k] = 0.0 if k.endswith('_sec') else 0


def get_metrics() -> dict:
    m = dict(_SEARCH_METRICS)
    rollouts = m.get('rollouts', 0) or 0
    m['avg_rollout_ms'] = (m.get('rollout_total_sec', 0.0) / (rollouts or 1)) * 1000.0
    m['avg_rollout_steps'] = (m.get('rollout_steps', 0) / rollouts) if rollouts else 0.0
    return m
