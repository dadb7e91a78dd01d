"""
Parallel IS-MCTS.

Two modes, both on a ThreadPoolExecutor:

    root:   every worker grows its own tree from its own generator; the
            root statistics are summed per action afterwards. Results are
            reproducible for a fixed seed because trees are merged in worker
            order, not completion order.
    shared: all workers iterate on one SearchTree. Node counters are
            updated under the node's lock and child creation is an atomic
            check-then-add, so no increment is lost. Results are not
            bit-reproducible.

The iteration count is split across workers, remainder to the first ones.
The deadline and the cancel event apply to every worker.
"""

import concurrent.futures
import logging
import threading
import time
from typing import Any, Dict, Hashable, List, Optional, TYPE_CHECKING

import numpy as np

from ismcts.mcts.determinization import DeterminizationSampler
from ismcts.mcts.node import ActionSummary, SearchTree

if TYPE_CHECKING:
    from ismcts.mcts.search import ISMCTS, SearchResult

logger = logging.getLogger(__name__)


def split_iterations(total: Optional[int], num_workers: int) -> List[Optional[int]]:
    """
    Distribute ``total`` iterations evenly across workers.

    A total of None (no iteration cap) gives every worker no cap.

    Example:
        >>> split_iterations(10, 4)
        [3, 3, 2, 2]
    """
    if total is None:
        return [None] * num_workers
    per_worker = total // num_workers
    remaining = total % num_workers
    return [per_worker + (1 if worker_id < remaining else 0) for worker_id in range(num_workers)]


def merge_root_stats(trees: List[SearchTree]) -> Dict[Hashable, ActionSummary]:
    """
    Sum root statistics of independent trees, action by action.

    Actions keep the order in which they were first seen, scanning trees in
    worker order.
    """
    visits: Dict[Hashable, int] = {}
    availability: Dict[Hashable, int] = {}
    total_reward: Dict[Hashable, float] = {}

    for tree in trees:
        if tree.root_id is None:
            continue
        root = tree.root
        for action, stats in root.action_stats.items():
            if action not in root.children:
                continue
            visits[action] = visits.get(action, 0) + stats.visit_count
            availability[action] = availability.get(action, 0) + stats.availability_count
            total_reward[action] = total_reward.get(action, 0.0) + stats.total_reward

    return {
        action: ActionSummary(
            visits=visits[action],
            availability=availability[action],
            mean_reward=total_reward[action] / visits[action] if visits[action] else 0.0,
        )
        for action in visits
    }


def parallel_search(
    engine: "ISMCTS",
    root_state: Any,
    player: Hashable,
    tree: Optional[SearchTree],
    deadline: Optional[float],
    cancel_event: Optional[threading.Event],
    start: float,
) -> "SearchResult":
    """
    Run engine's search on ``engine.config.num_workers`` threads.

    Args:
        engine: Configured ISMCTS instance
        root_state: Any state in the searching player's information set
        player: Searching player
        tree: Tree to keep growing (shared mode only)
        deadline: perf_counter() value at which workers stop, or None
        cancel_event: Stops every worker between iterations when set
        start: perf_counter() value at which the search started

    Returns:
        SearchResult with merged (root mode) or shared (shared mode) statistics

    Raises:
        ValueError: If a tree is supplied in root mode
    """
    from ismcts.mcts.search import SearchResult, SearchStatus, select_most_visited

    config = engine.config
    num_workers = config.num_workers
    shared = config.parallel_mode == 'shared'

    if tree is not None and not shared:
        raise ValueError("Continuing an existing tree requires parallel_mode='shared'")

    seeds = np.random.SeedSequence(config.seed).spawn(num_workers)
    iterations = split_iterations(config.iterations, num_workers)

    def make_sampler() -> DeterminizationSampler:
        return DeterminizationSampler(
            engine.game, player, root_state, config.validate_determinizations
        )

    if shared:
        shared_tree = tree if tree is not None else SearchTree()
        shared_tree.get_or_create_root(make_sampler().root_key, player)
        trees = [shared_tree] * num_workers
    else:
        trees = [SearchTree() for _ in range(num_workers)]
        for worker_tree in trees:
            worker_tree.get_or_create_root(make_sampler().root_key, player)

    def worker(worker_id: int):
        rng = np.random.default_rng(seeds[worker_id])
        return engine.grow(
            trees[worker_id],
            make_sampler(),
            rng,
            iterations[worker_id],
            deadline,
            cancel_event,
            None,
            shared,
        )

    with concurrent.futures.ThreadPoolExecutor(max_workers=num_workers) as pool:
        futures = [pool.submit(worker, worker_id) for worker_id in range(num_workers)]
        # Collect in worker order so merging is reproducible
        outcomes = [future.result() for future in futures]

    completed = sum(done for done, _ in outcomes)
    cancelled = any(was_cancelled for _, was_cancelled in outcomes)

    if shared:
        root_stats = trees[0].root.summary()
    else:
        root_stats = merge_root_stats(trees)

    action = select_most_visited(root_stats)
    elapsed = time.perf_counter() - start
    logger.debug(
        "Parallel search (%s, %d workers) finished: %d iterations, %.3fs, action=%r",
        config.parallel_mode,
        num_workers,
        completed,
        elapsed,
        action,
    )

    return SearchResult(
        status=SearchStatus.DECIDED,
        action=action,
        iterations=completed,
        cancelled=cancelled,
        elapsed_s=elapsed,
        root_stats=root_stats,
        tree=trees[0] if shared else None,
        trees=[] if shared else trees,
    )
