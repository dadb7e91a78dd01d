"""
Determinization sampling for Information-Set MCTS.

At the start of every iteration the search asks the game model for one
concrete state consistent with the searching player's information set.
The sampled state is used for that iteration only and then discarded; the
tree never stores concrete states.

Consistency Requirement:
    Re-deriving the observer's information-set key from a sample must give
    the root key. A sample that breaks this would silently mix statistics
    from a different information set into the tree, so the adapter checks
    it on every call (unless validation is switched off) and fails fast.
"""

import time
from typing import Any, Hashable

import numpy as np

from ismcts.game.interface import GameModel
from ismcts.mcts.exceptions import GameContractError


class DeterminizationSampler:
    """
    Core-side wrapper around GameModel.sample_determinization.

    Attributes:
        game: Game model supplying samples
        observer: Player whose information set is sampled
        root_state: Observer's view of the current state
        root_key: Information-set key every sample must reproduce
        validate: Whether samples are checked against root_key
    """

    def __init__(
        self,
        game: GameModel,
        observer: Hashable,
        root_state: Any,
        validate: bool = True,
    ):
        """
        Initialize sampler.

        Args:
            game: Game model supplying samples
            observer: Player whose information set is sampled
            root_state: Any state in the observer's information set
            validate: Check each sample's key against the root key
        """
        self.game = game
        self.observer = observer
        self.root_state = root_state
        self.root_key = game.information_set_key(root_state, observer)
        self.validate = validate

    def sample(self, rng: np.random.Generator) -> Any:
        """
        Sample one determinization of the root information set.

        Args:
            rng: Generator used for the hidden information

        Returns:
            Concrete state consistent with root_key

        Raises:
            GameContractError: If validation is on and the sample's key differs
        """
        start_t = time.perf_counter() if _DET_PROFILING_ENABLED else 0.0

        state = self.game.sample_determinization(self.root_state, self.observer, rng)

        if self.validate:
            sampled_key = self.game.information_set_key(state, self.observer)
            if sampled_key != self.root_key:
                raise GameContractError(
                    "sample_determinization",
                    state,
                    f"sampled key {sampled_key!r} differs from root key {self.root_key!r}",
                )

        if _DET_PROFILING_ENABLED:
            _DET_METRICS['samples'] += 1
            _DET_METRICS['sample_total_sec'] += time.perf_counter() - start_t

        return state


# Module-level flag and store for determinization profiling metrics
_DET_PROFILING_ENABLED = False
_DET_METRICS = {
    'samples': 0,
    'sample_total_sec': 0.0,
}


def enable_metrics(enabled: bool = True) -> None:
    """Enable or disable determinization instrumentation for this process."""
    global _DET_PROFILING_ENABLED
    _DET_PROFILING_ENABLED = bool(enabled)


def reset_metrics() -> None:
    """Reset determinization metrics counters for this process."""
    for k in list(_DET_METRICS.keys()):
        _DET_METRICS[k] = 0.0 if k.endswith('_sec') else 0


def get_metrics() -> dict:
    """Return a shallow copy of current determinization metrics."""
    m = dict(_DET_METRICS)
    samples = m.get('samples', 0) or 0
    m['avg_sample_ms'] = (m.get('sample_total_sec', 0.0) / (samples or 1)) * 1000.0
    return m
