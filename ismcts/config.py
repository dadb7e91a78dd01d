"""
Search Configuration System

Centralized configuration for IS-MCTS searches.
"""

import json
import math
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional


@dataclass
class SearchConfig:
    """Configuration for one IS-MCTS search."""

    # Budget: stop after `iterations`, or at the deadline if one is set,
    # whichever comes first. iterations=None runs until the deadline.
    iterations: Optional[int] = 1000
    time_budget_s: Optional[float] = None

    # Selection
    exploration_constant: float = math.sqrt(2)
    untried_order: str = 'random'  # 'random' (uniform among untried actions) or 'first' (legal order)

    # Simulation
    max_rollout_depth: Optional[int] = None  # None = trust the game to terminate

    # Reproducibility
    seed: Optional[int] = None

    # Parallelism
    num_workers: int = 1
    parallel_mode: str = 'root'  # 'root' (independent trees, merged) or 'shared' (one locked tree)

    # Contract checks
    validate_determinizations: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Dictionary representation of config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SearchConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            SearchConfig instance
        """
        # Filter out keys that aren't valid config fields
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, filepath: str) -> 'SearchConfig':
        """
        Load config from JSON file.

        Args:
            filepath: Path to JSON config file

        Returns:
            SearchConfig instance
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def save(self, filepath: str):
        """
        Save config to JSON file.

        Args:
            filepath: Path to save config to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if self.iterations is None and self.time_budget_s is None:
            raise ValueError("iterations and time_budget_s cannot both be None")

        if self.iterations is not None and self.iterations <= 0:
            raise ValueError(f"iterations must be positive, got {self.iterations}")

        if self.time_budget_s is not None and self.time_budget_s < 0:
            raise ValueError(
                f"time_budget_s must be non-negative, got {self.time_budget_s}"
            )

        if self.exploration_constant < 0:
            raise ValueError(
                f"exploration_constant must be non-negative, got {self.exploration_constant}"
            )

        if self.untried_order not in ('random', 'first'):
            raise ValueError(
                f"untried_order must be 'random' or 'first', got {self.untried_order}"
            )

        if self.max_rollout_depth is not None and self.max_rollout_depth <= 0:
            raise ValueError(
                f"max_rollout_depth must be positive, got {self.max_rollout_depth}"
            )

        if self.num_workers <= 0:
            raise ValueError(f"num_workers must be positive, got {self.num_workers}")

        if self.parallel_mode not in ('root', 'shared'):
            raise ValueError(
                f"parallel_mode must be 'root' or 'shared', got {self.parallel_mode}"
            )

        return True

    def __str__(self) -> str:
        """String representation of config."""
        if self.iterations is None:
            budget = f"{self.time_budget_s}s"
        else:
            budget = f"{self.iterations} iterations"
            if self.time_budget_s is not None:
                budget += f" or {self.time_budget_s}s"
        lines = ["Search Configuration:"]
        lines.append(f"  Budget: {budget}")
        lines.append(f"  Selection: C={self.exploration_constant:.3f}, untried={self.untried_order}")
        lines.append(f"  Rollout depth cap: {self.max_rollout_depth}")
        lines.append(f"  Workers: {self.num_workers} ({self.parallel_mode})")
        lines.append(f"  Seed: {self.seed}")
        return "\n".join(lines)


def get_fast_config() -> SearchConfig:
    """
    Get a small-budget config for tests and demos.

    Returns:
        SearchConfig with a reduced iteration budget and a fixed seed
    """
    return SearchConfig(
        iterations=200,
        seed=0,
    )
