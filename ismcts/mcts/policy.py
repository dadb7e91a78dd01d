"""
Rollout policies for the simulation phase.

A rollout policy picks one legal action at each step of a playout from the
newly expanded node to a terminal state. The search only needs the
``choose`` method, so any object with that signature can be plugged in.
"""

from typing import Any, Callable, Hashable, Protocol, Sequence

import numpy as np


class RolloutPolicy(Protocol):
    def choose(
        self,
        state: Any,
        legal_actions: Sequence[Hashable],
        rng: np.random.Generator,
    ) -> Hashable:
        ...


class UniformRandomPolicy:
    """Pick uniformly among the legal actions. The default rollout policy."""

    def choose(
        self,
        state: Any,
        legal_actions: Sequence[Hashable],
        rng: np.random.Generator,
    ) -> Hashable:
        return legal_actions[int(rng.integers(len(legal_actions)))]

    def __repr__(self) -> str:
        return "UniformRandomPolicy()"


class FunctionPolicy:
    """
    Adapt a plain function ``fn(state, legal_actions, rng) -> action``.

    Example:
        >>> greedy = FunctionPolicy(lambda state, actions, rng: actions[0])
    """

    def __init__(self, fn: Callable[[Any, Sequence[Hashable], np.random.Generator], Hashable]):
        self.fn = fn

    def choose(
        self,
        state: Any,
        legal_actions: Sequence[Hashable],
        rng: np.random.Generator,
    ) -> Hashable:
        return self.fn(state, legal_actions, rng)
