"""
Random number source for the reaction engine.

Every simulated event owns one RandomSource. Nothing in the package draws
from a module-level generator, so events seeded from the same
SeedSequence replay bit for bit and can run independently.
"""

from __future__ import annotations
import math
from typing import List, Optional
import numpy as np


class RandomSource:
    """Thin wrapper around ``numpy.random.Generator`` with the draws the engine needs."""

    def __init__(self, seed=None):
        self.seed(seed)

    def seed(self, seed=None):
        """Reseed for deterministic replay. Accepts an int, a SeedSequence or None."""
        if isinstance(seed, np.random.SeedSequence):
            self._seed_seq = seed
        else:
            self._seed_seq = np.random.SeedSequence(seed)
        self.generator = np.random.default_rng(self._seed_seq)

    def spawn(self, n: int) -> List["RandomSource"]:
        """Independent child streams, e.g. one per event."""
        return [RandomSource(s) for s in self._seed_seq.spawn(n)]

    def uniform(self, min_: float, max_: float) -> float:
        """Uniform number in [min_, max_)."""
        return float(self.generator.uniform(min_, max_))

    def canonical(self) -> float:
        """Uniform number in [0, 1)."""
        return float(self.generator.random())

    def normal(self, mean: float, sigma: float) -> float:
        return float(self.generator.normal(mean, sigma))

    def exponential(self) -> float:
        """Exponentially distributed number with unit mean."""
        return float(self.generator.exponential(1.0))

    def expo(self, A: float, x1: float, x2: float) -> float:
        """Number distributed like exp(A*x), restricted to lie between x1 and x2."""
        if A == 0.0:
            raise ValueError("expo needs a non-zero slope A")
        a1, a2 = A * x1, A * x2
        a_min = math.log(np.finfo(float).tiny)
        r1 = math.exp(a1) if a1 > a_min else 0.0  # prevent underflow
        r2 = math.exp(a2) if a2 > a_min else 0.0
        if r1 == 0.0 and r2 == 0.0:
            raise ValueError(f"exp({A}*x) underflows on the whole range [{x1}, {x2}]")
        lo, hi = min(x1, x2), max(x1, x2)
        while True:
            u = self.uniform(min(r1, r2), max(r1, r2)) if r1 != r2 else r1
            if u <= 0.0:
                continue
            x = math.log(u) / A
            if lo <= x <= hi:
                return x

    def integer(self, low: int, high: int) -> int:
        """Integer in [low, high)."""
        return int(self.generator.integers(low, high))

    def __repr__(self) -> str:
        return f"RandomSource(entropy={self._seed_seq.entropy})"


def make_event_sources(seed: Optional[int], n_events: int) -> List[RandomSource]:
    """One independent RandomSource per event, derived from a single seed."""
    return RandomSource(seed).spawn(n_events)
