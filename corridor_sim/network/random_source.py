"""
Seedable random source shared by every stochastic decision in a run.

Nothing in the simulation touches the module-level ``random`` functions;
all draws go through one ``RandomSource`` held by the simulation context,
so a fixed seed reproduces a whole run draw for draw.
"""

from __future__ import annotations

import random
from typing import Optional


class RandomSource:
    """
    Thin wrapper around ``random.Random`` exposing the draws the model needs.

    Attributes:
        seed: Seed the stream was last (re)started from
        draws: Number of uniform draws taken since the last reseed
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.draws = 0
        self._rng = random.Random(seed)

    def reseed(self, seed: Optional[int]) -> None:
        """Restart the stream from ``seed``."""
        self.seed = seed
        self.draws = 0
        self._rng.seed(seed)

    def uniform(self) -> float:
        """Return a float in [0, 1)."""
        self.draws += 1
        return self._rng.random()

    def between(self, low: float, high: float) -> float:
        """Return a float uniformly drawn from [low, high)."""
        return low + self.uniform() * (high - low)

    def index(self, n: int) -> int:
        """Pick an index in range(n) uniformly."""
        if n <= 0:
            raise ValueError("n must be positive")
        return int(self.uniform() * n)

    def noisy(self, value: float, level: float = 0.1) -> float:
        """
        Perturb ``value`` by up to +/- ``level / 2`` of its own magnitude.

        A base of zero always comes back as zero; the draw is still taken
        so the stream position does not depend on the value.
        """
        return value + (self.uniform() - 0.5) * level * value

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed!r}, draws={self.draws})"
