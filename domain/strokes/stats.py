"""Streaming mean / variance / confidence-interval estimator."""

from __future__ import annotations

import math
from collections.abc import Iterable

Z_95 = 1.96


class OnlineStats:
    """Welford accumulator.

    One observation at a time, O(1) memory. With fewer than two samples the
    variance is 0 and ci95() is infinite, so adaptive stopping can never
    trigger on a single draw.
    """

    __slots__ = ("n", "mean", "m2")

    def __init__(self) -> None:
        self.n = 0
        self.mean = 0.0
        self.m2 = 0.0

    @property
    def count(self) -> int:
        return self.n

    def add(self, x: float) -> None:
        self.n += 1
        delta = x - self.mean
        self.mean += delta / self.n
        self.m2 += delta * (x - self.mean)

    def extend(self, xs: Iterable[float]) -> None:
        for x in xs:
            self.add(x)

    def variance(self) -> float:
        return self.m2 / (self.n - 1) if self.n > 1 else 0.0

    def stdev(self) -> float:
        return math.sqrt(self.variance())

    def ci95(self) -> float:
        """Half-width of the 95% confidence interval on the mean."""
        if self.n <= 1:
            return math.inf
        return Z_95 * self.stdev() / math.sqrt(self.n)

    def __repr__(self) -> str:
        return f"OnlineStats(n={self.n}, mean={self.mean:.6g}, ci95={self.ci95():.6g})"
