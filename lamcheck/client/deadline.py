"""Deadline token threaded into every request-issuing operation."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], float]


class Deadline:
    """
    A fixed point on a monotonic clock after which work must stop.

    A deadline is created once and then only read; it is safe to hand the
    same instance to every request and wait belonging to one stage.

    Args:
        seconds: Budget from now. Negative budgets are treated as zero.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(self, seconds: float, clock: Clock = time.monotonic):
        self._clock = clock
        self.budget_s = max(0.0, float(seconds))
        self.started_at = clock()
        self.expires_at = self.started_at + self.budget_s

    @classmethod
    def after(cls, seconds: float, clock: Clock = time.monotonic) -> "Deadline":
        return cls(seconds, clock=clock)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.expires_at - self._clock())

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    @property
    def expired(self) -> bool:
        return self._clock() >= self.expires_at

    def cap(self, timeout_s: float) -> float:
        """Shrink ``timeout_s`` so it cannot outlive this deadline."""
        return min(timeout_s, self.remaining())

    def __repr__(self) -> str:
        return f"Deadline(budget={self.budget_s:.3f}s, remaining={self.remaining():.3f}s)"
