"""
Deadline Poller
================

The single bounded-retry primitive behind every wait in lamcheck.

A probe is called repeatedly and answers with an explicit ProbeResult:
    - PENDING: not yet; sleep one interval and probe again
    - READY:   success; return the probe's value immediately
    - FAILED:  terminal; raise the probe's error immediately

Timing Guarantees:
    - Never busy-spins: sleeps ``min(interval, remaining)`` between probes.
    - A zero (or already spent) budget still allows exactly one probe.
    - Fails with WaitTimeoutError only once the deadline has elapsed,
      never earlier.
    - A condition that turns true before the deadline is observed at
      most one interval later.

A TransportError raised inside a probe (timeout, connection refused) is
folded into PENDING: the remote side may simply not be reachable yet.
Every other exception propagates untouched.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from lamcheck.client.deadline import Clock, Deadline
from lamcheck.errors import LamCheckError, TransportError, WaitTimeoutError

logger = logging.getLogger("lamcheck.wait.poller")

T = TypeVar("T")


class ProbeSignal(str, Enum):
    """Outcome of a single probe invocation."""
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ProbeResult(Generic[T]):
    """
    What a probe observed.

    Build with ``ProbeResult.pending()``, ``ProbeResult.ready(value)``
    or ``ProbeResult.failed(error)`` rather than directly.
    """
    signal: ProbeSignal
    value: Optional[T] = None
    error: Optional[LamCheckError] = None
    note: str = ""

    @classmethod
    def pending(cls, note: str = "") -> "ProbeResult[Any]":
        return cls(signal=ProbeSignal.PENDING, note=note)

    @classmethod
    def ready(cls, value: Any = None) -> "ProbeResult[Any]":
        return cls(signal=ProbeSignal.READY, value=value)

    @classmethod
    def failed(cls, error: LamCheckError) -> "ProbeResult[Any]":
        return cls(signal=ProbeSignal.FAILED, error=error, note=str(error))


Probe = Callable[[Deadline], ProbeResult[T]]


class DeadlinePoller:
    """
    Repeatedly evaluates a probe until it succeeds, fails, or time runs out.

    Usage:
        poller = DeadlinePoller(interval_s=0.2, timeout_s=60)
        body = poller.wait(probe, what="health at http://host/health")

    The probe receives the poller's Deadline so any request it issues
    can be capped to the time that is left.

    Args:
        interval_s: Pause between probes.
        timeout_s: Total budget for the wait.
        clock: Monotonic clock (injectable for tests).
        sleep: Sleep function (injectable for tests).
    """

    def __init__(
        self,
        interval_s: float,
        timeout_s: float,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        assert interval_s > 0, f"interval_s must be positive, got {interval_s}"
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self._clock = clock
        self._sleep = sleep

    def wait(self, probe: Probe[T], what: str, hint: Optional[str] = None) -> T:
        """
        Poll ``probe`` until it reports READY or FAILED.

        Args:
            probe: Callable taking the wait's Deadline, returning a ProbeResult.
            what: Name of the awaited resource, used in the timeout message.
            hint: Optional operational hint appended to the timeout message.

        Returns:
            The value carried by the READY result.

        Raises:
            WaitTimeoutError: The deadline elapsed first.
            LamCheckError: Whatever error the probe reported as FAILED.
        """
        deadline = Deadline(self.timeout_s, clock=self._clock)
        attempts = 0

        while True:
            attempts += 1
            try:
                result = probe(deadline)
            except TransportError as e:
                result = ProbeResult.pending(str(e))

            if result.signal is ProbeSignal.READY:
                logger.debug(f"{what}: ready after {attempts} probe(s), {deadline.elapsed():.2f}s")
                return result.value
            if result.signal is ProbeSignal.FAILED:
                logger.debug(f"{what}: failed after {attempts} probe(s): {result.note}")
                raise result.error

            logger.debug(f"{what}: not yet (attempt {attempts}) {result.note}".rstrip())
            remaining = deadline.remaining()
            if remaining <= 0:
                raise WaitTimeoutError(what, deadline.elapsed(), attempts, hint)
            self._sleep(min(self.interval_s, remaining))
