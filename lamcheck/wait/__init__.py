"""
lamcheck Waiting Primitives
============================

Bounded, deadline-driven waits for asynchronous service state.

Components:
    - poller.py:     DeadlinePoller + ProbeResult (the one generic wait loop)
    - readiness.py:  Health readiness waiter
    - enrichment.py: Per-cell enrichment waiter
"""

from lamcheck.wait.poller import DeadlinePoller, ProbeResult, ProbeSignal

__all__ = ["DeadlinePoller", "ProbeResult", "ProbeSignal"]
