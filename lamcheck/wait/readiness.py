"""Wait for the memory service to report itself healthy."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from lamcheck.client.deadline import Clock, Deadline
from lamcheck.client.http import TimedRequester
from lamcheck.config import HEALTH_POLL_INTERVAL_S
from lamcheck.errors import MalformedResponseError
from lamcheck.wait.poller import DeadlinePoller, ProbeResult

logger = logging.getLogger("lamcheck.wait.readiness")


class ReadinessWaiter:
    """
    Polls ``GET {base}/health`` until the body says ``{"ok": true}``.

    A 2xx status alone is not enough; the readiness flag must be the
    boolean ``true``. There is no terminal failure for this probe: a
    service that never becomes ready surfaces as a WaitTimeoutError.

    Args:
        http: Shared TimedRequester.
        health_base_url: Unversioned base URL (no trailing slash).
        timeout_s: Total readiness budget.
        interval_s: Pause between probes.
    """

    def __init__(
        self,
        http: TimedRequester,
        health_base_url: str,
        timeout_s: float = 60.0,
        interval_s: float = HEALTH_POLL_INTERVAL_S,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.http = http
        self.health_url = f"{health_base_url}/health"
        self.poller = DeadlinePoller(interval_s=interval_s, timeout_s=timeout_s, clock=clock, sleep=sleep)

    def probe(self, deadline: Deadline) -> ProbeResult[dict[str, Any]]:
        try:
            outcome = self.http.get(self.health_url, deadline=deadline)
        except MalformedResponseError as e:
            # proxies and half-started servers answer with HTML
            return ProbeResult.pending(str(e))

        body = outcome.body
        if outcome.ok and isinstance(body, dict) and body.get("ok") is True:
            return ProbeResult.ready(body)
        return ProbeResult.pending(f"status={outcome.status}")

    def wait(self) -> dict[str, Any]:
        """
        Block until the service is ready.

        Returns:
            The health response body.

        Raises:
            WaitTimeoutError: Not ready within ``timeout_s``.
        """
        body = self.poller.wait(self.probe, what=f"health at {self.health_url}")
        logger.info(f"Service ready at {self.health_url}")
        return body
