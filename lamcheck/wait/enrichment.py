"""
Enrichment Waiter
==================

Polls a cell's background enrichment job to a terminal state.

State machine (observed only through polling):
    pending/running/anything else ──► (poll again)
    done   ──► success
    failed ──► TerminalJobError carrying ``last_error`` (or "unknown")

Unreachable service and non-2xx answers are treated as "not yet";
a timeout names the cell and hints that the worker may not be running.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from lamcheck.client.deadline import Clock, Deadline
from lamcheck.client.http import TimedRequester
from lamcheck.config import ENRICHMENT_POLL_INTERVAL_S
from lamcheck.errors import MalformedResponseError, TerminalJobError
from lamcheck.schemas.service import AccessCredential, EnrichmentState, EnrichmentStatus
from lamcheck.wait.poller import DeadlinePoller, ProbeResult

logger = logging.getLogger("lamcheck.wait.enrichment")

WORKER_HINT = "is the enrichment worker running?"


class EnrichmentWaiter:
    """
    Waits for ``GET /enrichment/status?cell_id=...`` to report done.

    Usage:
        waiter = EnrichmentWaiter(http, api_url, credential, timeout_s=30)
        status = waiter.wait(cell_id)

    Args:
        http: Shared TimedRequester.
        api_url: Versioned API base URL.
        credential: Minted access credential.
        timeout_s: Total enrichment budget.
        interval_s: Pause between probes.
    """

    def __init__(
        self,
        http: TimedRequester,
        api_url: str,
        credential: AccessCredential,
        timeout_s: float = 30.0,
        interval_s: float = ENRICHMENT_POLL_INTERVAL_S,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.http = http
        self.status_url = f"{api_url}/enrichment/status"
        self.credential = credential
        self.poller = DeadlinePoller(interval_s=interval_s, timeout_s=timeout_s, clock=clock, sleep=sleep)

    def probe(self, cell_id: str, deadline: Deadline) -> ProbeResult[EnrichmentStatus]:
        try:
            outcome = self.http.get(
                self.status_url,
                params={"cell_id": cell_id},
                token=self.credential.token,
                deadline=deadline,
            )
        except MalformedResponseError as e:
            if 200 <= e.status < 300:
                raise
            return ProbeResult.pending(f"status={e.status}")
        if not outcome.ok or not isinstance(outcome.body, dict):
            return ProbeResult.pending(f"status={outcome.status}")

        status = EnrichmentStatus.model_validate(outcome.body)
        state = status.state
        if state is EnrichmentState.DONE:
            return ProbeResult.ready(status)
        if state is EnrichmentState.FAILED:
            return ProbeResult.failed(TerminalJobError(cell_id, status.last_error))
        return ProbeResult.pending(f"enrichment={status.status or 'empty'}")

    def wait(self, cell_id: str) -> EnrichmentStatus:
        """
        Block until enrichment of ``cell_id`` is done.

        Raises:
            TerminalJobError: The service reported ``failed``.
            WaitTimeoutError: Not done within ``timeout_s``.
        """
        status = self.poller.wait(
            lambda deadline: self.probe(cell_id, deadline),
            what=f"enrichment for cell_id={cell_id}",
            hint=WORKER_HINT,
        )
        logger.info(f"Enrichment done for cell_id={cell_id}")
        return status
