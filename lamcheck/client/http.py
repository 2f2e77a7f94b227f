"""
Timed HTTP Requests
====================

One request, one response, one enforced timeout. ``TimedRequester``
wraps an ``httpx.Client`` and normalizes every exchange into an
``HttpOutcome`` (success flag, status, parsed JSON body).

Failure classes are kept distinct:
    - RequestTimeoutError: the timeout (or the caller's deadline) elapsed
    - NetworkError:        no HTTP response at all
    - MalformedResponseError: a non-empty body that is not JSON

The timeout is a wall-clock bound on the whole exchange: the body is
streamed and the per-call deadline is checked after every chunk, so a
server trickling bytes cannot hold a request open past its budget.

A non-2xx status is NOT an exception here; callers decide whether it is
fatal (one-shot calls) or "not yet" (polling probes).
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from lamcheck import __version__
from lamcheck.client.deadline import Clock, Deadline
from lamcheck.errors import (
    DataShapeError,
    MalformedResponseError,
    NetworkError,
    RemoteRejectionError,
    RequestTimeoutError,
)

logger = logging.getLogger("lamcheck.client.http")

M = TypeVar("M", bound=BaseModel)

_SNIPPET_CHARS = 200


@dataclass(frozen=True)
class HttpOutcome:
    """Normalized result of one HTTP exchange."""

    url: str
    status: int
    ok: bool
    body: Any = None

    def raise_for_rejection(self, call: str) -> "HttpOutcome":
        """
        Fail hard on a non-2xx status.

        Raises:
            RemoteRejectionError: If ``ok`` is False.
        """
        if not self.ok:
            raise RemoteRejectionError(call, self.status, self.body)
        return self

    def parse(self, model: Type[M], call: str) -> M:
        """
        Validate the body against ``model``.

        Raises:
            DataShapeError: If the body is not an object or fails validation.
        """
        if not isinstance(self.body, dict):
            raise DataShapeError(f"{call} returned a non-object body: {type(self.body).__name__}")
        try:
            return model.model_validate(self.body)
        except ValidationError as e:
            raise DataShapeError(f"{call} response has unexpected shape: {e}") from e


class TimedRequester:
    """
    Issues single HTTP requests with an enforced timeout.

    Usage:
        with TimedRequester(timeout_s=15.0) as http:
            outcome = http.get("http://localhost:8080/health")
            if outcome.ok and outcome.body.get("ok") is True:
                ...

    Args:
        timeout_s: Per-request timeout. A deadline passed to ``request``
            can only shorten it.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        user_agent: User-Agent header sent with every request.
        clock: Monotonic clock for the per-call wall-clock deadline.
    """

    def __init__(
        self,
        timeout_s: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
        user_agent: str = f"lamcheck/{__version__}",
        clock: Clock = time.monotonic,
    ):
        self.timeout_s = timeout_s
        self.user_agent = user_agent
        self._clock = clock
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout_s),
            headers={"User-Agent": self.user_agent},
            transport=transport,
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        json_body: Any = None,
        params: Optional[dict[str, Any]] = None,
        deadline: Optional[Deadline] = None,
    ) -> HttpOutcome:
        """
        Perform exactly one request/response exchange.

        Args:
            method: HTTP method.
            url: Absolute URL.
            token: Optional bearer token.
            json_body: JSON-serializable request body (omitted if None).
            params: Query parameters (URL-encoded by httpx).
            deadline: Optional deadline; the effective timeout is the
                smaller of ``timeout_s`` and the deadline's remaining time.

        Returns:
            HttpOutcome with the parsed JSON body, or ``None`` for an empty body.

        Raises:
            RequestTimeoutError: Timeout or deadline elapsed.
            NetworkError: Connection-level failure.
            MalformedResponseError: Body present but not valid JSON.
        """
        timeout = self.timeout_s
        if deadline is not None:
            if deadline.expired:
                raise RequestTimeoutError(f"Deadline elapsed before {method} {url}", url)
            timeout = deadline.cap(timeout)

        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        request = self.client.build_request(
            method,
            url,
            json=json_body,
            params=params,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )
        call_deadline = Deadline.after(timeout, clock=self._clock)

        try:
            response = self.client.send(request, stream=True)
            try:
                content = _read_within(response, call_deadline, method, url)
            finally:
                response.close()
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"{method} {url} timed out after {timeout:.1f}s", url) from e
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {url} failed: {e}", url) from e

        logger.debug(f"{method} {url} -> {response.status_code} ({len(content)} bytes)")
        return HttpOutcome(
            url=url,
            status=response.status_code,
            ok=response.is_success,
            body=_parse_body(response, content, url),
        )

    def get(self, url: str, **kwargs: Any) -> HttpOutcome:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> HttpOutcome:
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "TimedRequester":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _read_within(response: httpx.Response, deadline: Deadline, method: str, url: str) -> bytes:
    """Drain the body, giving up once ``deadline`` has passed."""
    if deadline.expired:
        raise RequestTimeoutError(f"{method} {url} exceeded {deadline.budget_s:.1f}s before the body", url)
    chunks: list[bytes] = []
    for chunk in response.iter_bytes():
        chunks.append(chunk)
        if deadline.expired:
            raise RequestTimeoutError(
                f"{method} {url} exceeded {deadline.budget_s:.1f}s while reading the body", url
            )
    return b"".join(chunks)


def _parse_body(response: httpx.Response, content: bytes, url: str) -> Any:
    text = content.decode(response.encoding or "utf-8", errors="replace")
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        raise MalformedResponseError(url, response.status_code, text[:_SNIPPET_CHARS]) from e
