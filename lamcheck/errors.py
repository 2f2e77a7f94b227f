"""
Error Taxonomy
===============

Every hard failure raised by lamcheck is a ``LamCheckError`` tagged with
an ``ErrorKind``. Callers branch on ``err.kind`` (or on the concrete
subclass) instead of string-matching messages.

Kinds:
    - CONFIGURATION: required setting missing; raised before any network call
    - TIMEOUT:       a deadline elapsed while waiting for a remote state
    - TRANSPORT:     a single request timed out or could not reach the peer
    - REJECTION:     the service answered a one-shot call with a non-2xx status
    - JOB_FAILED:    background enrichment reported an explicit failure
    - DATA_SHAPE:    a response lacked a field the contract promises
    - INTEGRITY:     the citation could not be proven to match stored bytes

Only TRANSPORT errors are ever folded into "not yet" (by the poller);
everything else terminates the run.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Failure class of a ``LamCheckError``."""
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    REJECTION = "rejection"
    JOB_FAILED = "job_failed"
    DATA_SHAPE = "data_shape"
    INTEGRITY = "integrity"


class LamCheckError(Exception):
    """Base class for all lamcheck failures."""
    kind: ErrorKind = ErrorKind.DATA_SHAPE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# ── Configuration ──────────────────────────────────────────────────

class ConfigurationError(LamCheckError):
    """A required setting is missing or unusable."""
    kind = ErrorKind.CONFIGURATION


# ── Waiting ────────────────────────────────────────────────────────

class WaitTimeoutError(LamCheckError):
    """
    A deadline elapsed before the awaited remote state was reached.

    Attributes:
        what: Human-readable name of the awaited resource.
        waited_s: Seconds actually spent waiting.
        attempts: Number of probe invocations made.
    """
    kind = ErrorKind.TIMEOUT

    def __init__(self, what: str, waited_s: float, attempts: int, hint: Optional[str] = None):
        message = f"Timed out waiting for {what}"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)
        self.what = what
        self.waited_s = waited_s
        self.attempts = attempts
        self.hint = hint


# ── Transport ──────────────────────────────────────────────────────

class TransportError(LamCheckError):
    """A single request did not produce an HTTP response."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class RequestTimeoutError(TransportError):
    """The request exceeded its timeout (or its deadline) and was cancelled."""


class NetworkError(TransportError):
    """Connection refused, DNS failure, reset, or similar."""


# ── Remote answers ─────────────────────────────────────────────────

class RemoteRejectionError(LamCheckError):
    """A one-shot call returned a status outside the 2xx range."""
    kind = ErrorKind.REJECTION

    def __init__(self, call: str, status: int, body: Any):
        raw = json.dumps(body if body is not None else {}, ensure_ascii=False, default=str)
        super().__init__(f"{call} failed ({status}): {raw}")
        self.call = call
        self.status = status
        self.body = body


class TerminalJobError(LamCheckError):
    """Background enrichment for a cell reported ``failed``."""
    kind = ErrorKind.JOB_FAILED

    def __init__(self, cell_id: str, cause: str):
        cause = cause or "unknown"
        super().__init__(f"Enrichment failed for cell_id={cell_id}: {cause}")
        self.cell_id = cell_id
        self.cause = cause


class DataShapeError(LamCheckError):
    """A response (or local input) violated the expected contract shape."""
    kind = ErrorKind.DATA_SHAPE


class MalformedResponseError(DataShapeError):
    """A non-empty response body could not be parsed as JSON."""

    def __init__(self, url: str, status: int, snippet: str):
        super().__init__(f"Malformed JSON from {url} ({status}): {snippet!r}")
        self.url = url
        self.status = status


# ── Integrity ──────────────────────────────────────────────────────

class IntegrityViolation(LamCheckError):
    """The cited passage could not be proven to match the stored bytes."""
    kind = ErrorKind.INTEGRITY


class CitationCorrelationError(IntegrityViolation):
    """No citation correlates with the chosen passage."""


class InvalidCitationHashError(IntegrityViolation):
    """The citation's declared hash is missing, truncated, or not hex."""


class UnsupportedEncodingError(IntegrityViolation):
    """The decode endpoint returned an encoding this protocol cannot verify."""

    def __init__(self, encoding: str):
        super().__init__(
            f"Unsupported encoding for citation verification: {encoding or 'empty'} (expected utf8)"
        )
        self.encoding = encoding


class HashMismatchError(IntegrityViolation):
    """Recomputed SHA-256 of the decoded span differs from the citation."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"SHA-256 mismatch: expected {expected} got {actual}")
        self.expected = expected
        self.actual = actual
