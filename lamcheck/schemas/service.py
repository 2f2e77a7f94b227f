"""
Memory Service Wire Schema
===========================

Typed snapshots of the memory service responses lamcheck depends on.

Parsing is lenient about shape (missing scalars become empty strings,
non-list collections become empty lists) because the callers decide
which absences are fatal. Nothing here is mutated after construction.

Endpoints covered:
    POST /admin/keys          → AccessCredential
    POST /ingest              → IngestReceipt
    GET  /enrichment/status   → EnrichmentStatus
    POST /context             → ContextResult (passages + citations)
    GET  /decode              → DecodedSpan
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_list(value: Any) -> list:
    return value if isinstance(value, list) else []


# Scalar that is always a stripped string, whatever JSON type arrived.
Text = Annotated[str, BeforeValidator(_to_text)]


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ── Credentials ────────────────────────────────────────────────────

class KeyRequest(_Snapshot):
    """Body of ``POST /admin/keys``."""
    tenant_id: int = Field(ge=1)
    scope_user: str = Field(min_length=1)
    namespace: str
    label: str


class AccessCredential(_Snapshot):
    """
    Scoped bearer token minted for the rest of the run.

    Held in memory only. ``repr`` masks the token so it never leaks
    into logs or tracebacks.
    """
    token: str = Field(repr=False, min_length=1)
    tenant_id: int
    scope_user: str
    namespace: str
    label: str = ""

    @property
    def masked(self) -> str:
        """Token with all but the last four characters hidden."""
        return f"***{self.token[-4:]}" if len(self.token) > 4 else "***"


# ── Ingestion & enrichment ─────────────────────────────────────────

class IngestReceipt(_Snapshot):
    """Response of ``POST /ingest``."""
    cell_id: Text = ""


class EnrichmentState(str, Enum):
    """
    Bucketed enrichment status.

    Only DONE and FAILED are terminal; every other status string the
    service reports (pending, running, queued, ...) is PENDING.
    """
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"

    @classmethod
    def classify(cls, status: str) -> "EnrichmentState":
        if status == "done":
            return cls.DONE
        if status == "failed":
            return cls.FAILED
        return cls.PENDING


class EnrichmentStatus(_Snapshot):
    """Response of ``GET /enrichment/status``."""
    status: Text = ""
    last_error: Text = ""

    @property
    def state(self) -> EnrichmentState:
        return EnrichmentState.classify(self.status)


# ── Context retrieval ──────────────────────────────────────────────

class PassageKind(str, Enum):
    """Retrieval policy selector for ``POST /context``."""
    SENTENCE_WINDOW = "sentence_window_v1"
    EVIDENCE_SPAN = "evidence_span_v1"


class ContextQuery(_Snapshot):
    """Body of ``POST /context``."""
    q: str = Field(min_length=1)
    limit: int = Field(ge=1, le=50)
    max_chars: int = Field(ge=200, le=20_000)
    passage_kind: PassageKind


class Passage(_Snapshot):
    """A unit of retrieved context."""
    passage_id: Text = ""
    ref: Text = ""
    text: Text = ""


class Citation(_Snapshot):
    """
    Declared provenance of a passage.

    ``sha256`` is the hex SHA-256 of the passage's decoded UTF-8 bytes.
    """
    ref: Text = ""
    passage_id: Text = ""
    sha256: Text = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.ref and self.passage_id and self.sha256)


class ContextResult(_Snapshot):
    """
    Response of ``POST /context`` for one passage kind.

    ``raw`` keeps the body exactly as received.
    """
    passage_kind: PassageKind
    context_text: Text = ""
    passages: list[Passage] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    raw: Optional[dict[str, Any]] = Field(default=None, repr=False)

    @classmethod
    def from_body(cls, kind: PassageKind, body: Any) -> "ContextResult":
        body = body if isinstance(body, dict) else {}
        return cls(
            passage_kind=kind,
            context_text=body.get("context_text"),
            passages=[p for p in _to_list(body.get("passages")) if isinstance(p, dict)],
            citations=[c for c in _to_list(body.get("citations")) if isinstance(c, dict)],
            raw=body,
        )


# ── Decode ─────────────────────────────────────────────────────────

class DecodedSpan(_Snapshot):
    """
    Response of ``GET /decode``: the server's reconstruction of cited bytes.

    Only ``encoding`` and ``text`` take part in verification. The offsets
    are display metadata and are kept as received, stringified.
    """
    encoding: Text = ""
    text: str = ""
    cell_id: Text = ""
    span_type: Text = ""
    transform: Text = ""
    start_pos: Text = ""
    end_pos: Text = ""

    @field_validator("text", mode="before")
    @classmethod
    def _text_verbatim(cls, value: Any) -> str:
        # decoded bytes are hashed as-is; never strip
        return "" if value is None else str(value)
