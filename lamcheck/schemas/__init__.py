"""
lamcheck Data Schemas
======================

Pydantic v2 models for the data lamcheck exchanges with the memory
service and the audit record it produces:

1. evidence     — Source document, byte spans, evidence claims, ingest body
2. service      — Snapshots of key, ingest, enrichment, context, decode responses
3. certificate  — Sealed verification certificate

All schemas support:
- Runtime validation with Pydantic
- JSON Schema export for interoperability
"""

from lamcheck.schemas.evidence import (
    ByteSpan,
    EvidenceClaim,
    EvidenceSpec,
    IngestRequest,
    SourceDocument,
)
from lamcheck.schemas.service import (
    AccessCredential,
    Citation,
    ContextQuery,
    ContextResult,
    DecodedSpan,
    EnrichmentState,
    EnrichmentStatus,
    IngestReceipt,
    KeyRequest,
    Passage,
    PassageKind,
)
from lamcheck.schemas.certificate import (
    DecodedSpanSummary,
    VerificationCertificate,
)

__all__ = [
    # Evidence
    "ByteSpan",
    "EvidenceClaim",
    "EvidenceSpec",
    "IngestRequest",
    "SourceDocument",
    # Service
    "AccessCredential",
    "Citation",
    "ContextQuery",
    "ContextResult",
    "DecodedSpan",
    "EnrichmentState",
    "EnrichmentStatus",
    "IngestReceipt",
    "KeyRequest",
    "Passage",
    "PassageKind",
    # Certificate
    "DecodedSpanSummary",
    "VerificationCertificate",
]
