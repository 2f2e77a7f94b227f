"""
Verification Certificate Schema
================================

The VerificationCertificate is the audit trail of one lamcheck run: it
records which passage was chosen, which citation vouched for it, and the
declared and recomputed content hashes that prove the citation faithful.

Design Philosophy:
    The certificate is the machine-readable "proof" that the cited text
    is exactly what was stored. It enables:
    - Post-hoc auditing ("which span did this run verify?")
    - Reproducibility (config hash stamped on every certificate)
    - Tamper detection (integrity hash over the certificate content)

    It never carries the minted token or the admin credential.

Data Flow:
    CitationVerification + run metadata → VerificationCertificate.seal()
"""

from __future__ import annotations

import time

from pydantic import BaseModel, Field

from lamcheck.utils import compute_content_hash


class DecodedSpanSummary(BaseModel):
    """Location of the verified span inside the ingested cell."""
    cell_id: str = ""
    span_type: str = ""
    transform: str = ""
    start_pos: str = Field(default="", description="Start offset as reported by /decode")
    end_pos: str = Field(default="", description="End offset as reported by /decode")
    byte_length: int = Field(default=0, ge=0, description="UTF-8 length of the decoded text")


class VerificationCertificate(BaseModel):
    """
    Complete audit record for a single lamcheck run.

    The certificate includes an integrity hash computed over its
    content (excluding the hash field itself), enabling tamper
    detection.
    """
    # ── Run ────────────────────────────────────────────────────────
    run_id: str = Field(description="Unique run identifier")
    timestamp: str = Field(
        default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        description="ISO 8601 timestamp"
    )
    config_hash: str = Field(default="", description="Hash of the configuration used")
    api_url: str = Field(default="", description="Memory service API base URL")

    # ── Scope ──────────────────────────────────────────────────────
    tenant_id: int = Field(ge=1)
    namespace: str
    scope_user: str

    # ── Flow ───────────────────────────────────────────────────────
    cell_id: str = Field(description="Cell created by ingestion")
    query: str = Field(description="Question asked under both passage kinds")
    passage_kinds: list[str] = Field(default_factory=list, description="Retrieval policies compared")
    passage_counts: dict[str, int] = Field(default_factory=dict, description="Passages returned per kind")

    # ── Proof ──────────────────────────────────────────────────────
    passage_id: str
    citation_ref: str
    declared_sha256: str
    computed_sha256: str
    decoded: DecodedSpanSummary = Field(default_factory=DecodedSpanSummary)

    # ── Integrity ──────────────────────────────────────────────────
    integrity_hash: str = Field(
        default="",
        description="SHA-256 of certificate content (tamper detection)"
    )

    @property
    def verified(self) -> bool:
        """True when the declared and recomputed hashes agree."""
        return bool(self.declared_sha256) and self.declared_sha256 == self.computed_sha256

    def compute_integrity_hash(self) -> str:
        """
        Compute the integrity hash over all certificate content
        except the integrity_hash field itself.
        """
        content = self.model_dump(exclude={"integrity_hash"})
        return compute_content_hash(content)

    def seal(self) -> "VerificationCertificate":
        """
        Seal the certificate by computing and storing the integrity hash.

        Call this after all fields are populated.

        Returns:
            Self, with integrity_hash populated.
        """
        self.integrity_hash = self.compute_integrity_hash()
        return self

    def verify_integrity(self) -> bool:
        """
        Verify that the certificate has not been tampered with.

        Returns:
            True if the integrity hash matches the content.
        """
        if not self.integrity_hash:
            return False
        return self.integrity_hash == self.compute_integrity_hash()
