"""
Evidence Schema
================

Defines what lamcheck sends to the memory service at ingestion time:
- The source document (full UTF-8 text with one embedded secret sentence)
- A claim plus the byte span of the sentence that supports it

Design Decisions:
    - Offsets are BYTE offsets into the UTF-8 encoding, not character
      indices. They diverge as soon as any multi-byte character precedes
      the supporting sentence.
    - The ingest request validates ``start_pos <= end_pos <= len(bytes)``
      before it is ever sent.

Data Flow:
    SourceDocument → locate_byte_span → EvidenceClaim → IngestRequest
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from lamcheck.utils import utf8_len


class SourceDocument(BaseModel):
    """
    The text ingested for a verification run.

    Invariant:
        ``sentence`` is a substring of ``text`` and contains ``answer``.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Full document text")
    sentence: str = Field(description="The supporting sentence embedded in the text")
    answer: str = Field(description="Secret token the sentence carries")
    content_type: str = Field(default="text/plain; charset=utf-8", description="MIME type sent on ingest")

    @model_validator(mode="after")
    def validate_embedding(self) -> "SourceDocument":
        """Ensure the sentence is in the text and carries the answer."""
        if self.answer not in self.sentence:
            raise ValueError(f"Sentence does not contain the answer {self.answer!r}")
        if self.sentence not in self.text:
            raise ValueError("Sentence is not a substring of the document text")
        return self

    @property
    def byte_length(self) -> int:
        """Length of the document in UTF-8 bytes."""
        return utf8_len(self.text)


class ByteSpan(BaseModel):
    """Half-open ``[start, end)`` range of UTF-8 byte offsets."""
    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0, description="Start byte offset (inclusive)")
    end: int = Field(ge=0, description="End byte offset (exclusive)")

    @model_validator(mode="after")
    def validate_order(self) -> "ByteSpan":
        if self.start > self.end:
            raise ValueError(f"Span start ({self.start}) must be <= end ({self.end})")
        return self


class EvidenceSpec(BaseModel):
    """
    Evidence locator attached to a claim.

    Schema:
        {"span_type": "text", "transform": "identity",
         "start_pos": 42, "end_pos": 84, "quote_budget": 512}
    """
    model_config = ConfigDict(frozen=True)

    span_type: str = Field(default="text", description="Kind of span (text, bytes, ...)")
    transform: str = Field(default="identity", description="Transform applied before quoting")
    start_pos: int = Field(ge=0, description="Start UTF-8 byte offset")
    end_pos: int = Field(ge=0, description="End UTF-8 byte offset (exclusive)")
    quote_budget: int = Field(default=512, gt=0, description="Max bytes the service may quote")

    @model_validator(mode="after")
    def validate_order(self) -> "EvidenceSpec":
        if self.start_pos > self.end_pos:
            raise ValueError(f"start_pos ({self.start_pos}) must be <= end_pos ({self.end_pos})")
        return self


class EvidenceClaim(BaseModel):
    """A claim and the evidence span that supports it."""
    model_config = ConfigDict(frozen=True)

    type: str = Field(default="FACT", description="Claim type")
    canonical: str = Field(min_length=1, description="Canonical statement of the claim")
    evidence: EvidenceSpec


class IngestRequest(BaseModel):
    """
    Body of ``POST /ingest``.

    Invariant:
        every claim's ``end_pos`` is within the UTF-8 length of ``content``
    """
    model_config = ConfigDict(frozen=True)

    content_type: str
    content: str
    claims: list[EvidenceClaim] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_claims_within_content(self) -> "IngestRequest":
        size = utf8_len(self.content)
        for claim in self.claims:
            if claim.evidence.end_pos > size:
                raise ValueError(
                    f"Claim {claim.canonical!r} end_pos ({claim.evidence.end_pos}) "
                    f"exceeds content length ({size} bytes)"
                )
        return self
