"""
Citation Integrity Verifier
============================

Proves that a retrieved citation faithfully represents the stored bytes.

PROTOCOL (every step fails hard; nothing here is retried):
    1. Select a passage from the evidence-span result (pluggable strategy).
       An empty result is a failure.
    2. Correlate a citation with it: by passage_id first, then by ref.
       No correlation is an integrity violation; a passage without a
       provable citation breaks the guarantee this module exists for.
    3. The citation's declared sha256 must be hex and at least 16 chars.
    4. Decode the span by passage_id. Only ``utf8`` is verifiable; any
       other encoding, or an empty utf8 text, is an integrity violation.
    5. SHA-256 over the UTF-8 bytes of the decoded text, as lowercase hex,
       must equal the declared hash exactly.

Step 5 is the core assertion of a run: what was cited is provably what
was stored. Failures here indicate a logical or data-integrity defect,
never a transient condition.

Data Flow:
    ContextResult → Passage → Citation → GET /decode → DecodedSpan → sha256
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from lamcheck.client.deadline import Deadline
from lamcheck.client.http import TimedRequester
from lamcheck.errors import (
    CitationCorrelationError,
    DataShapeError,
    HashMismatchError,
    IntegrityViolation,
    InvalidCitationHashError,
    UnsupportedEncodingError,
)
from lamcheck.schemas.service import (
    AccessCredential,
    Citation,
    ContextResult,
    DecodedSpan,
    Passage,
)
from lamcheck.utils import sha256_hex_utf8
from lamcheck.verify.selection import PassageSelector

logger = logging.getLogger("lamcheck.verify.citation")

DECODE_CALL = "/decode"
SUPPORTED_ENCODING = "utf8"
MIN_HASH_HEX_CHARS = 16

_HEX = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class CitationVerification:
    """A passage whose citation was proven against its decoded bytes."""
    passage: Passage
    citation: Citation
    decoded: DecodedSpan
    computed_sha256: str

    @property
    def declared_sha256(self) -> str:
        return self.citation.sha256

    @property
    def verified(self) -> bool:
        return self.computed_sha256 == self.citation.sha256


# ── Pure protocol steps ────────────────────────────────────────────

def correlate_citation(passage: Passage, citations: Sequence[Citation]) -> Citation:
    """
    Find the citation vouching for ``passage``.

    Matches on ``passage_id``; only if no citation carries that id does it
    fall back to ``ref``. Empty refs never match.

    Raises:
        CitationCorrelationError: No citation correlates.
    """
    for citation in citations:
        if citation.passage_id and citation.passage_id == passage.passage_id:
            return citation
    if passage.ref:
        for citation in citations:
            if citation.ref == passage.ref:
                return citation
    raise CitationCorrelationError(
        f"Failed to find matching citation for passage_id={passage.passage_id} "
        f"ref={passage.ref or '(none)'} among {len(citations)} citation(s)"
    )


def check_declared_hash(citation: Citation) -> str:
    """
    Return the declared hash if it is plausible.

    Raises:
        InvalidCitationHashError: Missing, shorter than 16 chars, or not hex.
    """
    declared = citation.sha256
    if len(declared) < MIN_HASH_HEX_CHARS or not _HEX.match(declared):
        raise InvalidCitationHashError(
            f"Citation {citation.ref or citation.passage_id} has missing or invalid sha256: {declared!r}"
        )
    return declared


def check_decoded_text(decoded: DecodedSpan) -> str:
    """
    Return the decoded text if it can be verified.

    Raises:
        UnsupportedEncodingError: Encoding is not ``utf8``.
        IntegrityViolation: ``utf8`` declared but text is empty.
    """
    if decoded.encoding != SUPPORTED_ENCODING:
        raise UnsupportedEncodingError(decoded.encoding)
    if not decoded.text:
        raise IntegrityViolation("Decoded span declared utf8 but returned empty text")
    return decoded.text


def compare_hashes(declared: str, decoded_text: str) -> str:
    """
    Recompute the content hash and require equality.

    Returns:
        The recomputed lowercase hex digest.

    Raises:
        HashMismatchError: Digest differs from ``declared``.
    """
    computed = sha256_hex_utf8(decoded_text)
    if computed != declared:
        raise HashMismatchError(expected=declared, actual=computed)
    return computed


# ── Verifier ───────────────────────────────────────────────────────

class CitationVerifier:
    """
    Runs the five-step citation protocol against the memory service.

    Usage:
        verifier = CitationVerifier(http, api_url, credential,
                                    selector=SecretTokenSelector("tangerine ladder"))
        proof = verifier.verify(comparison.evidence_span)

    Args:
        http: Shared TimedRequester.
        api_url: Versioned API base URL.
        credential: Minted access credential.
        selector: Strategy picking the passage to verify.
    """

    def __init__(
        self,
        http: TimedRequester,
        api_url: str,
        credential: AccessCredential,
        selector: PassageSelector,
    ):
        self.http = http
        self.api_url = api_url
        self.credential = credential
        self.selector = selector

    def choose_passage(self, result: ContextResult) -> Passage:
        """
        Raises:
            DataShapeError: No passages, or the chosen one has no id.
        """
        passage = self.selector.select(result.passages)
        if passage is None:
            raise DataShapeError(f"No passages returned from /context ({result.passage_kind.value})")
        if not passage.passage_id:
            raise DataShapeError("Chosen passage missing passage_id")
        return passage

    def decode(self, passage_id: str, deadline: Optional[Deadline] = None) -> DecodedSpan:
        """
        Fetch the server's reconstruction of the cited bytes.

        Raises:
            RemoteRejectionError: Non-2xx response.
            DataShapeError: Body is not a decode object.
        """
        outcome = self.http.get(
            f"{self.api_url}/decode",
            params={"passage_id": passage_id},
            token=self.credential.token,
            deadline=deadline,
        ).raise_for_rejection(f"{DECODE_CALL}?passage_id")
        return outcome.parse(DecodedSpan, DECODE_CALL)

    def verify(self, result: ContextResult, deadline: Optional[Deadline] = None) -> CitationVerification:
        """
        Verify one citation from ``result`` end to end.

        Returns:
            CitationVerification with the matching recomputed hash.

        Raises:
            DataShapeError: Step 1 (no usable passage).
            IntegrityViolation: Steps 2-5 (correlation, hash, encoding, mismatch).
            RemoteRejectionError: Decode call rejected.
        """
        passage = self.choose_passage(result)
        citation = correlate_citation(passage, result.citations)
        declared = check_declared_hash(citation)

        logger.info(f"Decoding citation {citation.ref or '(no ref)'} (passage_id={passage.passage_id})")
        decoded = self.decode(passage.passage_id, deadline)
        text = check_decoded_text(decoded)
        computed = compare_hashes(declared, text)

        logger.info(f"Citation {citation.ref or passage.passage_id} verified: sha256={computed}")
        return CitationVerification(
            passage=passage,
            citation=citation,
            decoded=decoded,
            computed_sha256=computed,
        )
