"""
Evidence Ingestion
===================

Ingests a document together with one evidence claim whose span points
at the supporting sentence.

CRITICAL INVARIANT:
    ``start_pos`` / ``end_pos`` are offsets into the UTF-8 ENCODING of the
    document. ``str.find`` returns a character index; converting it means
    measuring the encoded prefix, not reusing the index. The two differ
    whenever a multi-byte character (é, —, emoji) precedes the sentence,
    and a character offset would make the service quote the wrong bytes.

Data Flow:
    SourceDocument → locate_byte_span → IngestRequest → POST /ingest → cell_id
"""

from __future__ import annotations

import logging
from typing import Optional

from lamcheck.client.deadline import Deadline
from lamcheck.client.http import TimedRequester
from lamcheck.errors import DataShapeError
from lamcheck.schemas.evidence import (
    ByteSpan,
    EvidenceClaim,
    EvidenceSpec,
    IngestRequest,
    SourceDocument,
)
from lamcheck.schemas.service import AccessCredential, IngestReceipt
from lamcheck.utils import utf8_len

logger = logging.getLogger("lamcheck.provision.ingest")

INGEST_CALL = "/ingest"

DEMO_ANSWER = "tangerine ladder"
DEMO_QUERY = "What is the demo launch code?"
DEFAULT_QUOTE_BUDGET = 512


def build_demo_document(answer: str = DEMO_ANSWER) -> SourceDocument:
    """
    The small document every run ingests.

    The supporting sentence carries ``answer``; the rest of the text is
    a distractor line and an instruction that repeats the answer.
    """
    sentence = f"The demo launch code is: {answer}."
    text = (
        "LAM Hello World (proof-carrying memory)\n"
        "\n"
        f"{sentence}\n"
        "The on-call engineer is: Casey.\n"
        "\n"
        f'If asked for the demo launch code, respond with exactly: "{answer}".'
    )
    return SourceDocument(text=text, sentence=sentence, answer=answer)


def locate_byte_span(text: str, sentence: str) -> ByteSpan:
    """
    Find the first occurrence of ``sentence`` and return its UTF-8 byte span.

    Example:
        >>> locate_byte_span("áé The code is: X.", "The code is: X.")
        ByteSpan(start=5, end=20)

    Raises:
        DataShapeError: ``sentence`` does not occur in ``text``.
    """
    index = text.find(sentence)
    if index < 0:
        raise DataShapeError("Internal error: supporting sentence not found in document")
    start = utf8_len(text[:index])
    return ByteSpan(start=start, end=start + utf8_len(sentence))


def build_claim(
    document: SourceDocument,
    quote_budget: int = DEFAULT_QUOTE_BUDGET,
) -> EvidenceClaim:
    """A FACT claim whose evidence span covers ``document.sentence``."""
    span = locate_byte_span(document.text, document.sentence)
    return EvidenceClaim(
        type="FACT",
        canonical=f"demo launch code is {document.answer}",
        evidence=EvidenceSpec(
            span_type="text",
            transform="identity",
            start_pos=span.start,
            end_pos=span.end,
            quote_budget=quote_budget,
        ),
    )


class EvidenceIngestor:
    """
    Submits a document plus its evidence claim as one ingest request.

    Args:
        http: Shared TimedRequester.
        api_url: Versioned API base URL.
        credential: Minted access credential.
    """

    def __init__(self, http: TimedRequester, api_url: str, credential: AccessCredential):
        self.http = http
        self.api_url = api_url
        self.credential = credential

    def build_request(self, document: SourceDocument) -> IngestRequest:
        return IngestRequest(
            content_type=document.content_type,
            content=document.text,
            claims=[build_claim(document)],
        )

    def ingest(self, document: SourceDocument, deadline: Optional[Deadline] = None) -> IngestReceipt:
        """
        Ingest ``document`` and return the created cell.

        Raises:
            DataShapeError: Sentence not in document, or no ``cell_id`` returned.
            RemoteRejectionError: Non-2xx response.
        """
        request = self.build_request(document)
        evidence = request.claims[0].evidence
        logger.debug(
            f"Ingesting {document.byte_length} bytes; evidence span "
            f"[{evidence.start_pos}, {evidence.end_pos})"
        )

        outcome = self.http.post(
            f"{self.api_url}/ingest",
            token=self.credential.token,
            json_body=request.model_dump(),
            deadline=deadline,
        ).raise_for_rejection(INGEST_CALL)

        receipt = outcome.parse(IngestReceipt, INGEST_CALL) if isinstance(outcome.body, dict) else IngestReceipt()
        if not receipt.cell_id:
            raise DataShapeError("/ingest response missing cell_id")
        logger.info(f"Ingested cell_id={receipt.cell_id}")
        return receipt
