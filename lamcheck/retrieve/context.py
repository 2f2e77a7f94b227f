"""
Context Comparison
===================

Asks the same question twice, changing only the passage kind:

    - sentence_window_v1: RAG-style windows of surrounding sentences
    - evidence_span_v1:   spans backed by ingested evidence claims

Result count and character budget are identical for both calls, so any
difference in the answers comes from the retrieval policy alone.
Ingestion and enrichment have already succeeded by the time this runs,
so a rejection from either call is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from lamcheck.client.deadline import Deadline
from lamcheck.client.http import TimedRequester
from lamcheck.schemas.service import AccessCredential, ContextQuery, ContextResult, PassageKind

logger = logging.getLogger("lamcheck.retrieve.context")


@dataclass(frozen=True)
class ContextComparison:
    """Both retrieval answers for one query."""
    query: str
    sentence_window: ContextResult
    evidence_span: ContextResult

    @property
    def results(self) -> tuple[ContextResult, ContextResult]:
        return (self.sentence_window, self.evidence_span)


class ContextComparator:
    """
    Issues ``POST /context`` once per passage kind.

    Args:
        http: Shared TimedRequester.
        api_url: Versioned API base URL.
        credential: Minted access credential.
        limit: Passages per call.
        max_chars: Character budget per call.
    """

    def __init__(
        self,
        http: TimedRequester,
        api_url: str,
        credential: AccessCredential,
        limit: int = 8,
        max_chars: int = 1200,
    ):
        self.http = http
        self.api_url = api_url
        self.credential = credential
        self.limit = limit
        self.max_chars = max_chars

    def fetch(self, query: str, kind: PassageKind, deadline: Optional[Deadline] = None) -> ContextResult:
        """
        Retrieve context for ``query`` under one passage kind.

        Raises:
            RemoteRejectionError: Non-2xx response.
        """
        body = ContextQuery(q=query, limit=self.limit, max_chars=self.max_chars, passage_kind=kind)
        outcome = self.http.post(
            f"{self.api_url}/context",
            token=self.credential.token,
            json_body=body.model_dump(mode="json"),
            deadline=deadline,
        ).raise_for_rejection(f"/context ({kind.value})")

        result = ContextResult.from_body(kind, outcome.body)
        logger.info(
            f"{kind.value}: {len(result.passages)} passage(s), "
            f"{len(result.citations)} citation(s), {len(result.context_text)} chars"
        )
        return result

    def compare(self, query: str, deadline: Optional[Deadline] = None) -> ContextComparison:
        """Run the sentence-window call, then the evidence-span call."""
        return ContextComparison(
            query=query,
            sentence_window=self.fetch(query, PassageKind.SENTENCE_WINDOW, deadline),
            evidence_span=self.fetch(query, PassageKind.EVIDENCE_SPAN, deadline),
        )
