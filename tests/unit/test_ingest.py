"""
Evidence Ingestion Tests
=========================

Byte offsets, claim construction, and the /ingest exchange.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from conftest import ANSWER, SENTENCE
from lamcheck.errors import DataShapeError, RemoteRejectionError
from lamcheck.provision.ingest import (
    EvidenceIngestor,
    build_claim,
    build_demo_document,
    locate_byte_span,
)
from lamcheck.schemas.evidence import EvidenceClaim, EvidenceSpec, IngestRequest, SourceDocument

API_URL = "http://lam.test/v1"


@pytest.mark.unit
class TestByteOffsets:

    def test_multibyte_prefix_shifts_offsets(self):
        text = "áé The demo launch code is: X."
        sentence = "The demo launch code is: X."
        span = locate_byte_span(text, sentence)
        assert text.find(sentence) == 3
        assert span.start == 5
        assert span.end == 5 + len(sentence)

    def test_ascii_offsets_equal_character_index(self):
        text = "abc The code is: X. tail"
        span = locate_byte_span(text, "The code is: X.")
        assert span.start == 4
        assert span.end == 19

    def test_multibyte_inside_sentence_counts_bytes(self):
        text = "x — ünïcode sentence"
        span = locate_byte_span(text, "ünïcode sentence")
        assert span.start == len("x — ".encode("utf-8"))
        assert span.end - span.start == len("ünïcode sentence".encode("utf-8"))

    def test_first_occurrence_wins(self):
        span = locate_byte_span("ab ab", "ab")
        assert (span.start, span.end) == (0, 2)

    def test_missing_sentence_is_internal_error(self):
        with pytest.raises(DataShapeError) as exc:
            locate_byte_span("nothing here", "The code is")
        assert "not found" in str(exc.value)

    def test_span_slices_back_to_sentence(self):
        doc = build_demo_document()
        span = locate_byte_span(doc.text, doc.sentence)
        assert doc.text.encode("utf-8")[span.start:span.end].decode("utf-8") == doc.sentence


@pytest.mark.unit
class TestDemoDocument:

    def test_sentence_carries_answer(self):
        doc = build_demo_document()
        assert doc.sentence == SENTENCE
        assert ANSWER in doc.sentence
        assert doc.sentence in doc.text
        assert "Casey" in doc.text
        assert doc.content_type == "text/plain; charset=utf-8"

    def test_custom_answer(self):
        doc = build_demo_document("blue kite")
        assert doc.sentence == "The demo launch code is: blue kite."
        assert doc.answer == "blue kite"

    def test_document_rejects_detached_sentence(self):
        with pytest.raises(ValidationError):
            SourceDocument(text="abc", sentence="The code is: X.", answer="X")

    def test_claim_shape(self):
        claim = build_claim(build_demo_document())
        assert claim.type == "FACT"
        assert ANSWER in claim.canonical
        assert claim.evidence.span_type == "text"
        assert claim.evidence.transform == "identity"
        assert claim.evidence.quote_budget == 512
        assert claim.evidence.start_pos == 41


@pytest.mark.unit
class TestIngestRequest:

    def test_end_beyond_content_rejected(self):
        claim = EvidenceClaim(canonical="c", evidence=EvidenceSpec(start_pos=0, end_pos=10))
        with pytest.raises(ValidationError):
            IngestRequest(content_type="text/plain", content="short", claims=[claim])

    def test_end_at_byte_length_accepted(self):
        claim = EvidenceClaim(canonical="c", evidence=EvidenceSpec(start_pos=0, end_pos=5))
        request = IngestRequest(content_type="text/plain", content="é é", claims=[claim])
        assert request.claims[0].evidence.end_pos == 5

    def test_reversed_span_rejected(self):
        with pytest.raises(ValidationError):
            EvidenceSpec(start_pos=5, end_pos=2)


@pytest.mark.unit
class TestEvidenceIngestor:

    def test_ingest_returns_cell(self, http, fake_service, credential):
        receipt = EvidenceIngestor(http, API_URL, credential).ingest(build_demo_document())
        assert receipt.cell_id == "cell-1"

    def test_ingest_body_and_auth(self, http, fake_service, credential):
        doc = build_demo_document()
        EvidenceIngestor(http, API_URL, credential).ingest(doc)
        request = fake_service.calls("/v1/ingest")[0]
        body = json.loads(request.content)
        evidence = body["claims"][0]["evidence"]
        assert request.headers["Authorization"] == "Bearer tok-abcdef123456"
        assert body["content_type"] == "text/plain; charset=utf-8"
        assert body["content"] == doc.text
        assert body["claims"][0]["type"] == "FACT"
        content_bytes = body["content"].encode("utf-8")
        assert content_bytes[evidence["start_pos"]:evidence["end_pos"]].decode("utf-8") == SENTENCE

    @pytest.mark.parametrize("body", [{}, {"cell_id": ""}, {"cell_id": "   "}, None])
    def test_missing_cell_id_is_fatal(self, http, fake_service, credential, body):
        fake_service.ingest = [(200, body)]
        with pytest.raises(DataShapeError) as exc:
            EvidenceIngestor(http, API_URL, credential).ingest(build_demo_document())
        assert str(exc.value) == "/ingest response missing cell_id"

    def test_rejection_reports_status_and_body(self, http, fake_service, credential):
        fake_service.ingest = [(422, {"detail": "bad span"})]
        with pytest.raises(RemoteRejectionError) as exc:
            EvidenceIngestor(http, API_URL, credential).ingest(build_demo_document())
        assert str(exc.value) == '/ingest failed (422): {"detail": "bad span"}'

    def test_rejection_without_body(self, http, fake_service, credential):
        fake_service.ingest = [(500, None)]
        with pytest.raises(RemoteRejectionError) as exc:
            EvidenceIngestor(http, API_URL, credential).ingest(build_demo_document())
        assert str(exc.value) == "/ingest failed (500): {}"
