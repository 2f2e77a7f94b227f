"""
Console Report
===============

Human-readable progress and results for a lamcheck run, written to
stdout (logs go to stderr, so the two never interleave in a pipe).

Output shape of a successful run:
    [1/5] ... [5/5] progress lines
    === RAG-ish (sentence_window_v1) ===     context text
    === LAM-ish (evidence_span_v1) ===       context text
    Citations:                               one line per complete citation
    Decoded span (verified):                 cell, span type, offsets, text
    export TOKEN=...                         for manual follow-up calls
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence, TextIO

from lamcheck.schemas.service import AccessCredential, Citation, ContextResult, PassageKind
from lamcheck.verify.citation import CitationVerification

TOTAL_STAGES = 5

POLICY_LABELS = {
    PassageKind.SENTENCE_WINDOW: "RAG-ish",
    PassageKind.EVIDENCE_SPAN: "LAM-ish",
}


class ConsoleReporter:
    """
    Prints run progress and results.

    Args:
        out: Stream for the report (defaults to ``sys.stdout``).
    """

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def stage(self, number: int, message: str) -> None:
        self._print(f"[{number}/{TOTAL_STAGES}] {message}")

    def context(self, result: ContextResult) -> None:
        label = POLICY_LABELS.get(result.passage_kind, result.passage_kind.value)
        self._print()
        self._print(f"=== {label} ({result.passage_kind.value}) ===")
        self._print(result.context_text or "(empty context_text)")

    def citations(self, citations: Sequence[Citation]) -> None:
        self._print()
        self._print("Citations:")
        for c in citations:
            if not c.is_complete:
                continue
            self._print(f"- {c.ref} passage_id={c.passage_id} sha256={c.sha256}")

    def verification(self, proof: CitationVerification) -> None:
        decoded = proof.decoded
        self._print()
        self._print("Decoded span (verified):")
        self._print(f"- cell_id={decoded.cell_id}")
        self._print(f"- span_type={decoded.span_type} transform={decoded.transform}")
        self._print(f"- start_pos={decoded.start_pos} end_pos={decoded.end_pos}")
        self._print(f"- sha256={proof.computed_sha256}")
        self._print()
        self._print(decoded.text)

    def token(self, credential: AccessCredential) -> None:
        self._print()
        self._print("Dev token (use for manual curl calls):")
        self._print(f"export TOKEN={credential.token}")

    def note(self, message: str) -> None:
        self._print()
        self._print(message)
