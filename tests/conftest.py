"""
lamcheck Test Configuration
============================

Shared fixtures for the entire test suite:
    - FakeClock:         deterministic monotonic clock + sleep
    - FakeMemoryService: scripted memory service behind httpx.MockTransport
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import httpx
import pytest

from lamcheck.client.http import TimedRequester
from lamcheck.config import LamCheckConfig
from lamcheck.schemas.service import AccessCredential

API_URL = "http://lam.test/v1"
ANSWER = "tangerine ladder"
SENTENCE = f"The demo launch code is: {ANSWER}."


# ── Markers ─────────────────────────────────────────────────────

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line("markers", "integration: multi-component tests")


# ── Fakes ───────────────────────────────────────────────────────

def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeMemoryService:
    """
    Scripted stand-in for the memory service.

    Each endpoint has a queue of responses; the last entry repeats once
    the queue is drained. An entry is ``(status, body)`` where body is a
    dict (sent as JSON), a str (sent verbatim), None (empty body), or an
    exception instance (raised as a transport failure).
    """

    def __init__(self, decoded_text: str = SENTENCE):
        self.requests: list[httpx.Request] = []
        self.decoded_text = decoded_text
        self.health: list[tuple[int, Any]] = [(200, {"ok": True})]
        self.keys: list[tuple[int, Any]] = [(200, {"token": "tok-abcdef123456"})]
        self.ingest: list[tuple[int, Any]] = [(200, {"cell_id": "cell-1"})]
        self.enrichment: list[tuple[int, Any]] = [(200, {"status": "done"})]
        self.context: dict[str, list[tuple[int, Any]]] = {
            "sentence_window_v1": [(200, self.context_body("sentence_window_v1"))],
            "evidence_span_v1": [(200, self.context_body("evidence_span_v1"))],
        }
        self.decode: list[tuple[int, Any]] = [(200, self.decode_body())]

    # ── canned bodies ───────────────────────────────────────────
    def context_body(self, kind: str, sha256: str | None = None) -> dict[str, Any]:
        text = self.decoded_text
        return {
            "context_text": f"[1] {text}" if kind == "evidence_span_v1" else f"...{text} The on-call...",
            "passages": [
                {"passage_id": "p-other", "ref": "[2]", "text": "The on-call engineer is: Casey."},
                {"passage_id": "p-1", "ref": "[1]", "text": text},
            ],
            "citations": [
                {"ref": "[2]", "passage_id": "p-other", "sha256": sha256_hex("The on-call engineer is: Casey.")},
                {"ref": "[1]", "passage_id": "p-1", "sha256": sha256 or sha256_hex(text)},
            ],
        }

    def decode_body(self, **overrides: Any) -> dict[str, Any]:
        body = {
            "encoding": "utf8",
            "text": self.decoded_text,
            "cell_id": "cell-1",
            "span_type": "text",
            "transform": "identity",
            "start_pos": 41,
            "end_pos": 41 + len(self.decoded_text.encode("utf-8")),
        }
        body.update(overrides)
        return body

    # ── transport ───────────────────────────────────────────────
    @staticmethod
    def _next(queue: list[tuple[int, Any]]) -> tuple[int, Any]:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/health":
            status, body = self._next(self.health)
        elif path == "/v1/admin/keys":
            status, body = self._next(self.keys)
        elif path == "/v1/ingest":
            status, body = self._next(self.ingest)
        elif path == "/v1/enrichment/status":
            status, body = self._next(self.enrichment)
        elif path == "/v1/context":
            kind = json.loads(request.content)["passage_kind"]
            status, body = self._next(self.context[kind])
        elif path == "/v1/decode":
            status, body = self._next(self.decode)
        else:
            status, body = 404, {"error": "not found"}

        if isinstance(body, Exception):
            raise body
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_service() -> FakeMemoryService:
    return FakeMemoryService()


@pytest.fixture
def http(fake_service: FakeMemoryService) -> TimedRequester:
    requester = TimedRequester(timeout_s=5.0, transport=httpx.MockTransport(fake_service.handler))
    yield requester
    requester.close()


@pytest.fixture
def config() -> LamCheckConfig:
    return LamCheckConfig(
        api_url=API_URL,
        admin_token="admin-secret",
        demo_scope_user="tester",
        demo_namespace="default",
        demo_tenant_id=7,
    )


@pytest.fixture
def credential() -> AccessCredential:
    return AccessCredential(
        token="tok-abcdef123456",
        tenant_id=7,
        scope_user="tester",
        namespace="default",
        label="lamcheck-test",
    )
