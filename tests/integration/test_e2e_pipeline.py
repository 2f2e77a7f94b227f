"""
End-to-End Pipeline Tests
==========================

Full runs against the scripted memory service:
    - the happy path produces the report, a sealed certificate, and
      issues requests in strict stage order
    - every hard failure stops the run at its own stage
    - the CLI maps outcomes to exit codes
"""

from __future__ import annotations

import io
import json
import logging

import httpx
import pytest

from conftest import API_URL, SENTENCE, sha256_hex
from lamcheck.cli import main
from lamcheck.client.http import TimedRequester
from lamcheck.config import LamCheckConfig
from lamcheck.errors import (
    ConfigurationError,
    HashMismatchError,
    RemoteRejectionError,
    TerminalJobError,
    WaitTimeoutError,
)
from lamcheck.pipeline import DemoPipeline
from lamcheck.render.report import ConsoleReporter
from lamcheck.schemas.certificate import VerificationCertificate


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def pipeline(config, http, out, fake_clock):
    return DemoPipeline(
        config,
        http=http,
        reporter=ConsoleReporter(out),
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )


@pytest.mark.integration
class TestSuccessfulRun:

    def test_full_run_verifies_citation(self, pipeline, fake_service):
        result = pipeline.run()

        assert result.verified
        assert result.cell_id == "cell-1"
        assert result.verification.passage.passage_id == "p-1"
        assert result.verification.computed_sha256 == sha256_hex(SENTENCE)
        assert set(result.timings) == {"health_ms", "mint_ms", "ingest_ms", "enrichment_ms", "context_ms", "verify_ms"}

    def test_requests_follow_stage_order(self, pipeline, fake_service):
        pipeline.run()
        assert fake_service.paths == [
            "/health",
            "/v1/admin/keys",
            "/v1/ingest",
            "/v1/enrichment/status",
            "/v1/context",
            "/v1/context",
            "/v1/decode",
        ]

    def test_admin_token_used_only_for_minting(self, pipeline, fake_service):
        pipeline.run()
        auth = [(r.url.path, r.headers.get("Authorization")) for r in fake_service.requests]
        assert auth[0] == ("/health", None)
        assert auth[1] == ("/v1/admin/keys", "Bearer admin-secret")
        assert all(header == "Bearer tok-abcdef123456" for _, header in auth[2:])

    def test_report_output(self, pipeline, out):
        pipeline.run()
        text = out.getvalue()
        assert "[1/5] Waiting for LAM health: http://lam.test/health" in text
        assert "[2/5] Minting a demo API key (tenant=7, user=tester, ns=default)" in text
        assert "[3/5] Ingesting a tiny doc" in text
        assert "[4/5] Waiting for enrichment (cell_id=cell-1)" in text
        assert "[5/5] Asking the same question two ways (RAG-ish vs LAM-ish)" in text
        assert text.index("=== RAG-ish (sentence_window_v1) ===") < text.index("=== LAM-ish (evidence_span_v1) ===")
        assert f"- [1] passage_id=p-1 sha256={sha256_hex(SENTENCE)}" in text
        assert "Decoded span (verified):" in text
        assert f"- start_pos=41 end_pos={41 + len(SENTENCE)}" in text
        assert text.rstrip().endswith("export TOKEN=tok-abcdef123456")

    def test_certificate_is_sealed_and_credential_free(self, pipeline, config):
        cert = pipeline.run().certificate
        assert cert.verify_integrity()
        assert cert.config_hash == config.config_hash()
        assert cert.passage_counts == {"sentence_window_v1": 2, "evidence_span_v1": 2}
        assert cert.decoded.byte_length == len(SENTENCE)
        dumped = cert.model_dump_json()
        assert "tok-abcdef123456" not in dumped
        assert "admin-secret" not in dumped

    def test_given_run_id_reaches_certificate(self, config, http, out):
        result = DemoPipeline(config, http=http, reporter=ConsoleReporter(out), run_id="lamcheck-fixed").run()
        assert result.run_id == "lamcheck-fixed"
        assert result.certificate.run_id == "lamcheck-fixed"

    def test_waits_through_slow_dependencies(self, pipeline, fake_service, fake_clock):
        fake_service.health = [(0, httpx.ConnectError("refused")), (503, None), (200, {"ok": True})]
        fake_service.enrichment = [(200, {"status": "pending"}), (200, {"status": "running"}), (200, {"status": "done"})]
        assert pipeline.run().verified
        assert fake_clock.sleeps == [0.2, 0.2, 0.15, 0.15]


@pytest.mark.integration
class TestFailedRuns:

    def test_missing_admin_token_sends_no_requests(self, http, fake_service, out):
        cfg = LamCheckConfig(api_url=API_URL, admin_token="")
        with pytest.raises(ConfigurationError):
            DemoPipeline(cfg, http=http, reporter=ConsoleReporter(out)).run()
        assert fake_service.requests == []
        assert out.getvalue() == ""

    def test_enrichment_failure_skips_retrieval(self, pipeline, fake_service):
        fake_service.enrichment = [(200, {"status": "failed", "last_error": "parse error"})]
        with pytest.raises(TerminalJobError) as exc:
            pipeline.run()
        assert "parse error" in str(exc.value)
        assert fake_service.calls("/v1/context") == []

    def test_enrichment_timeout(self, pipeline, fake_service, fake_clock):
        fake_service.enrichment = [(200, {"status": "pending"})]
        with pytest.raises(WaitTimeoutError) as exc:
            pipeline.run()
        assert "cell_id=cell-1" in str(exc.value)
        assert fake_clock.now >= 30.0
        assert fake_service.calls("/v1/context") == []

    def test_context_rejection(self, pipeline, fake_service):
        fake_service.context["evidence_span_v1"] = [(503, {"error": "index offline"})]
        with pytest.raises(RemoteRejectionError):
            pipeline.run()
        assert fake_service.calls("/v1/decode") == []

    def test_tampered_citation_fails_run(self, pipeline, fake_service, out):
        wrong = sha256_hex(SENTENCE + " ")
        fake_service.context["evidence_span_v1"] = [
            (200, fake_service.context_body("evidence_span_v1", sha256=wrong)),
        ]
        with pytest.raises(HashMismatchError):
            pipeline.run()
        assert "Decoded span (verified):" not in out.getvalue()
        assert "export TOKEN=" not in out.getvalue()


# ── CLI ─────────────────────────────────────────────────────────────

@pytest.fixture
def cli_env(monkeypatch, fake_service):
    """Route the CLI's requester through the scripted service."""
    for name in ("LAM_BASE_URL", "LAM_LOG_FORMAT", "LAM_LOG_LEVEL", "LAM_DEMO_SCOPE_USER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LAM_API_URL", API_URL)
    monkeypatch.setenv("LAM_ADMIN_TOKEN", "admin-secret")
    monkeypatch.setattr(
        "lamcheck.pipeline.TimedRequester",
        lambda timeout_s: TimedRequester(timeout_s=timeout_s, transport=httpx.MockTransport(fake_service.handler)),
    )
    yield
    logging.getLogger("lamcheck").handlers.clear()


@pytest.mark.integration
class TestCli:

    def test_run_writes_certificate(self, cli_env, tmp_path, capsys):
        path = tmp_path / "cert.json"
        main(["run", "--output", str(path)])

        captured = capsys.readouterr()
        assert "export TOKEN=tok-abcdef123456" in captured.out
        assert f"Certificate saved to {path}" in captured.out

        cert = VerificationCertificate.model_validate(json.loads(path.read_text()))
        assert cert.verify_integrity()
        assert "tok-abcdef123456" not in path.read_text()

    def test_missing_admin_token_exits_1(self, cli_env, monkeypatch, fake_service, capsys):
        monkeypatch.delenv("LAM_ADMIN_TOKEN")
        with pytest.raises(SystemExit) as exc:
            main(["run"])
        assert exc.value.code == 1
        assert "Missing LAM_ADMIN_TOKEN" in capsys.readouterr().err
        assert fake_service.requests == []

    def test_hard_failure_exits_1_with_message(self, cli_env, fake_service, capsys):
        fake_service.keys = [(401, {"error": "bad admin token"})]
        with pytest.raises(SystemExit) as exc:
            main(["run"])
        assert exc.value.code == 1
        assert '/admin/keys failed (401): {"error": "bad admin token"}' in capsys.readouterr().err

    def test_health_command(self, cli_env, fake_service, capsys):
        main(["health"])
        assert 'Ready: {"ok": true}' in capsys.readouterr().out
        assert fake_service.paths == ["/health"]

    def test_missing_config_file_exits_1(self, cli_env, tmp_path, fake_service, capsys):
        path = tmp_path / "absent.yaml"
        with pytest.raises(SystemExit) as exc:
            main(["--config", str(path), "run"])
        assert exc.value.code == 1
        err = capsys.readouterr().err
        assert err.startswith(f"Cannot load config file {path}")
        assert "Traceback" not in err
        assert fake_service.requests == []

    def test_json_logs_carry_certificate_run_id(self, cli_env, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("LAM_LOG_FORMAT", "json")
        path = tmp_path / "cert.json"
        main(["run", "--output", str(path)])

        cert = VerificationCertificate.model_validate(json.loads(path.read_text()))
        entries = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.startswith("{")]
        assert entries
        assert {entry["run_id"] for entry in entries} == {cert.run_id}

    def test_no_command_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1

    def test_export_schemas(self, tmp_path, capsys):
        main(["export-schemas", "--output-dir", str(tmp_path)])
        names = sorted(p.name for p in tmp_path.glob("*.json"))
        assert names == [
            "context_query.json",
            "decoded_span.json",
            "ingest_request.json",
            "key_request.json",
            "verification_certificate.json",
        ]
        logging.getLogger("lamcheck").handlers.clear()
