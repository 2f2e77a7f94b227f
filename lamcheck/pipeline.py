"""
lamcheck End-to-End Pipeline
=============================

Orchestrates one verification run against the memory service:
    Health → Mint Key → Ingest → Enrichment → Context (x2) → Verify Citation

The flow is strictly linear: each stage consumes the previous stage's
output, nothing runs concurrently, and any hard failure ends the run
immediately. Every wait is bounded by a deadline, so a stuck dependency
surfaces as a timeout at exactly one stage instead of a hang.

Usage:
    from lamcheck.pipeline import DemoPipeline

    pipeline = DemoPipeline(get_config())
    result = pipeline.run()
    print(result.certificate.integrity_hash)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from lamcheck.client.deadline import Clock
from lamcheck.client.http import TimedRequester
from lamcheck.config import LamCheckConfig, get_config
from lamcheck.provision.credentials import CredentialProvisioner
from lamcheck.provision.ingest import DEMO_QUERY, EvidenceIngestor, build_demo_document
from lamcheck.render.certificate import CertificateBuilder
from lamcheck.render.report import ConsoleReporter
from lamcheck.retrieve.context import ContextComparator, ContextComparison
from lamcheck.schemas.certificate import VerificationCertificate
from lamcheck.schemas.evidence import SourceDocument
from lamcheck.schemas.service import AccessCredential, EnrichmentStatus
from lamcheck.utils import generate_run_id
from lamcheck.verify.citation import CitationVerification, CitationVerifier
from lamcheck.verify.selection import PassageSelector, SecretTokenSelector
from lamcheck.wait.enrichment import EnrichmentWaiter
from lamcheck.wait.readiness import ReadinessWaiter

logger = logging.getLogger("lamcheck.pipeline")


@dataclass
class PipelineResult:
    """
    Complete output of a lamcheck run.

    Holds the minted credential in memory only; nothing here is
    persisted except the certificate, which carries no token.
    """
    run_id: str
    credential: AccessCredential
    cell_id: str
    enrichment: EnrichmentStatus
    comparison: ContextComparison
    verification: CitationVerification
    certificate: VerificationCertificate
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def verified(self) -> bool:
        return self.verification.verified and self.certificate.verify_integrity()


class DemoPipeline:
    """
    End-to-end lamcheck orchestrator.

    Manages the complete flow from health probe to verified citation:
        1. Wait for readiness (bounded poll of /health)
        2. Mint a scoped key (/admin/keys)
        3. Ingest the document with a byte-offset evidence claim (/ingest)
        4. Wait for enrichment of the new cell (bounded poll)
        5. Retrieve context under both passage kinds (/context x2)
        6. Verify one citation against its decoded bytes (/decode)

    Args:
        config: Immutable run configuration.
        http: Optional TimedRequester; one is created (and closed) if omitted.
        reporter: Console reporter; defaults to stdout.
        selector: Passage selection strategy; defaults to the planted answer.
        document: Document to ingest; defaults to the built-in demo document.
        query: Question asked under both passage kinds.
        clock: Monotonic clock shared by both waits.
        sleep: Sleep function shared by both waits.
        run_id: Identifier stamped on logs and the certificate; generated if omitted.
    """

    def __init__(
        self,
        config: Optional[LamCheckConfig] = None,
        http: Optional[TimedRequester] = None,
        reporter: Optional[ConsoleReporter] = None,
        selector: Optional[PassageSelector] = None,
        document: Optional[SourceDocument] = None,
        query: str = DEMO_QUERY,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        run_id: Optional[str] = None,
    ):
        self.config = config or get_config()
        self._owns_http = http is None
        self.http = http or TimedRequester(timeout_s=self.config.http_timeout_s)
        self.reporter = reporter or ConsoleReporter()
        self.document = document or build_demo_document()
        self.selector = selector or SecretTokenSelector(self.document.answer)
        self.query = query
        self._clock = clock
        self._sleep = sleep
        self.run_id = run_id or generate_run_id()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "DemoPipeline":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ── Stages ─────────────────────────────────────────────────────

    def wait_ready(self) -> dict[str, Any]:
        """Stage 1 on its own: block until /health reports ok."""
        waiter = ReadinessWaiter(
            self.http,
            self.config.health_base_url,
            timeout_s=self.config.health_wait_s,
            clock=self._clock,
            sleep=self._sleep,
        )
        self.reporter.stage(1, f"Waiting for LAM health: {waiter.health_url}")
        return waiter.wait()

    def run(self) -> PipelineResult:
        """
        Run every stage in order.

        Returns:
            PipelineResult with the verified citation and sealed certificate.

        Raises:
            ConfigurationError: Admin token missing (before any request).
            LamCheckError: Any hard failure at any stage.
        """
        self.config.require_admin_token()
        run_id = self.run_id
        timings: dict[str, float] = {}
        cfg = self.config
        logger.info(f"Run {run_id} against {cfg.api_url} (config {cfg.config_hash()})")

        # ── Step 1: Readiness ──────────────────────────────────────
        t0 = time.time()
        self.wait_ready()
        timings["health_ms"] = (time.time() - t0) * 1000

        # ── Step 2: Credential ─────────────────────────────────────
        t0 = time.time()
        self.reporter.stage(
            2,
            f"Minting a demo API key (tenant={cfg.demo_tenant_id}, "
            f"user={cfg.demo_scope_user}, ns={cfg.demo_namespace})",
        )
        credential = CredentialProvisioner(self.http, cfg).mint()
        timings["mint_ms"] = (time.time() - t0) * 1000

        # ── Step 3: Ingest ─────────────────────────────────────────
        t0 = time.time()
        self.reporter.stage(3, "Ingesting a tiny doc")
        receipt = EvidenceIngestor(self.http, cfg.api_url, credential).ingest(self.document)
        timings["ingest_ms"] = (time.time() - t0) * 1000

        # ── Step 4: Enrichment ─────────────────────────────────────
        t0 = time.time()
        self.reporter.stage(4, f"Waiting for enrichment (cell_id={receipt.cell_id})")
        enrichment = EnrichmentWaiter(
            self.http,
            cfg.api_url,
            credential,
            timeout_s=cfg.enrich_wait_s,
            clock=self._clock,
            sleep=self._sleep,
        ).wait(receipt.cell_id)
        timings["enrichment_ms"] = (time.time() - t0) * 1000

        # ── Step 5: Compare retrieval policies ─────────────────────
        t0 = time.time()
        self.reporter.stage(5, "Asking the same question two ways (RAG-ish vs LAM-ish)")
        comparison = ContextComparator(
            self.http,
            cfg.api_url,
            credential,
            limit=cfg.demo_context_limit,
            max_chars=cfg.demo_max_chars,
        ).compare(self.query)
        for result in comparison.results:
            self.reporter.context(result)
        timings["context_ms"] = (time.time() - t0) * 1000

        # ── Step 6: Verify citation ────────────────────────────────
        t0 = time.time()
        self.reporter.citations(comparison.evidence_span.citations)
        proof = CitationVerifier(
            self.http, cfg.api_url, credential, selector=self.selector
        ).verify(comparison.evidence_span)
        self.reporter.verification(proof)
        timings["verify_ms"] = (time.time() - t0) * 1000

        certificate = CertificateBuilder(cfg).build(
            run_id=run_id,
            credential=credential,
            cell_id=receipt.cell_id,
            comparison=comparison,
            proof=proof,
        )
        self.reporter.token(credential)

        logger.info(f"Run {run_id} verified in {sum(timings.values()):.0f}ms")
        return PipelineResult(
            run_id=run_id,
            credential=credential,
            cell_id=receipt.cell_id,
            enrichment=enrichment,
            comparison=comparison,
            verification=proof,
            certificate=certificate,
            timings=timings,
        )
