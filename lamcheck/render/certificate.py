"""
Certificate Generator
======================

Creates VerificationCertificates — the machine-readable record that a
run proved a citation against the bytes the service decoded for it.

A certificate contains:
    - Run id, config hash, and the tenant scope that was exercised
    - The ingested cell and the query asked under both passage kinds
    - The chosen passage, its citation, declared and recomputed hashes
    - Integrity hash for tamper detection

It deliberately contains no credentials.

Usage:
    builder = CertificateBuilder(config)
    cert = builder.build(run_id=..., credential=..., cell_id=...,
                         comparison=comparison, proof=proof)
    builder.export_json(cert, "output/cert.json")
"""

from __future__ import annotations

import logging
from pathlib import Path

from lamcheck.config import LamCheckConfig
from lamcheck.retrieve.context import ContextComparison
from lamcheck.schemas.certificate import DecodedSpanSummary, VerificationCertificate
from lamcheck.schemas.service import AccessCredential
from lamcheck.utils import save_json, utf8_len
from lamcheck.verify.citation import CitationVerification

logger = logging.getLogger("lamcheck.render.certificate")


class CertificateBuilder:
    """
    Builds sealed VerificationCertificates from pipeline outputs.

    Args:
        config: lamcheck configuration.
    """

    def __init__(self, config: LamCheckConfig):
        self.config = config

    def build(
        self,
        run_id: str,
        credential: AccessCredential,
        cell_id: str,
        comparison: ContextComparison,
        proof: CitationVerification,
    ) -> VerificationCertificate:
        """Build and seal a certificate for one verified run."""
        decoded = proof.decoded
        cert = VerificationCertificate(
            run_id=run_id,
            config_hash=self.config.config_hash(),
            api_url=self.config.api_url,
            tenant_id=credential.tenant_id,
            namespace=credential.namespace,
            scope_user=credential.scope_user,
            cell_id=cell_id,
            query=comparison.query,
            passage_kinds=[r.passage_kind.value for r in comparison.results],
            passage_counts={r.passage_kind.value: len(r.passages) for r in comparison.results},
            passage_id=proof.passage.passage_id,
            citation_ref=proof.citation.ref,
            declared_sha256=proof.declared_sha256,
            computed_sha256=proof.computed_sha256,
            decoded=DecodedSpanSummary(
                cell_id=decoded.cell_id,
                span_type=decoded.span_type,
                transform=decoded.transform,
                start_pos=decoded.start_pos,
                end_pos=decoded.end_pos,
                byte_length=utf8_len(decoded.text),
            ),
        )
        cert.seal()
        logger.info(f"Certificate {cert.run_id} sealed: {cert.integrity_hash[:16]}...")
        return cert

    def export_json(self, cert: VerificationCertificate, path: str | Path) -> Path:
        """Write a certificate as pretty-printed JSON."""
        out = save_json(cert.model_dump(mode="json"), path)
        logger.info(f"Certificate written to {out}")
        return out
