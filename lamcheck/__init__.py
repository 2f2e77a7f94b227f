"""
lamcheck — Integration Verifier for Proof-Carrying Memory
==========================================================

lamcheck drives a remote proof-carrying memory service through its
documented HTTP contract and proves, by content hashing, that a citation
returned by context retrieval is exactly the span that was stored.

Architecture Overview:
    Health → Mint Key → Ingest → Enrichment → Context (x2) → Verify Citation

Modules:
    - client:     Timed HTTP requests with deadline-aware cancellation
    - wait:       Deadline poller + readiness / enrichment waiters
    - provision:  Credential minting and evidence-bearing ingestion
    - retrieve:   Side-by-side context retrieval under two passage kinds
    - verify:     Passage selection and citation integrity verification
    - render:     Human-readable progress and result reporting
    - pipeline:   End-to-end orchestrator
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
