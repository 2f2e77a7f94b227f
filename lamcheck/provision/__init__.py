"""
lamcheck Provisioning
======================

One-shot setup calls made before any waiting or verification.

Components:
    - credentials.py: Mint a scoped key via /admin/keys
    - ingest.py:      Byte-offset evidence claims and /ingest
"""
