"""
lamcheck Verification
======================

Citation integrity verification.

Components:
    - selection.py: Pluggable passage selection strategies
    - citation.py:  Correlate, decode, re-hash, compare
"""

from lamcheck.verify.citation import CitationVerification, CitationVerifier
from lamcheck.verify.selection import FirstPassageSelector, PassageSelector, SecretTokenSelector

__all__ = [
    "CitationVerification",
    "CitationVerifier",
    "FirstPassageSelector",
    "PassageSelector",
    "SecretTokenSelector",
]
