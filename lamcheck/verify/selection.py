"""
Passage Selection Strategies
=============================

Which retrieved passage should be put through citation verification?
The answer depends on what the caller knows about the corpus, so the
choice is a pluggable strategy.

    - SecretTokenSelector: first passage containing a known token
      (case-insensitive), else the first passage
    - FirstPassageSelector: always the top-ranked passage
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from lamcheck.schemas.service import Passage


class PassageSelector(ABC):
    """Picks one passage out of a retrieval result, or None if empty."""

    @abstractmethod
    def select(self, passages: Sequence[Passage]) -> Optional[Passage]:
        ...


class FirstPassageSelector(PassageSelector):
    """Top-ranked passage."""

    def select(self, passages: Sequence[Passage]) -> Optional[Passage]:
        return passages[0] if passages else None


class SecretTokenSelector(PassageSelector):
    """
    Prefer the passage that mentions a token the caller planted.

    Falls back to the top-ranked passage so that verification still
    runs (and can still fail loudly) when retrieval misses the token.
    """

    def __init__(self, token: str):
        assert token, "token must be non-empty"
        self.token = token.lower()

    def select(self, passages: Sequence[Passage]) -> Optional[Passage]:
        for passage in passages:
            if self.token in passage.text.lower():
                return passage
        return passages[0] if passages else None
