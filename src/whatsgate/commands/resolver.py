"""Fuzzy command resolver.

Maps normalized inbound text to the best-matching command category.
Free-text input is noisy (typos, abbreviations, missing diacritics), so
each category lists known phrase variants and the input is scored
against all of them with a string-similarity function.
"""

from __future__ import annotations

import logging
from difflib import SequenceMatcher
from typing import Callable

from whatsgate.domain.models import CommandMatch

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.4
DEFAULT_RESERVED_KEYWORD = "ping"

Similarity = Callable[[str, str], float]


def sequence_ratio(a: str, b: str) -> float:
    """Similarity in [0, 1] based on matching subsequences."""
    return SequenceMatcher(None, a, b).ratio()


class CommandResolver:
    """Resolves text to a command category.

    The reserved keyword is checked by literal equality before any fuzzy
    matching runs, so a category sharing its name is never reached
    through the variants table.

    Args:
        variants: Ordered mapping of category to phrase variants.
        threshold: Best score must be strictly above this to match.
        reserved_keyword: Literal that short-circuits resolution.
        similarity: Scoring function, defaults to ``sequence_ratio``.
    """

    def __init__(
        self,
        variants: dict[str, list[str]],
        threshold: float = DEFAULT_THRESHOLD,
        reserved_keyword: str = DEFAULT_RESERVED_KEYWORD,
        similarity: Similarity = sequence_ratio,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self._variants = {
            category: [v.strip().lower() for v in phrases]
            for category, phrases in variants.items()
        }
        self._threshold = threshold
        self._reserved_keyword = reserved_keyword
        self._similarity = similarity

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def reserved_keyword(self) -> str:
        return self._reserved_keyword

    def resolve(self, text: str) -> CommandMatch:
        """Resolve already-normalized (lowercase, trimmed) text."""
        if text == self._reserved_keyword:
            return CommandMatch(category=self._reserved_keyword, score=1.0, reserved=True)

        best_category: str | None = None
        best_score = 0.0
        for category, phrases in self._variants.items():
            score = max((self._similarity(text, phrase) for phrase in phrases), default=0.0)
            # Strict comparison keeps the first category on ties
            if score > best_score:
                best_category = category
                best_score = score

        if best_category is None or best_score <= self._threshold:
            logger.debug("No command match for %r (best %.2f)", text[:50], best_score)
            return CommandMatch(score=min(best_score, 1.0))

        logger.debug("Resolved %r -> %s (%.2f)", text[:50], best_category, best_score)
        return CommandMatch(category=best_category, score=min(best_score, 1.0))
