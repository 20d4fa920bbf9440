"""Text analysis: lowercasing, tokenization, stop-word removal and stemming."""

from __future__ import annotations

import re
from typing import Protocol

from nltk.stem.snowball import SnowballStemmer

TOKEN_SPLIT_PATTERN = re.compile(r"[^a-z0-9]+")

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by",
        "for", "if", "in", "into", "is", "it", "no", "not",
        "of", "on", "or", "such", "that", "the", "their", "then",
        "there", "these", "they", "this", "to", "was", "will", "with",
    }
)


class Stemmer(Protocol):
    """Anything that maps a word to its canonical surface form."""

    def stem(self, word: str) -> str:  # pragma: no cover - interface definition
        ...


class Analyzer:
    """Turns raw text into the normalized token sequence used by the index."""

    def __init__(self, stemmer: Stemmer | None = None) -> None:
        self._stemmer = stemmer if stemmer is not None else SnowballStemmer("english")

    def analyze(self, text: str | None) -> list[str]:
        """Return normalized tokens in their original order.

        Blank or missing text yields an empty list.
        """
        if text is None or not text.strip():
            return []

        raw_tokens = [token for token in TOKEN_SPLIT_PATTERN.split(text.lower()) if token]
        return [self._stem(token) for token in raw_tokens if token not in STOP_WORDS]

    def _stem(self, word: str) -> str:
        # Empty stems keep the original token.
        return self._stemmer.stem(word) or word
