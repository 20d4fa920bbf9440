"""TF-IDF relevance scoring over the inverted index."""

from __future__ import annotations

import math
from typing import Iterable

from analyzer import Analyzer
from inverted_index import InvertedIndex


class TfIdfScorer:
    """Scores a document against a set of analyzed query terms.

    The document length is re-derived with the same analyzer used at index
    time, so term frequencies line up with the recorded positions.
    """

    def __init__(self, index: InvertedIndex, analyzer: Analyzer) -> None:
        self._index = index
        self._analyzer = analyzer

    def score(self, doc_id: int, query_terms: Iterable[str]) -> float:
        """Return the summed tf * idf of every distinct query term found in the document."""
        total_docs = max(1, self._index.count())

        text = self._index.get_text(doc_id)
        if text is None or not text.strip():
            return 0.0

        doc_length = len(self._analyzer.analyze(text))
        if doc_length == 0:
            return 0.0

        score = 0.0
        for term in dict.fromkeys(query_terms):
            postings = self._index.get_postings(term)
            positions = postings.get(doc_id)
            if not positions:
                continue

            tf = len(positions) / doc_length
            df = max(1, len(postings))
            idf = math.log(1.0 + total_docs / df)
            score += tf * idf

        return score
