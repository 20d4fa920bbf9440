"""Boolean AND keyword search with TF-IDF ranking, pagination and snippets."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable

from analyzer import Analyzer
from document_store import DocumentRecord
from inverted_index import InvertedIndex
from scorer import TfIdfScorer

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0
SNIPPET_LENGTH = 200
SNIPPET_CONTEXT = 50
TITLE_BOOST = 1.3

DocumentLookup = Callable[[int], "DocumentRecord | None"]


@dataclass(frozen=True)
class SearchResult:
    """Single ranked hit."""

    document_id: int
    score: float
    matched_terms: list[str]
    snippet: str
    document: DocumentRecord | None = None


@dataclass(frozen=True)
class SearchResponse:
    """One page of results plus the metadata of the whole result set."""

    query: str
    total_results: int
    limit: int
    offset: int
    elapsed_ms: float
    results: list[SearchResult] = field(default_factory=list)


@dataclass
class _Candidate:
    doc_id: int
    score: float
    matched_terms: list[str]
    text: str
    document: DocumentRecord | None


class SearchEngine:
    """Answers ranked keyword queries against a shared inverted index."""

    def __init__(
        self,
        index: InvertedIndex,
        analyzer: Analyzer,
        scorer: TfIdfScorer,
        logger: logging.Logger,
        lookup: DocumentLookup | None = None,
        snippet_length: int = SNIPPET_LENGTH,
    ) -> None:
        self._index = index
        self._analyzer = analyzer
        self._scorer = scorer
        self._logger = logger
        self._lookup = lookup
        self._snippet_length = snippet_length

    def search(
        self,
        query: str | None,
        limit: int = DEFAULT_LIMIT,
        offset: int = DEFAULT_OFFSET,
    ) -> SearchResponse:
        """Return documents containing every query token, best first."""
        started = time.perf_counter()
        limit = max(0, limit)
        offset = max(0, offset)
        self._logger.info("Searching for: %s (limit: %d, offset: %d)", query, limit, offset)

        query_tokens = self._analyzer.analyze(query)
        candidate_ids = self._find_candidates(query_tokens) if query_tokens else set()
        if not candidate_ids:
            return self._response(query, [], 0, limit, offset, started)

        ranked: list[_Candidate] = []
        for doc_id in candidate_ids:
            candidate = self._score_candidate(doc_id, query_tokens)
            if candidate is not None:
                ranked.append(candidate)

        ranked.sort(key=lambda candidate: (-candidate.score, candidate.doc_id))
        page = ranked[offset:offset + limit]

        results = [
            SearchResult(
                document_id=candidate.doc_id,
                score=round(candidate.score, 2),
                matched_terms=candidate.matched_terms,
                snippet=create_snippet(candidate.text, candidate.matched_terms, self._snippet_length),
                document=candidate.document,
            )
            for candidate in page
        ]
        response = self._response(query, results, len(ranked), limit, offset, started)
        self._logger.info(
            "Search completed in %.2f ms. Found %d results", response.elapsed_ms, len(ranked)
        )
        return response

    def _find_candidates(self, query_tokens: list[str]) -> set[int]:
        candidates: set[int] | None = None
        for token in dict.fromkeys(query_tokens):
            doc_ids = set(self._index.get_postings(token))
            candidates = doc_ids if candidates is None else candidates & doc_ids
            if not candidates:
                return set()
        return candidates or set()

    def _score_candidate(self, doc_id: int, query_tokens: list[str]) -> _Candidate | None:
        score = self._scorer.score(doc_id, query_tokens)
        if score <= 0:
            return None

        text = self._index.get_text(doc_id) or ""
        document = self._lookup(doc_id) if self._lookup is not None else None
        title = document.title if document is not None and document.title else ""

        doc_tokens = set(self._analyzer.analyze(f"{title} {text}"))
        matched_terms = [token for token in dict.fromkeys(query_tokens) if token in doc_tokens]

        title_lower = title.lower()
        for term in matched_terms:
            if term in title_lower:
                score *= TITLE_BOOST

        return _Candidate(
            doc_id=doc_id,
            score=score,
            matched_terms=matched_terms,
            text=text,
            document=document,
        )

    @staticmethod
    def _response(
        query: str | None,
        results: list[SearchResult],
        total: int,
        limit: int,
        offset: int,
        started: float,
    ) -> SearchResponse:
        return SearchResponse(
            query=query or "",
            total_results=total,
            limit=limit,
            offset=offset,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
            results=results,
        )


def create_snippet(text: str | None, matched_terms: list[str], max_length: int = SNIPPET_LENGTH) -> str:
    """Cut a window of text around the earliest matched term."""
    if text is None or not text.strip():
        return ""

    if not matched_terms:
        return text[:max_length] + "..."

    matches = (re.search(re.escape(term), text, re.IGNORECASE) for term in matched_terms)
    positions = [match.start() for match in matches if match is not None]
    if not positions:
        return text[:max_length] + "..."

    start = max(0, min(positions) - SNIPPET_CONTEXT)
    end = min(len(text), start + max_length)

    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet
