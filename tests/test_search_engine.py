import math
from datetime import datetime

import pytest

from analyzer import Analyzer
from document_store import DocumentRecord
from inverted_index import InvertedIndex
from scorer import TfIdfScorer
from search_engine import SearchEngine, create_snippet


class DummyLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def info(self, msg: str, *args: object) -> None:
        self.records.append(("info", msg % args if args else msg))


def _build_engine(*texts: str, lookup=None) -> tuple[SearchEngine, InvertedIndex]:
    index = InvertedIndex()
    analyzer = Analyzer()
    for text in texts:
        index.add_document(text, analyzer.analyze(text))
    engine = SearchEngine(index, analyzer, TfIdfScorer(index, analyzer), DummyLogger(), lookup=lookup)
    return engine, index


def _record(doc_id: int, title: str, content: str) -> DocumentRecord:
    now = datetime(2024, 1, 1)
    return DocumentRecord(
        id=doc_id,
        title=title,
        content=content,
        url=f"https://example.org/{doc_id}",
        created_at=now,
        updated_at=now,
    )


def test_search_returns_documents_with_all_terms() -> None:
    engine, _ = _build_engine(
        "Machine learning is awesome",
        "Deep learning is part of machine learning",
        "Natural language processing",
    )

    response = engine.search("machine learning")

    assert response.query == "machine learning"
    assert response.total_results == 2
    assert {result.document_id for result in response.results} == {0, 1}
    assert all(result.matched_terms == ["machin", "learn"] for result in response.results)


def test_search_scores_follow_tf_idf() -> None:
    engine, _ = _build_engine(
        "Machine learning is awesome",
        "Deep learning is part of machine learning",
    )

    response = engine.search("machine learning")

    scores = {result.document_id: result.score for result in response.results}
    idf = math.log(2)
    assert scores[0] == round((2 / 3) * idf, 2)
    assert scores[1] == round((3 / 5) * idf, 2)
    assert [result.document_id for result in response.results] == [0, 1]


def test_search_excludes_documents_missing_a_term() -> None:
    engine, _ = _build_engine(
        "Machine learning algorithms",
        "Machine learning and deep learning",
        "Algorithms for sorting",
    )

    response = engine.search("machine algorithms")

    assert [result.document_id for result in response.results] == [0]


def test_search_results_sorted_by_descending_score() -> None:
    engine, _ = _build_engine("Java", "Java programming", "Java Java Java programming lessons")

    response = engine.search("java")

    scores = [result.score for result in response.results]
    assert len(scores) == 3
    assert scores == sorted(scores, reverse=True)


def test_search_ties_break_by_document_id() -> None:
    engine, _ = _build_engine("python code", "python code", "python code")

    response = engine.search("python")

    assert [result.document_id for result in response.results] == [0, 1, 2]


def test_search_empty_query_returns_empty_response() -> None:
    engine, _ = _build_engine("anything")

    for query in ("", "   ", None, "the and or"):
        response = engine.search(query)
        assert response.total_results == 0
        assert response.results == []
        assert response.elapsed_ms >= 0


def test_search_unknown_term_returns_empty() -> None:
    engine, _ = _build_engine("Python programming")

    response = engine.search("nonexistent")

    assert response.total_results == 0
    assert response.results == []


def test_search_pagination_uses_global_order() -> None:
    engine, _ = _build_engine(*(("program " * (i + 1)) + "filler " * 5 for i in range(5)))

    full = engine.search("program", limit=10)
    page = engine.search("program", limit=2, offset=1)

    assert page.total_results == 5
    assert page.limit == 2
    assert page.offset == 1
    assert [r.document_id for r in page.results] == [r.document_id for r in full.results[1:3]]


def test_search_offset_beyond_total_returns_empty_page() -> None:
    engine, _ = _build_engine("alpha", "alpha beta")

    response = engine.search("alpha", limit=10, offset=50)

    assert response.total_results == 2
    assert response.results == []


def test_search_defaults_to_ten_results() -> None:
    engine, _ = _build_engine(*(f"Document {i} about programming" for i in range(15)))

    response = engine.search("programming")

    assert response.total_results == 15
    assert response.limit == 10
    assert response.offset == 0
    assert len(response.results) == 10


def test_search_finds_stemmed_variant() -> None:
    engine, _ = _build_engine("She was running through the park")

    response = engine.search("runs")

    assert [result.document_id for result in response.results] == [0]


def test_search_applies_title_boost_per_matched_term() -> None:
    content = "Machine learning is awesome"
    records = {0: _record(0, "Machine learning", content)}
    plain, _ = _build_engine(content)
    boosted, _ = _build_engine(content, lookup=records.get)

    plain_score = plain.search("machine learning").results[0].score
    boosted_result = boosted.search("machine learning").results[0]

    assert boosted_result.score == pytest.approx(round(plain_score * 1.3 * 1.3, 2), abs=0.011)
    assert boosted_result.document == records[0]


def test_search_counts_title_terms_as_matched() -> None:
    records = {0: _record(0, "Compilers", "compilers translate source code")}
    engine, _ = _build_engine("compilers translate source code", lookup=records.get)

    result = engine.search("source").results[0]

    assert result.matched_terms == Analyzer().analyze("source")
    assert result.snippet.startswith("compilers translate source code")


def test_search_skips_candidate_removed_before_scoring(monkeypatch) -> None:
    engine, index = _build_engine("alpha one", "alpha two")
    original = index.get_postings

    def racing_postings(term: str):
        postings = original(term)
        index.remove(0)
        return postings

    monkeypatch.setattr(index, "get_postings", racing_postings)

    response = engine.search("alpha")

    assert [result.document_id for result in response.results] == [1]


def test_search_logs_query() -> None:
    engine, _ = _build_engine("alpha")

    engine.search("alpha")

    assert any("alpha" in message for _, message in engine._logger.records)


def test_create_snippet_blank_text() -> None:
    assert create_snippet("", ["a"]) == ""
    assert create_snippet(None, ["a"]) == ""
    assert create_snippet("   ", ["a"]) == ""


def test_create_snippet_without_terms_uses_prefix() -> None:
    text = "x" * 300

    assert create_snippet(text, []) == "x" * 200 + "..."
    assert create_snippet("short text", []) == "short text..."


def test_create_snippet_without_locatable_term_uses_prefix() -> None:
    assert create_snippet("nothing here", ["missing"], max_length=7) == "nothing..."


def test_create_snippet_windows_around_first_match() -> None:
    text = "a" * 100 + " Machine " + "b" * 300

    snippet = create_snippet(text, ["learn", "machin"])

    assert snippet.startswith("...")
    assert snippet.endswith("...")
    body = snippet[3:-3]
    assert len(body) == 200
    assert body == text[51:251]
    assert "Machine" in body


def test_create_snippet_at_start_has_no_prefix() -> None:
    text = "Machine learning is awesome"

    assert create_snippet(text, ["machin"]) == text


def test_create_snippet_offsets_follow_original_text() -> None:
    # "İ" lowercases to two characters
    text = "İ" * 60 + " Machine " + "b" * 300

    snippet = create_snippet(text, ["machin"])

    assert snippet == "..." + text[11:211] + "..."
    assert "Machine" in snippet
