from datetime import datetime
from pathlib import Path

from analyzer import Analyzer
from document_store import DocumentRecord
from indexer import Indexer
from inverted_index import InvertedIndex


class DummyLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def info(self, msg: str, *args: object) -> None:
        self.records.append(("info", msg % args if args else msg))

    def warning(self, msg: str, *args: object) -> None:
        self.records.append(("warning", msg % args if args else msg))

    def debug(self, msg: str, *args: object) -> None:
        self.records.append(("debug", msg % args if args else msg))


def _record(doc_id: int, content: str) -> DocumentRecord:
    now = datetime(2024, 1, 1)
    return DocumentRecord(doc_id, f"title {doc_id}", content, f"u{doc_id}", now, now)


def _indexer(directories: list[Path] | None = None) -> tuple[Indexer, DummyLogger]:
    logger = DummyLogger()
    return Indexer(InvertedIndex(), Analyzer(), logger, directories=directories), logger


def test_index_text_uses_analyzed_positions() -> None:
    indexer, _ = _indexer()

    doc_id = indexer.index_text("The quick brown fox")

    assert doc_id == 0
    assert indexer.index.get_postings("quick") == {0: [0]}
    assert indexer.index.get_postings("fox") == {0: [2]}
    assert indexer.index.get_text(0) == "The quick brown fox"


def test_index_text_with_explicit_id() -> None:
    indexer, _ = _indexer()

    assert indexer.index_text("hello world", doc_id=12) == 12
    assert indexer.index_text("again") == 13


def test_index_empty_text_still_creates_forward_entry() -> None:
    indexer, _ = _indexer()

    doc_id = indexer.index_text("")

    assert indexer.index.count() == 1
    assert indexer.index.get_text(doc_id) == ""


def test_remove_and_clear() -> None:
    indexer, _ = _indexer()
    first = indexer.index_text("alpha")
    indexer.index_text("beta")

    indexer.remove_document(first)
    assert indexer.index.count() == 1
    assert indexer.index.get_postings("alpha") == {}

    indexer.clear_index()
    assert indexer.index.count() == 0


def test_rebuild_replays_records_with_their_ids() -> None:
    indexer, logger = _indexer()
    indexer.index_text("stale content")

    count = indexer.rebuild([_record(3, "alpha beta"), _record(9, "beta")])

    assert count == 2
    assert indexer.index.count() == 2
    assert set(indexer.index.get_postings("beta")) == {3, 9}
    assert indexer.index.get_text(0) is None
    assert indexer.index_text("gamma") == 10
    assert any("2 documents" in message for _, message in logger.records)


def test_rebuild_without_records_logs_empty_start() -> None:
    indexer, logger = _indexer()

    assert indexer.rebuild([]) == 0
    assert any("empty index" in message for _, message in logger.records)


def test_replace_index_keeps_instance() -> None:
    indexer, _ = _indexer()
    original = indexer.index
    indexer.index_text("old document")
    other = InvertedIndex()
    other.add_document("new document", ["new", "document"], doc_id=4)

    indexer.replace_index(other)

    assert indexer.index is original
    assert original.count() == 1
    assert original.get_text(0) == "new document"
    assert original.get_postings("old") == {}


def test_discover_files_warns_missing_directory(tmp_path: Path) -> None:
    indexer, logger = _indexer([tmp_path / "missing"])

    assert indexer.discover_files() == []
    assert any(level == "warning" for level, _ in logger.records)


def test_discover_files_filters_supported_suffixes(tmp_path: Path) -> None:
    docs_dir = tmp_path / "data"
    (docs_dir / "nested.pdf").mkdir(parents=True)
    (docs_dir / "sub").mkdir()
    for name in ("a.txt", "b.PDF", "sub/c.md", "d.csv"):
        (docs_dir / name).write_text("x", encoding="utf-8")

    indexer, _ = _indexer([docs_dir])

    assert indexer.discover_files() == sorted(
        [
            (docs_dir / "a.txt").resolve(),
            (docs_dir / "b.PDF").resolve(),
            (docs_dir / "sub" / "c.md").resolve(),
        ]
    )
