"""Indexing service: analyzes text and keeps the shared inverted index up to date."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from analyzer import Analyzer
from document_reader import SUPPORTED_SUFFIXES
from document_store import DocumentRecord
from inverted_index import InvertedIndex


class Indexer:
    """Feeds documents through the analyzer into an injected inverted index."""

    def __init__(
        self,
        index: InvertedIndex,
        analyzer: Analyzer,
        logger: logging.Logger,
        directories: list[Path] | None = None,
    ) -> None:
        self._index = index
        self._analyzer = analyzer
        self._logger = logger
        self._directories = directories or []

    @property
    def index(self) -> InvertedIndex:
        return self._index

    def index_text(self, text: str, doc_id: int | None = None) -> int:
        """Analyze text and add it to the index, returning the document id."""
        tokens = self._analyzer.analyze(text)
        assigned = self._index.add_document(text, tokens, doc_id=doc_id)
        self._logger.debug("Indexed document %d (%d tokens)", assigned, len(tokens))
        return assigned

    def remove_document(self, doc_id: int) -> None:
        self._logger.debug("Removing document from index: %d", doc_id)
        self._index.remove(doc_id)

    def clear_index(self) -> None:
        self._logger.info("Clearing entire index")
        self._index.clear()

    def rebuild(self, records: Iterable[DocumentRecord]) -> int:
        """Replace the index contents with the given records, keeping their ids."""
        self._index.clear()
        indexed = 0
        for record in records:
            self.index_text(record.content, doc_id=record.id)
            indexed += 1

        if indexed == 0:
            self._logger.info("No documents found. Starting with empty index.")
        else:
            self._logger.info("Index initialized with %d documents", indexed)
        return indexed

    def replace_index(self, other: InvertedIndex) -> None:
        """Swap in the contents of another index while keeping this instance."""
        self._index.clear()
        self._index.merge(other)
        self._logger.info("Index replaced, now holding %d documents", self._index.count())

    def discover_files(self) -> list[Path]:
        files: list[Path] = []
        for directory in self._directories:
            if not directory.exists() or not directory.is_dir():
                self._logger.warning("Directory does not exist or is not accessible: %s", directory)
                continue

            for file_path in directory.rglob("*"):
                if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_SUFFIXES:
                    files.append(file_path.resolve())

        files.sort()
        self._logger.info("Discovered %d files", len(files))
        return files
