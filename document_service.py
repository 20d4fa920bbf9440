"""Document management that keeps the metadata store and the index in sync."""

from __future__ import annotations

import logging
from datetime import datetime

from document_reader import extract_text
from document_store import AddResult, DocumentRecord, DocumentStore
from indexer import Indexer


class DocumentService:
    """CRUD over documents; every write is mirrored into the inverted index."""

    def __init__(self, store: DocumentStore, indexer: Indexer, logger: logging.Logger) -> None:
        self._store = store
        self._indexer = indexer
        self._logger = logger

    def add_document(self, title: str, content: str, url: str) -> AddResult:
        self._logger.info("Adding document: %s", url)
        result = self._store.add(title, content, url)
        if result.duplicate:
            self._logger.info("Document with URL already exists: %s", url)
            return result

        self._indexer.index_text(result.record.content, doc_id=result.record.id)
        self._logger.info("Document added with ID=%d, URL=%s", result.record.id, url)
        return result

    def add_or_update_document(self, url: str, title: str, content: str) -> DocumentRecord:
        """Insert a crawled page or refresh the existing one with the same url."""
        crawled_at = datetime.now()
        existing = self._store.get_by_url(url)
        if existing is None:
            result = self._store.add(title, content, url, crawled_at=crawled_at)
            if not result.duplicate:
                self._indexer.index_text(content, doc_id=result.record.id)
                self._logger.info("Document added by crawler: ID=%d", result.record.id)
                return result.record
            # Another writer stored the url after the lookup.
            existing = result.record

        updated = self._store.update(existing.id, title, content, url, crawled_at=crawled_at)
        record = updated.record if updated is not None else existing
        self._reindex(record)
        self._logger.info("Document updated by crawler: ID=%d", record.id)
        return record

    def get_document(self, doc_id: int) -> DocumentRecord | None:
        return self._store.get(doc_id)

    def get_document_by_url(self, url: str) -> DocumentRecord | None:
        return self._store.get_by_url(url)

    def list_documents(self) -> list[DocumentRecord]:
        return self._store.list_all()

    def count_documents(self) -> int:
        return self._store.count()

    def update_document(self, doc_id: int, title: str, content: str, url: str) -> AddResult | None:
        """Update a document. None for unknown ids; a duplicate result on url clash."""
        self._logger.info("Updating document ID=%d", doc_id)
        result = self._store.update(doc_id, title, content, url)
        if result is None or result.duplicate:
            return result

        self._reindex(result.record)
        self._logger.info("Document updated: ID=%d", doc_id)
        return result

    def delete_document(self, doc_id: int) -> bool:
        self._logger.info("Deleting document: ID=%d", doc_id)
        if not self._store.delete(doc_id):
            return False

        self._indexer.remove_document(doc_id)
        self._logger.info("Document deleted: ID=%d", doc_id)
        return True

    def delete_all_documents(self) -> None:
        self._logger.info("Deleting all documents")
        self._store.delete_all()
        self._indexer.clear_index()

    def initialize_index(self) -> int:
        """Rebuild the index by replaying every stored document."""
        self._logger.info("Initializing index from document store...")
        return self._indexer.rebuild(self._store.list_all())

    def ingest_directories(self) -> int:
        """Upsert every readable file from the configured directories."""
        ingested = 0
        for file_path in self._indexer.discover_files():
            text = extract_text(file_path, self._logger)
            if text is None:
                self._logger.info("Skipping empty or unreadable file: %s", file_path)
                continue

            self.add_or_update_document(file_path.as_uri(), file_path.stem, text)
            ingested += 1

        self._logger.info("Ingested %d files", ingested)
        return ingested

    def _reindex(self, record: DocumentRecord) -> None:
        self._indexer.remove_document(record.id)
        self._indexer.index_text(record.content, doc_id=record.id)
