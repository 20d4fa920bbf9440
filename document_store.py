"""In-memory document metadata repository with pickle snapshots."""

from __future__ import annotations

import logging
import pickle
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class DocumentRecord:
    """Stored document with its metadata."""

    id: int
    title: str
    content: str
    url: str
    created_at: datetime
    updated_at: datetime
    crawled_at: datetime | None = None


@dataclass(frozen=True)
class AddResult:
    """Outcome of an insert: the stored record, or the clashing one when duplicate."""

    record: DocumentRecord
    duplicate: bool = False


@dataclass
class StoreSnapshot:
    """Pickled form of the store."""

    records: dict[int, DocumentRecord] = field(default_factory=dict)
    next_id: int = 1


class DocumentStore:
    """Keeps documents by id with a unique url constraint."""

    def __init__(self, store_file: Path | None, logger: logging.Logger) -> None:
        self._store_file = store_file
        self._logger = logger
        self._records: dict[int, DocumentRecord] = {}
        self._ids_by_url: dict[str, int] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def add(
        self,
        title: str,
        content: str,
        url: str,
        crawled_at: datetime | None = None,
    ) -> AddResult:
        with self._lock:
            existing_id = self._ids_by_url.get(url)
            if existing_id is not None:
                return AddResult(record=self._records[existing_id], duplicate=True)

            now = datetime.now()
            record = DocumentRecord(
                id=self._next_id,
                title=title,
                content=content,
                url=url,
                created_at=now,
                updated_at=now,
                crawled_at=crawled_at,
            )
            self._next_id += 1
            self._records[record.id] = record
            self._ids_by_url[url] = record.id
            return AddResult(record=record)

    def update(
        self,
        doc_id: int,
        title: str,
        content: str,
        url: str,
        crawled_at: datetime | None = None,
    ) -> AddResult | None:
        """Replace a record's fields. Returns None for unknown ids."""
        with self._lock:
            current = self._records.get(doc_id)
            if current is None:
                return None

            owner = self._ids_by_url.get(url)
            if owner is not None and owner != doc_id:
                return AddResult(record=self._records[owner], duplicate=True)

            updated = replace(
                current,
                title=title,
                content=content,
                url=url,
                updated_at=datetime.now(),
                crawled_at=crawled_at if crawled_at is not None else current.crawled_at,
            )
            del self._ids_by_url[current.url]
            self._ids_by_url[url] = doc_id
            self._records[doc_id] = updated
            return AddResult(record=updated)

    def get(self, doc_id: int) -> DocumentRecord | None:
        with self._lock:
            return self._records.get(doc_id)

    def get_by_url(self, url: str) -> DocumentRecord | None:
        with self._lock:
            doc_id = self._ids_by_url.get(url)
            return self._records.get(doc_id) if doc_id is not None else None

    def delete(self, doc_id: int) -> bool:
        with self._lock:
            record = self._records.pop(doc_id, None)
            if record is None:
                return False
            del self._ids_by_url[record.url]
            return True

    def delete_all(self) -> None:
        with self._lock:
            self._records.clear()
            self._ids_by_url.clear()

    def list_all(self) -> list[DocumentRecord]:
        """Return every record, newest first."""
        with self._lock:
            records = list(self._records.values())
        records.sort(key=lambda record: (record.created_at, record.id), reverse=True)
        return records

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def load(self) -> int:
        """Replace the contents with the persisted snapshot, if any."""
        if self._store_file is None or not self._store_file.exists():
            return 0

        try:
            with self._store_file.open("rb") as file:
                loaded = pickle.load(file)
        except Exception as exc:
            self._logger.warning("Failed to load document store (%s). Starting empty...", exc)
            return 0

        if not isinstance(loaded, StoreSnapshot):
            self._logger.warning("Unsupported document store format. Starting empty...")
            return 0

        with self._lock:
            self._records = dict(loaded.records)
            self._ids_by_url = {record.url: doc_id for doc_id, record in self._records.items()}
            self._next_id = max(loaded.next_id, max(self._records, default=0) + 1)
            count = len(self._records)

        self._logger.info("Loaded %d documents from %s", count, self._store_file)
        return count

    def save(self) -> None:
        if self._store_file is None:
            return

        with self._lock:
            snapshot = StoreSnapshot(records=dict(self._records), next_id=self._next_id)

        self._store_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._store_file.with_suffix(self._store_file.suffix + ".tmp")
        with temp_path.open("wb") as file:
            pickle.dump(snapshot, file)
        temp_path.replace(self._store_file)
        self._logger.info("Document store saved to %s", self._store_file)
