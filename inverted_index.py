"""Thread-safe positional inverted index with a forward text store."""

from __future__ import annotations

import threading
from typing import Any, Sequence


class InvertedIndex:
    """Postings (term -> doc id -> positions) plus forward entries (doc id -> text).

    Every public operation runs under a single re-entrant lock, and readers get
    copies, so callers never observe a half-applied mutation.
    """

    def __init__(self) -> None:
        self._postings: dict[str, dict[int, list[int]]] = {}
        self._forward: dict[int, str] = {}
        self._next_doc_id = 0
        self._lock = threading.RLock()

    def add_document(self, text: str, tokens: Sequence[str], doc_id: int | None = None) -> int:
        """Index analyzed tokens under a new or caller-supplied document id.

        Re-adding an existing id without removing it first appends the new
        positions next to the stale ones; the index does not check for this.
        """
        with self._lock:
            if doc_id is None:
                doc_id = self._next_doc_id
                self._next_doc_id += 1
            elif doc_id >= self._next_doc_id:
                self._next_doc_id = doc_id + 1

            self._forward[doc_id] = text
            for position, term in enumerate(tokens):
                self._postings.setdefault(term, {}).setdefault(doc_id, []).append(position)
            return doc_id

    def get_postings(self, term: str) -> dict[int, list[int]]:
        """Return a copy of the posting list for term; empty when unknown."""
        with self._lock:
            postings = self._postings.get(term)
            if not postings:
                return {}
            return {doc_id: list(positions) for doc_id, positions in postings.items()}

    def get_text(self, doc_id: int) -> str | None:
        with self._lock:
            return self._forward.get(doc_id)

    def count(self) -> int:
        with self._lock:
            return len(self._forward)

    def term_count(self) -> int:
        with self._lock:
            return len(self._postings)

    def remove(self, doc_id: int) -> None:
        """Drop a document and prune terms whose posting list becomes empty."""
        with self._lock:
            self._forward.pop(doc_id, None)
            emptied: list[str] = []
            for term, postings in self._postings.items():
                postings.pop(doc_id, None)
                if not postings:
                    emptied.append(term)
            for term in emptied:
                del self._postings[term]

    def clear(self) -> None:
        with self._lock:
            self._postings.clear()
            self._forward.clear()
            self._next_doc_id = 0

    def merge(self, other: InvertedIndex | None) -> None:
        """Absorb every document of other under freshly assigned ids.

        Position lists are copied as recorded by other and are not re-derived
        from the merged text.
        """
        if other is None or other is self:
            return

        forward, postings = other._export()
        if not forward:
            return

        with self._lock:
            remapped: dict[int, int] = {}
            for old_id in sorted(forward):
                new_id = self._next_doc_id
                self._next_doc_id += 1
                remapped[old_id] = new_id
                self._forward[new_id] = forward[old_id]

            for term, doc_positions in postings.items():
                target = self._postings.setdefault(term, {})
                target.update(
                    (remapped[old_id], positions)
                    for old_id, positions in doc_positions.items()
                    if old_id in remapped
                )

    def _export(self) -> tuple[dict[int, str], dict[str, dict[int, list[int]]]]:
        with self._lock:
            forward = dict(self._forward)
            postings = {
                term: {doc_id: list(positions) for doc_id, positions in docs.items()}
                for term, docs in self._postings.items()
            }
            return forward, postings

    def __getstate__(self) -> dict[str, Any]:
        with self._lock:
            forward, postings = self._export()
            return {"postings": postings, "forward": forward, "next_doc_id": self._next_doc_id}

    def __setstate__(self, state: dict[str, Any]) -> None:
        self._postings = state["postings"]
        self._forward = state["forward"]
        self._next_doc_id = state["next_doc_id"]
        self._lock = threading.RLock()
