"""Breadth-first same-host web crawler that feeds pages into the document service."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from document_service import DocumentService

USER_AGENT = "SearchyTextBot/1.0"
REQUEST_TIMEOUT = 30.0
MIN_CONTENT_LENGTH = 100
ERROR_MESSAGE_LIMIT = 2048

EXCLUDED_EXTENSIONS = (
    ".pdf", ".zip", ".jpg", ".jpeg", ".png", ".gif",
    ".doc", ".docx", ".xls", ".xlsx", ".mp3", ".mp4",
)

STATUS_SUCCESS = "SUCCESS"
STATUS_PARTIAL = "PARTIAL"
STATUS_FAILED = "FAILED"


@dataclass(frozen=True)
class CrawlRequest:
    """Crawl parameters."""

    start_url: str
    max_pages: int = 10
    max_depth: int = 2
    delay_ms: int = 1000


@dataclass(frozen=True)
class CrawlResult:
    """Summary of one finished crawl."""

    status: str
    pages_processed: int
    documents_indexed: int
    errors: list[str] = field(default_factory=list)
    crawl_time_ms: int = 0

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class CrawlHistoryEntry:
    """Record of a past crawl."""

    id: int
    start_url: str
    started_at: datetime
    finished_at: datetime
    status: str
    pages_crawled: int
    documents_indexed: int
    duration_ms: int
    error_message: str | None = None


class CrawlHistory:
    """In-memory log of finished crawls."""

    def __init__(self) -> None:
        self._entries: dict[int, CrawlHistoryEntry] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def record(
        self,
        request: CrawlRequest,
        result: CrawlResult,
        started_at: datetime,
        finished_at: datetime,
    ) -> CrawlHistoryEntry:
        error_message = "; ".join(result.errors)[:ERROR_MESSAGE_LIMIT] or None
        with self._lock:
            entry = CrawlHistoryEntry(
                id=self._next_id,
                start_url=request.start_url,
                started_at=started_at,
                finished_at=finished_at,
                status=result.status,
                pages_crawled=result.pages_processed,
                documents_indexed=result.documents_indexed,
                duration_ms=result.crawl_time_ms,
                error_message=error_message,
            )
            self._entries[entry.id] = entry
            self._next_id += 1
            return entry

    def get(self, entry_id: int) -> CrawlHistoryEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def list_all(self) -> list[CrawlHistoryEntry]:
        with self._lock:
            return list(self._entries.values())


class Crawler:
    """Fetches pages level by level from a start url and upserts them as documents."""

    def __init__(
        self,
        documents: DocumentService,
        history: CrawlHistory,
        logger: logging.Logger,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._documents = documents
        self._history = history
        self._logger = logger
        self._session = session if session is not None else requests.Session()
        self._sleep = sleep

    @property
    def history(self) -> CrawlHistory:
        return self._history

    def crawl(self, request: CrawlRequest) -> CrawlResult:
        started = time.perf_counter()
        started_at = datetime.now()
        self._logger.info("Starting crawler for URL: %s", request.start_url)
        self._logger.info(
            "Settings: maxPages=%d, maxDepth=%d, delayMs=%d",
            request.max_pages,
            request.max_depth,
            request.delay_ms,
        )

        queue: deque[tuple[str, int]] = deque([(request.start_url, 0)])
        visited: set[str] = set()
        errors: list[str] = []
        pages_processed = 0
        documents_indexed = 0

        while queue and pages_processed < request.max_pages:
            url, depth = queue.popleft()
            if url in visited:
                continue
            visited.add(url)

            if pages_processed > 0 and request.delay_ms > 0:
                self._sleep(request.delay_ms / 1000.0)

            self._logger.info("Crawling [depth=%d]: %s", depth, url)
            try:
                html = self._fetch(url)
            except requests.RequestException as exc:
                error = f"Failed to fetch {url}: {exc}"
                errors.append(error)
                self._logger.error("%s", error)
                continue

            pages_processed += 1
            soup = BeautifulSoup(html, "lxml")
            title = soup.title.get_text(strip=True) if soup.title is not None else ""
            content = _visible_text(soup)

            if len(content) > MIN_CONTENT_LENGTH:
                self._documents.add_or_update_document(url, title, content)
                documents_indexed += 1
                self._logger.info("Indexed: %s (%s)", title, url)
            else:
                self._logger.warning("Skipped (too short): %s", url)

            if depth < request.max_depth:
                links = soup.find_all("a", href=True)
                for link in links:
                    link_url = urljoin(url, link["href"])
                    if is_valid_url(link_url, request.start_url):
                        queue.append((link_url, depth + 1))
                self._logger.debug("Found %d links at depth %d", len(links), depth)

        if not errors:
            status = STATUS_SUCCESS
        elif documents_indexed > 0:
            status = STATUS_PARTIAL
        else:
            status = STATUS_FAILED

        result = CrawlResult(
            status=status,
            pages_processed=pages_processed,
            documents_indexed=documents_indexed,
            errors=errors,
            crawl_time_ms=int((time.perf_counter() - started) * 1000),
        )
        self._history.record(request, result, started_at, datetime.now())
        self._logger.info(
            "Crawl finished: %d pages, %d indexed, %d errors in %dms",
            pages_processed,
            documents_indexed,
            len(errors),
            result.crawl_time_ms,
        )
        return result

    def _fetch(self, url: str) -> str:
        response = self._session.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        content_type = response.headers.get("Content-Type", "")
        if "html" not in content_type.lower():
            raise requests.RequestException(f"Unsupported content type: {content_type or 'unknown'}")
        return response.text


def is_valid_url(url: str, start_url: str) -> bool:
    """Same host as start_url, http(s), no fragment and not a file download."""
    if not url:
        return False

    parsed = urlparse(url)
    start = urlparse(start_url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    if parsed.hostname != start.hostname:
        return False
    if parsed.path.lower().endswith(EXCLUDED_EXTENSIONS):
        return False
    return not parsed.fragment


def _visible_text(soup: BeautifulSoup) -> str:
    for element in soup(["script", "style"]):
        element.decompose()
    body = soup.body if soup.body is not None else soup
    return body.get_text(separator=" ", strip=True)
