"""Entry point for the document search HTTP service."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable
from urllib.parse import parse_qs, urlparse

from analyzer import Analyzer
from config_loader import AppConfig, load_config
from crawler import CrawlHistory, CrawlHistoryEntry, Crawler, CrawlRequest, CrawlResult
from document_service import DocumentService
from document_store import DocumentRecord, DocumentStore
from indexer import Indexer
from inverted_index import InvertedIndex
from scorer import TfIdfScorer
from search_engine import SearchEngine, SearchResponse

LOGGER = logging.getLogger("search_service")

DOCUMENT_PATH = re.compile(r"^/api/documents/(\d+)$")
CRAWL_HISTORY_PATH = re.compile(r"^/api/crawler/history/(\d+)$")

RouteHandler = Callable[[str, dict[str, list[str]]], None]


@dataclass
class Services:
    """Wired components sharing one inverted index."""

    index: InvertedIndex
    store: DocumentStore
    documents: DocumentService
    engine: SearchEngine
    crawler: Crawler


class RequestError(Exception):
    """Client error carrying the HTTP status to answer with."""

    def __init__(self, status: HTTPStatus, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def build_services(config: AppConfig, logger: logging.Logger) -> Services:
    index = InvertedIndex()
    analyzer = Analyzer()
    store = DocumentStore(config.store_file, logger)
    indexer = Indexer(index, analyzer, logger, directories=config.directories)
    engine = SearchEngine(
        index,
        analyzer,
        TfIdfScorer(index, analyzer),
        logger,
        lookup=store.get,
        snippet_length=config.snippet_length,
    )
    documents = DocumentService(store, indexer, logger)
    return Services(
        index=index,
        store=store,
        documents=documents,
        engine=engine,
        crawler=Crawler(documents, CrawlHistory(), logger),
    )


class SearchRequestHandler(BaseHTTPRequestHandler):
    """HTTP handler exposing search, document management, crawler and health endpoints."""

    services: Services
    logger: logging.Logger
    default_limit: int = 10
    max_limit: int = 50

    def do_GET(self) -> None:
        self._dispatch(self._handle_get)

    def do_POST(self) -> None:
        self._dispatch(self._handle_post)

    def do_PUT(self) -> None:
        self._dispatch(self._handle_put)

    def do_DELETE(self) -> None:
        self._dispatch(self._handle_delete)

    def _dispatch(self, handler: RouteHandler) -> None:
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"
        params = parse_qs(parsed.query)
        try:
            handler(path, params)
        except RequestError as exc:
            self._send_error(exc.status, exc.message)
        except Exception:
            self.logger.exception("Request failed: %s %s", self.command, self.path)
            self._send_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")

    def _handle_get(self, path: str, params: dict[str, list[str]]) -> None:
        documents = self.services.documents

        if path in ("/health", "/api/health", "/api/v1/health"):
            self._send_json(HTTPStatus.OK, {"status": "ok"})
        elif path in ("/search", "/api/search", "/api/v1/search"):
            self._send_json(HTTPStatus.OK, self._search(params))
        elif path == "/api/index":
            index = self.services.index
            self._send_json(HTTPStatus.OK, {"documents": index.count(), "terms": index.term_count()})
        elif path == "/api/documents":
            self._send_json(HTTPStatus.OK, [_document_payload(doc) for doc in documents.list_documents()])
        elif path == "/api/documents/count":
            self._send_json(HTTPStatus.OK, documents.count_documents())
        elif path == "/api/documents/url":
            url = _param(params, "url")
            if not url:
                raise RequestError(HTTPStatus.BAD_REQUEST, "Missing query parameter 'url'")
            record = documents.get_document_by_url(url)
            if record is None:
                raise RequestError(HTTPStatus.NOT_FOUND, f"Document not found: URL={url}")
            self._send_json(HTTPStatus.OK, _document_payload(record))
        elif path == "/api/crawler/history":
            history = self.services.crawler.history.list_all()
            self._send_json(HTTPStatus.OK, [_history_payload(entry) for entry in history])
        elif (match := CRAWL_HISTORY_PATH.match(path)) is not None:
            entry_id = int(match.group(1))
            entry = self.services.crawler.history.get(entry_id)
            if entry is None:
                raise RequestError(HTTPStatus.NOT_FOUND, f"Crawl history not found: ID={entry_id}")
            self._send_json(HTTPStatus.OK, _history_payload(entry))
        else:
            doc_id = self._document_id(path)
            record = documents.get_document(doc_id)
            if record is None:
                raise RequestError(HTTPStatus.NOT_FOUND, f"Document not found: ID={doc_id}")
            self._send_json(HTTPStatus.OK, _document_payload(record))

    def _handle_post(self, path: str, params: dict[str, list[str]]) -> None:
        if path == "/api/crawler/start":
            request = self._read_crawl_request()
            self.logger.info("POST /api/crawler/start - URL: %s", request.start_url)
            result = self.services.crawler.crawl(request)
            self._send_json(HTTPStatus.OK, _crawl_payload(result))
            return
        if path != "/api/documents":
            raise RequestError(HTTPStatus.NOT_FOUND, "Not found")

        title, content, url = self._read_document_body()
        result = self.services.documents.add_document(title, content, url)
        if result.duplicate:
            raise RequestError(HTTPStatus.CONFLICT, f"Document with URL already exists: {url}")
        self._send_json(HTTPStatus.CREATED, _document_payload(result.record))

    def _handle_put(self, path: str, params: dict[str, list[str]]) -> None:
        doc_id = self._document_id(path)
        title, content, url = self._read_document_body()
        result = self.services.documents.update_document(doc_id, title, content, url)
        if result is None:
            raise RequestError(HTTPStatus.NOT_FOUND, f"Document not found: ID={doc_id}")
        if result.duplicate:
            raise RequestError(HTTPStatus.CONFLICT, f"URL already exists: {url}")
        self._send_json(HTTPStatus.OK, _document_payload(result.record))

    def _handle_delete(self, path: str, params: dict[str, list[str]]) -> None:
        if path == "/api/documents":
            self.services.documents.delete_all_documents()
            self._send_empty(HTTPStatus.NO_CONTENT)
            return

        doc_id = self._document_id(path)
        if not self.services.documents.delete_document(doc_id):
            raise RequestError(HTTPStatus.NOT_FOUND, f"Document not found: ID={doc_id}")
        self._send_empty(HTTPStatus.NO_CONTENT)

    def _search(self, params: dict[str, list[str]]) -> dict[str, Any]:
        query = (_param(params, "query") or _param(params, "q")).strip()
        if not query:
            raise RequestError(HTTPStatus.BAD_REQUEST, "Missing query parameter 'query'")

        limit = min(_non_negative_int(params, "limit", self.default_limit), self.max_limit)
        offset = _non_negative_int(params, "offset", 0)
        self.logger.info("GET /api/search - query: '%s', limit: %d, offset: %d", query, limit, offset)
        return search_payload(self.services.engine.search(query, limit=limit, offset=offset))

    def _document_id(self, path: str) -> int:
        match = DOCUMENT_PATH.match(path)
        if match is None:
            raise RequestError(HTTPStatus.NOT_FOUND, "Not found")
        return int(match.group(1))

    def _read_json_body(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length") or 0)
        try:
            body = json.loads(self.rfile.read(length) or b"{}")
        except ValueError as exc:
            raise RequestError(HTTPStatus.BAD_REQUEST, f"Invalid JSON body: {exc}") from exc
        if not isinstance(body, dict):
            raise RequestError(HTTPStatus.BAD_REQUEST, "Request body must be a JSON object")
        return body

    def _read_crawl_request(self) -> CrawlRequest:
        body = self._read_json_body()
        start_url = body.get("startUrl")
        if not isinstance(start_url, str) or not start_url.strip():
            raise RequestError(HTTPStatus.BAD_REQUEST, "'startUrl' must be a non-empty string")
        start_url = start_url.strip()
        if urlparse(start_url).scheme not in ("http", "https"):
            raise RequestError(HTTPStatus.BAD_REQUEST, "'startUrl' must be an http or https URL")

        defaults = CrawlRequest(start_url=start_url)
        return CrawlRequest(
            start_url=defaults.start_url,
            max_pages=_body_int(body, "maxPages", defaults.max_pages, minimum=1),
            max_depth=_body_int(body, "maxDepth", defaults.max_depth, minimum=0),
            delay_ms=_body_int(body, "delayMs", defaults.delay_ms, minimum=0),
        )

    def _read_document_body(self) -> tuple[str, str, str]:
        body = self._read_json_body()

        title = body.get("title") or ""
        content = body.get("content") or ""
        url = body.get("url")
        if not isinstance(url, str) or not url.strip():
            raise RequestError(HTTPStatus.BAD_REQUEST, "'url' must be a non-empty string")
        if not isinstance(title, str) or not isinstance(content, str):
            raise RequestError(HTTPStatus.BAD_REQUEST, "'title' and 'content' must be strings")
        return title, content, url

    def _send_error(self, status: HTTPStatus, message: str) -> None:
        self._send_json(
            status,
            {
                "timestamp": datetime.now().isoformat(),
                "status": status.value,
                "error": status.phrase,
                "message": message,
            },
        )

    def _send_json(self, status: HTTPStatus, payload: object) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_empty(self, status: HTTPStatus) -> None:
        self.send_response(status.value)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format: str, *args: object) -> None:
        self.logger.info("%s - %s", self.client_address[0], format % args)


def _param(params: dict[str, list[str]], name: str) -> str:
    return (params.get(name) or [""])[0]


def _non_negative_int(params: dict[str, list[str]], name: str, default: int) -> int:
    raw = _param(params, name).strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RequestError(HTTPStatus.BAD_REQUEST, f"Invalid query parameter '{name}'") from None
    if value < 0:
        raise RequestError(HTTPStatus.BAD_REQUEST, f"Query parameter '{name}' must not be negative")
    return value


def _body_int(body: dict[str, Any], name: str, default: int, minimum: int) -> int:
    value = body.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise RequestError(HTTPStatus.BAD_REQUEST, f"'{name}' must be an integer")
    if value < minimum:
        raise RequestError(HTTPStatus.BAD_REQUEST, f"'{name}' must be at least {minimum}")
    return value


def _timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _document_payload(record: DocumentRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "content": record.content,
        "url": record.url,
        "createdAt": _timestamp(record.created_at),
        "updatedAt": _timestamp(record.updated_at),
        "crawledAt": _timestamp(record.crawled_at),
    }


def _crawl_payload(result: CrawlResult) -> dict[str, Any]:
    return {
        "status": result.status,
        "pagesProcessed": result.pages_processed,
        "documentsIndexed": result.documents_indexed,
        "errorCount": result.error_count,
        "errors": result.errors,
        "crawlTimeMillis": result.crawl_time_ms,
    }


def _history_payload(entry: CrawlHistoryEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "startUrl": entry.start_url,
        "startedAt": _timestamp(entry.started_at),
        "finishedAt": _timestamp(entry.finished_at),
        "status": entry.status,
        "pagesCrawled": entry.pages_crawled,
        "documentsIndexed": entry.documents_indexed,
        "durationMillis": entry.duration_ms,
        "errorMessage": entry.error_message,
    }


def search_payload(response: SearchResponse) -> dict[str, Any]:
    results = []
    for result in response.results:
        item: dict[str, Any] = {
            "documentId": result.document_id,
            "score": result.score,
            "matchedTerms": result.matched_terms,
            "snippet": result.snippet,
        }
        if result.document is not None:
            item.update(
                title=result.document.title,
                url=result.document.url,
                createdAt=_timestamp(result.document.created_at),
                updatedAt=_timestamp(result.document.updated_at),
            )
        results.append(item)

    return {
        "query": response.query,
        "totalResults": response.total_results,
        "limit": response.limit,
        "offset": response.offset,
        "results": results,
        "elapsedMillis": round(response.elapsed_ms, 3),
    }


def main() -> None:
    """Load configuration, rebuild the index and start the HTTP server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    base_dir = Path(__file__).resolve().parent
    config = load_config(base_dir / "config.yml")

    services = build_services(config, LOGGER)
    services.store.load()
    services.documents.initialize_index()
    services.documents.ingest_directories()

    SearchRequestHandler.services = services
    SearchRequestHandler.logger = LOGGER
    SearchRequestHandler.default_limit = config.default_limit
    SearchRequestHandler.max_limit = config.max_limit

    server_address = (config.host, config.port)
    httpd = ThreadingHTTPServer(server_address, SearchRequestHandler)

    LOGGER.info("Search service started on http://%s:%d", config.host, config.port)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        LOGGER.info("Shutdown signal received")
    finally:
        httpd.server_close()
        services.store.save()
        LOGGER.info("Server stopped")


if __name__ == "__main__":
    main()
