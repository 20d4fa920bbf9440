"""Demonstrates indexing and search without starting the HTTP server."""

from __future__ import annotations

import json
import logging

from config_loader import AppConfig
from server import build_services, search_payload

LOGGER = logging.getLogger("search_service.demo")

DEMO_DOCUMENTS = [
    ("Machine learning", "Machine learning is awesome", "https://example.org/ml"),
    ("Deep learning", "Deep learning is part of machine learning", "https://example.org/dl"),
    ("NLP", "Natural language processing", "https://example.org/nlp"),
]


def run_demo() -> None:
    """Index a few sample documents in memory and print search results."""
    services = build_services(AppConfig(store_file=None), LOGGER)
    for title, content, url in DEMO_DOCUMENTS:
        services.documents.add_document(title, content, url)

    demo_queries = [
        "machine learning",
        "language",
        "quantum computing",
    ]

    for query in demo_queries:
        response = services.engine.search(query)
        print(json.dumps(search_payload(response), ensure_ascii=False, indent=2))


def main() -> None:
    """Demo entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_demo()


if __name__ == "__main__":
    main()
