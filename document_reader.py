"""Text extraction for files ingested from configured directories."""

from __future__ import annotations

import logging
from pathlib import Path

from pypdf import PdfReader

PLAIN_TEXT_SUFFIXES = frozenset({".txt", ".md"})
SUPPORTED_SUFFIXES = PLAIN_TEXT_SUFFIXES | {".pdf"}


def extract_text(file_path: Path, logger: logging.Logger) -> str | None:
    """Extract text from a supported file. Returns None for unreadable or empty files."""
    suffix = file_path.suffix.lower()
    if suffix == ".pdf":
        text = _extract_pdf_text(file_path, logger)
    elif suffix in PLAIN_TEXT_SUFFIXES:
        text = _read_plain_text(file_path, logger)
    else:
        logger.warning("Unsupported file type: %s", file_path)
        return None

    if text is None:
        return None
    text = text.strip()
    return text or None


def _extract_pdf_text(file_path: Path, logger: logging.Logger) -> str | None:
    try:
        reader = PdfReader(str(file_path))
        chunks: list[str] = []
        for page in reader.pages:
            text = page.extract_text() or ""
            if text:
                chunks.append(text)
    except Exception as exc:
        logger.warning("Failed to read PDF %s: %s", file_path, exc)
        return None

    return "\n".join(chunks)


def _read_plain_text(file_path: Path, logger: logging.Logger) -> str | None:
    for encoding in ("utf-8", "latin-1"):
        try:
            return file_path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
        except OSError as exc:
            logger.warning("Failed to read %s: %s", file_path, exc)
            return None
    return None
