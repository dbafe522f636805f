"""
Text Cleaner
Document text extraction, binary-content detection and noise cleanup before chunking.
"""
import json
import re
from typing import Any, Mapping
import structlog

from doc_analysis.models.schemas import Document

logger = structlog.get_logger()

BINARY_SAMPLE_SIZE = 1000
BINARY_THRESHOLD = 0.1
BINARY_SIGNATURES = ("%PDF-", "PK\x03\x04", "ID3", "GIF8", "\x89PNG", "JFIF", "MZ\x90")

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_LONG_TOKEN = re.compile(r"[^\s]{100,}")
_REPEATED_CHAR = re.compile(r"(.)\1{20,}")
_EXCESS_WHITESPACE = re.compile(r"\s{3,}")

BINARY_MARKER = "[BINARY DATA REMOVED]"
REPEATED_MARKER = "[REPEATED CHARS REMOVED]"

TEXT_FIELDS = ("content", "text", "data")
NAME_FIELDS = ("name", "file_name", "fileName")


def extract_document_text(source: Any) -> str:
    """
    Get plain text out of whatever the ingestion layer handed over.

    Accepts a Document, a str, or a mapping/object with a string
    content/text/data field. Anything else is serialized as a last resort.
    """
    if source is None:
        return ""
    if isinstance(source, Document):
        return source.text
    if isinstance(source, str):
        return source

    for field in TEXT_FIELDS:
        value = _field(source, field)
        if isinstance(value, str):
            return value

    logger.warning("No text field on document, serializing", type=type(source).__name__)
    try:
        return json.dumps(source, default=str)
    except (TypeError, ValueError):
        return str(source)


def extract_document_name(source: Any) -> str:
    if isinstance(source, Document):
        return source.name or "unknown"
    for field in NAME_FIELDS:
        value = _field(source, field)
        if isinstance(value, str) and value:
            return value
    return "unknown"


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def is_binary_content(text: Any) -> bool:
    """Heuristic: control-character density in the head, or a known file signature."""
    if not text or not isinstance(text, str):
        return True

    sample = text[:BINARY_SAMPLE_SIZE]
    non_printable = 0
    for ch in sample:
        code = ord(ch)
        if (code < 32 and code not in (9, 10, 13)) or 127 <= code <= 159:
            non_printable += 1

    if non_printable > len(sample) * BINARY_THRESHOLD:
        return True

    head = text[:20]
    return any(sig in head for sig in BINARY_SIGNATURES)


def clean_text_content(text: Any) -> str:
    """Strip control characters and collapse encoded or repeated noise."""
    if not text or not isinstance(text, str):
        return ""

    text = _CONTROL_CHARS.sub("", text)
    text = _LONG_TOKEN.sub(BINARY_MARKER, text)
    text = _REPEATED_CHAR.sub(lambda m: m.group(1) * 3 + f" {REPEATED_MARKER} ", text)
    text = _EXCESS_WHITESPACE.sub("\n\n", text)
    return text
