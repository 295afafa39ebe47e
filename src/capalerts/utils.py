"""Text helpers shared by the parser and the validator."""

from __future__ import annotations

import re
from datetime import datetime
from html.entities import html5
from urllib.parse import SplitResult, urlsplit

from .dates import format_date, to_datetime

XML_PREAMBLE = re.compile(r"^\s*<\?xml[^>]*\?>")
BASE64_PATTERN = re.compile(r"([A-Za-z0-9+/]{4})*([A-Za-z0-9+/]{3}=|[A-Za-z0-9+/]{2}==)?")
# A tag name must directly follow "<"; attributes may not contain another "<".
HTML_TAG_PATTERN = re.compile(r"<[^\s<>][^<>]*>")
# Entities must be terminated by ";"; bare "&name" is plain text.
HTML_ENTITY_PATTERN = re.compile(r"&(#\d+|#[xX][0-9A-Fa-f]+|[A-Za-z][A-Za-z0-9]*);")
NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
INTEGER_PATTERN = re.compile(r"[+-]?\d+")
_URI_FORBIDDEN = re.compile(r"[\s<>\"{}|\\^`]")

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def strip_xml_preamble(text: str) -> str:
    return XML_PREAMBLE.sub("", text, count=1)


def truncate(text: str, limit: int = 50) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def parse_number(text: str) -> float:
    """Parse a decimal number, rejecting NaN, infinities and digit separators."""
    stripped = text.strip()
    if not NUMBER_PATTERN.fullmatch(stripped):
        raise ValueError(f"not a number: {text!r}")
    return float(stripped)


def parse_integer(text: str) -> int:
    stripped = text.strip()
    if not INTEGER_PATTERN.fullmatch(stripped):
        raise ValueError(f"not an integer: {text!r}")
    value = int(stripped)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def format_number(value: float) -> str:
    return repr(float(value))


def is_base64(value: str) -> bool:
    return BASE64_PATTERN.fullmatch(value.replace("\r", "").replace("\n", "")) is not None


def contains_html_entities(value: str) -> bool:
    for match in HTML_ENTITY_PATTERN.finditer(value):
        name = match.group(1)
        if name.startswith("#") or f"{name};" in html5:
            return True
    return False


def contains_html_tags(value: str) -> bool:
    return HTML_TAG_PATTERN.search(value) is not None


def parse_uri(value: str) -> SplitResult | None:
    if _URI_FORBIDDEN.search(value):
        return None
    try:
        return urlsplit(value)
    except ValueError:
        return None


def is_absolute_uri(value: str) -> bool:
    parsed = parse_uri(value)
    return parsed is not None and bool(parsed.scheme)


def format_reference(sender: str, identifier: str, sent: str | datetime) -> str:
    """Build a ``sender,identifier,sent`` reference (CAP 1.1 and later)."""
    if isinstance(sent, datetime):
        sent = format_date(sent)
    return f"{sender},{identifier},{sent}"


def parse_reference_parts(reference: str) -> tuple[str, str, str] | None:
    parts = reference.split(",", 2)
    if len(parts) != 3 or not all(part.strip() for part in parts):
        return None
    return parts[0], parts[1], parts[2]


def parse_reference_identifier(reference: str, version: int) -> str | None:
    """Extract the referenced alert's identifier.

    CAP 1.0 references read ``identifier/sender``; later versions read
    ``sender,identifier,sent``.
    """
    if version <= 10:
        identifier, slash, _ = reference.partition("/")
        return identifier if slash else None
    parts = parse_reference_parts(reference)
    return parts[1] if parts else None


def parse_reference_sent(reference: str) -> datetime | None:
    parts = parse_reference_parts(reference)
    if parts is None:
        return None
    return to_datetime(parts[2])
