"""Buffered alert inputs and remote fetching."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from io import BytesIO
from pathlib import Path
from typing import IO, Union
from urllib.parse import urlsplit

import httpx

from .utils import strip_xml_preamble

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class CachedSource:
    """Alert input buffered once so it can be read several times.

    Schema validation, namespace sniffing and the streaming parse each open
    a fresh reader over the same bytes.
    """

    def __init__(self, data: bytes, system_id: str | None = None) -> None:
        self.data = data
        self.system_id = system_id

    @classmethod
    def from_string(cls, text: str, system_id: str | None = None) -> "CachedSource":
        # The text is re-encoded as UTF-8, so any declared encoding no longer applies.
        return cls(strip_xml_preamble(text).encode("utf-8"), system_id)

    @classmethod
    def from_stream(cls, stream: IO, system_id: str | None = None) -> "CachedSource":
        chunks = []
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
        if chunks and isinstance(chunks[0], str):
            return cls.from_string("".join(chunks), system_id)
        return cls(b"".join(chunks), system_id)

    @classmethod
    def from_path(cls, path: Path) -> "CachedSource":
        with path.open("rb") as fp:
            return cls.from_stream(fp, system_id=str(path))

    def open(self) -> BytesIO:
        return BytesIO(self.data)

    def chunks(self, size: int = CHUNK_SIZE) -> Iterator[bytes]:
        for start in range(0, len(self.data), size):
            yield self.data[start : start + size]

    def __len__(self) -> int:
        return len(self.data)


Source = Union[CachedSource, str, bytes, Path, IO]


def load_source(source: Source) -> CachedSource:
    """Buffer any accepted input. Strings are XML text, not file names."""
    if isinstance(source, CachedSource):
        return source
    if isinstance(source, str):
        return CachedSource.from_string(source)
    if isinstance(source, (bytes, bytearray)):
        return CachedSource(bytes(source))
    if isinstance(source, Path):
        return CachedSource.from_path(source)
    if hasattr(source, "read"):
        return CachedSource.from_stream(source)
    raise TypeError(f"Unsupported alert source: {type(source).__name__}")


def is_url(value: str) -> bool:
    return urlsplit(value).scheme in {"http", "https"}


async def fetch_document(
    url: str,
    timeout_seconds: float = 15.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CachedSource:
    """Download an alert document over HTTP(S)."""
    async with httpx.AsyncClient(
        timeout=timeout_seconds, follow_redirects=True, transport=transport
    ) as client:
        response = await client.get(url)
        response.raise_for_status()
    LOGGER.info("Fetched alert document %s (%s bytes)", url, len(response.content))
    return CachedSource(response.content, system_id=url)
