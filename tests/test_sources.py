import asyncio
from io import BytesIO

import httpx
import pytest

from capalerts.sources import CHUNK_SIZE, CachedSource, fetch_document, is_url, load_source


def test_cached_source_can_be_read_repeatedly() -> None:
    source = CachedSource(b"<alert/>")
    assert source.open().read() == b"<alert/>"
    assert source.open().read() == b"<alert/>"


def test_chunks_cover_the_whole_document() -> None:
    data = b"x" * (CHUNK_SIZE * 2 + 5)
    chunks = list(CachedSource(data).chunks())
    assert [len(chunk) for chunk in chunks] == [CHUNK_SIZE, CHUNK_SIZE, 5]
    assert b"".join(chunks) == data


def test_from_string_strips_declaration_and_encodes_utf8() -> None:
    source = CachedSource.from_string('<?xml version="1.0" encoding="latin-1"?><a>é</a>')
    assert source.data == "<a>é</a>".encode("utf-8")


def test_load_source_accepts_common_inputs(tmp_path) -> None:
    path = tmp_path / "alert.xml"
    path.write_bytes(b"<a/>")
    assert load_source(path).data == b"<a/>"
    assert load_source(BytesIO(b"<a/>")).data == b"<a/>"
    assert load_source(b"<a/>").data == b"<a/>"
    with pytest.raises(TypeError):
        load_source(42)


def test_is_url() -> None:
    assert is_url("https://alerts.example.com/cap.xml")
    assert not is_url("alerts/cap.xml")


def test_fetch_document() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/cap.xml"
        return httpx.Response(200, content=b"<alert/>")

    source = asyncio.run(
        fetch_document("https://alerts.test/cap.xml", transport=httpx.MockTransport(handler))
    )
    assert source.data == b"<alert/>"
    assert source.system_id == "https://alerts.test/cap.xml"


def test_fetch_document_raises_for_http_errors() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(fetch_document("https://alerts.test/missing.xml", transport=transport))
