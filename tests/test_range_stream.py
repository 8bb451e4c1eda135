"""Tests for Range parsing and partial content streaming."""

import asyncio

import pytest

from core.exceptions import RangeNotSatisfiableError
from services.range_stream import ByteRange, file_iterator, guess_mime, parse_range


@pytest.mark.parametrize("header,expected", [
    ("bytes=0-", ByteRange(0, 99)),
    ("bytes=10-19", ByteRange(10, 19)),
    ("bytes=-10", ByteRange(90, 99)),
    ("bytes=-500", ByteRange(0, 99)),
    ("bytes=90-200", ByteRange(90, 99)),
    ("bytes=99-99", ByteRange(99, 99)),
    ("BYTES = 5-6", ByteRange(5, 6)),
    ("bytes=0-1, 5-9", ByteRange(0, 1)),
])
def test_parse_range_valid(header, expected):
    assert parse_range(header, 100) == expected


@pytest.mark.parametrize("header", [
    None,
    "",
    "bytes",
    "bytes=",
    "bytes=-",
    "bytes=abc-def",
    "bytes=1-x",
    "items=0-10",
    "0-10",
    "bytes=²-5",
])
def test_parse_range_malformed_means_whole_file(header):
    assert parse_range(header, 100) is None


@pytest.mark.parametrize("header", [
    "bytes=100-",
    "bytes=150-200",
    "bytes=20-10",
    "bytes=-0",
])
def test_parse_range_unsatisfiable(header):
    with pytest.raises(RangeNotSatisfiableError) as exc_info:
        parse_range(header, 100)
    assert exc_info.value.file_size == 100


def test_parse_range_empty_file():
    with pytest.raises(RangeNotSatisfiableError):
        parse_range("bytes=0-", 0)
    with pytest.raises(RangeNotSatisfiableError):
        parse_range("bytes=-5", 0)


def test_byte_range_headers():
    r = ByteRange(10, 19)
    assert r.length == 10
    assert r.content_range(100) == "bytes 10-19/100"


def test_file_iterator_reads_bounded_chunks(tmp_path, monkeypatch):
    monkeypatch.setattr("services.range_stream.CHUNK_SIZE", 7)
    path = tmp_path / "blob.bin"
    payload = bytes(range(256))
    path.write_bytes(payload)

    async def collect():
        return [chunk async for chunk in file_iterator(str(path), 5, 60)]

    chunks = asyncio.run(collect())
    assert all(len(c) <= 7 for c in chunks)
    assert b"".join(chunks) == payload[5:61]


def test_guess_mime():
    assert guess_mime("movie.mp4") == "video/mp4"
    assert guess_mime("notes.txt") == "text/plain; charset=utf-8"
    assert guess_mime("blob.unknownext") == "application/octet-stream"


def test_full_file_without_range(client, share_root):
    response = client.get("/data.bin")
    body = (share_root / "data.bin").read_bytes()
    assert response.status_code == 200
    assert response.content == body
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["content-length"] == str(len(body))
    assert "content-range" not in response.headers


def test_open_ended_range_returns_whole_file_as_partial(client, share_root):
    body = (share_root / "data.bin").read_bytes()
    size = len(body)
    response = client.get("/data.bin", headers={"Range": "bytes=0-"})
    assert response.status_code == 206
    assert response.headers["content-range"] == f"bytes 0-{size - 1}/{size}"
    assert len(response.content) == size
    assert response.content == body


def test_bounded_range_is_byte_exact(client, share_root):
    body = (share_root / "data.bin").read_bytes()
    response = client.get("/data.bin", headers={"Range": "bytes=100-355"})
    assert response.status_code == 206
    assert response.headers["content-length"] == "256"
    assert response.content == body[100:356]


def test_suffix_range(client, share_root):
    body = (share_root / "data.bin").read_bytes()
    response = client.get("/data.bin", headers={"Range": "bytes=-16"})
    assert response.status_code == 206
    assert response.content == body[-16:]


def test_range_past_end_is_416(client, share_root):
    size = (share_root / "data.bin").stat().st_size
    response = client.get("/data.bin", headers={"Range": f"bytes={size}-"})
    assert response.status_code == 416
    assert response.headers["content-range"] == f"bytes */{size}"


def test_malformed_range_falls_back_to_full_file(client, share_root):
    body = (share_root / "data.bin").read_bytes()
    response = client.get("/data.bin", headers={"Range": "bytes=garbage"})
    assert response.status_code == 200
    assert response.content == body


def test_head_mirrors_get_headers(client, share_root):
    size = (share_root / "data.bin").stat().st_size
    response = client.head("/data.bin")
    assert response.status_code == 200
    assert response.headers["content-length"] == str(size)
    assert response.headers["accept-ranges"] == "bytes"
    assert response.content == b""

    response = client.head("/data.bin", headers={"Range": "bytes=0-9"})
    assert response.status_code == 206
    assert response.headers["content-range"] == f"bytes 0-9/{size}"
    assert response.headers["content-length"] == "10"


def test_empty_file(client, share_root):
    (share_root / "empty.txt").write_bytes(b"")
    response = client.get("/empty.txt")
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["content-length"] == "0"
