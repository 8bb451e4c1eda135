import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
from fastapi import Response
from fastapi.responses import StreamingResponse

from core.config import CHUNK_SIZE
from core.exceptions import RangeNotSatisfiableError


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        return f"bytes {self.start}-{self.end}/{file_size}"


def guess_mime(path: str, fallback: str = "application/octet-stream") -> str:
    m, _ = mimetypes.guess_type(path)
    if m and m.startswith("text/"):
        return f"{m}; charset=utf-8"
    return m or fallback


def _is_number(value: str) -> bool:
    return value.isascii() and value.isdigit()


def parse_range(range_header: Optional[str], file_size: int) -> Optional[ByteRange]:
    """
    Parse a header like: Range: bytes=start-end
    Return the first requested range (inclusive), or None when the header is
    absent or malformed so the caller serves the whole file.
    Raises RangeNotSatisfiableError when the range lies outside the file.
    """
    if not range_header:
        return None

    units, sep, ranges = range_header.partition("=")
    if not sep or units.strip().lower() != "bytes":
        return None

    # only the first of several ranges is served
    first = ranges.split(",", 1)[0].strip()
    start_str, sep, end_str = first.partition("-")
    start_str, end_str = start_str.strip(), end_str.strip()
    if not sep or (start_str == "" and end_str == ""):
        return None
    if (start_str and not _is_number(start_str)) or (end_str and not _is_number(end_str)):
        return None

    if start_str == "":
        # suffix range: last N bytes
        length = int(end_str)
        if length == 0 or file_size == 0:
            raise RangeNotSatisfiableError(file_size)
        return ByteRange(max(file_size - length, 0), file_size - 1)

    start = int(start_str)
    end = min(int(end_str), file_size - 1) if end_str else file_size - 1
    if start >= file_size or end < start:
        raise RangeNotSatisfiableError(file_size)
    return ByteRange(start, end)


async def file_iterator(path: str, start: int, end: int) -> AsyncIterator[bytes]:
    read_bytes = 0
    to_read = end - start + 1
    async with aiofiles.open(path, "rb") as f:
        await f.seek(start)
        while read_bytes < to_read:
            chunk_size = min(CHUNK_SIZE, to_read - read_bytes)
            data = await f.read(chunk_size)
            if not data:
                break
            read_bytes += len(data)
            yield data


def file_response(
    path: Path,
    range_header: Optional[str] = None,
    head_only: bool = False,
) -> Response:
    """
    Build a 200 (whole file) or 206 (single byte range) response for path.
    The body is streamed chunk by chunk; HEAD gets the same headers with no body.
    """
    file_size = os.stat(path).st_size
    content_type = guess_mime(str(path))
    byte_range = parse_range(range_header, file_size)

    if byte_range is None:
        status_code = 200
        start, end = 0, file_size - 1
        headers = {
            "Accept-Ranges": "bytes",
            "Content-Length": str(file_size),
        }
    else:
        status_code = 206
        start, end = byte_range.start, byte_range.end
        headers = {
            "Content-Range": byte_range.content_range(file_size),
            "Accept-Ranges": "bytes",
            "Content-Length": str(byte_range.length),
        }

    if head_only or file_size == 0:
        headers["Content-Type"] = content_type
        return Response(status_code=status_code, headers=headers)

    return StreamingResponse(
        file_iterator(str(path), start, end),
        status_code=status_code,
        headers=headers,
        media_type=content_type,
    )
