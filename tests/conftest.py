"""Shared pytest fixtures for all tests."""

import logging
import os
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app
from services.request_log import RequestLogger
from services.thumbnails import ThumbnailCache


class ListHandler(logging.Handler):
    """Collects emitted records for assertions."""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def share_root(tmp_path):
    """
    Create a share root with a few files, a sub folder and a secret file
    placed next to (outside of) the root.

    Returns:
        Path to the share root
    """
    root = tmp_path / "share"
    root.mkdir()
    (root / "hello.txt").write_bytes(b"Hello, world!\n")
    (root / "café.txt").write_bytes("crème brûlée\n".encode("utf-8"))
    (root / "data.bin").write_bytes(bytes(range(256)) * 4)
    sub = root / "sub"
    sub.mkdir()
    (sub / "nested.txt").write_bytes(b"nested content")
    (tmp_path / "secret.txt").write_bytes(b"TOP SECRET")
    return root.resolve()


@pytest.fixture
def capture_logger():
    """
    RequestLogger wired to private loggers whose records are collected.

    Returns:
        (RequestLogger, access ListHandler, security ListHandler)
    """
    access = logging.getLogger(f"test.access.{uuid.uuid4().hex}")
    security = logging.getLogger(f"test.security.{uuid.uuid4().hex}")
    access_handler, security_handler = ListHandler(), ListHandler()
    for lg, handler in ((access, access_handler), (security, security_handler)):
        lg.setLevel(logging.DEBUG)
        lg.propagate = False
        lg.addHandler(handler)
    return RequestLogger(access, security), access_handler, security_handler


def fake_producer(path: Path) -> bytes:
    return b"JPEG:" + os.fsencode(path.name)


@pytest.fixture
def make_client(share_root, capture_logger):
    """
    Factory building a TestClient for an app serving share_root.

    Keyword arguments are passed to Settings; `producer` replaces the
    thumbnail producer (defaults to a fake that never runs ffmpeg).
    """
    request_logger = capture_logger[0]

    def _make(producer=fake_producer, **kwargs):
        settings = Settings(share_root=share_root, **kwargs)
        app = create_app(
            settings,
            thumbnail_cache=ThumbnailCache(producer),
            request_logger=request_logger,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
