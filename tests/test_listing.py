"""Tests for directory enumeration and sorting."""

import os

import pytest

from schemas.listing import EntryKind, SortDirection, SortKey
from services.listing_service import build_listing, type_label


@pytest.fixture
def two_files(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"x" * 10)
    (tmp_path / "b.txt").write_bytes(b"x" * 5)
    os.utime(tmp_path / "a.txt", (1_600_000_000, 1_600_000_000))
    os.utime(tmp_path / "b.txt", (1_700_000_000, 1_700_000_000))
    return tmp_path


def test_sort_by_size_ascending(two_files):
    listing = build_listing(two_files, SortKey.SIZE, SortDirection.ASC)
    assert listing.names == ["b.txt", "a.txt"]
    assert listing.sort_key is SortKey.SIZE


def test_sort_by_name_ascending_is_default(two_files):
    assert build_listing(two_files).names == ["a.txt", "b.txt"]


def test_sort_by_name_descending(two_files):
    listing = build_listing(two_files, SortKey.NAME, SortDirection.DESC)
    assert listing.names == ["b.txt", "a.txt"]


def test_sort_by_modified(two_files):
    assert build_listing(two_files, SortKey.MODIFIED).names == ["a.txt", "b.txt"]
    assert build_listing(two_files, SortKey.MODIFIED, SortDirection.DESC).names == ["b.txt", "a.txt"]


def test_equal_keys_tie_break_by_name(tmp_path):
    for name in ("c.txt", "a.txt", "b.txt"):
        (tmp_path / name).write_bytes(b"abc")
    assert build_listing(tmp_path, SortKey.SIZE).names == ["a.txt", "b.txt", "c.txt"]
    assert build_listing(tmp_path, SortKey.SIZE, SortDirection.DESC).names == ["a.txt", "b.txt", "c.txt"]


def test_sort_by_type(tmp_path):
    for name in ("x.mp4", "y.txt", "z.avi", "README"):
        (tmp_path / name).write_bytes(b"")
    assert build_listing(tmp_path, SortKey.TYPE).names == ["z.avi", "README", "x.mp4", "y.txt"]


def test_directories_first_in_both_directions(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"")
    (tmp_path / "zdir").mkdir()
    assert build_listing(tmp_path).names == ["zdir", "a.txt"]
    assert build_listing(tmp_path, SortKey.NAME, SortDirection.DESC).names == ["zdir", "a.txt"]


def test_directory_size_is_entry_count(tmp_path):
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "one").write_bytes(b"")
    (sub / "two").mkdir()
    (sub / "two" / "deep").write_bytes(b"not counted")

    entry = build_listing(tmp_path).entries[0]
    assert entry.kind is EntryKind.DIRECTORY
    assert entry.size == 2
    assert entry.type_label == "folder"


def test_file_metadata(two_files):
    entry = build_listing(two_files).entries[0]
    assert entry.kind is EntryKind.FILE
    assert entry.size == 10
    assert entry.modified_at.timestamp() == 1_600_000_000
    assert entry.type_label == "txt"


def test_broken_symlink_is_skipped(tmp_path):
    (tmp_path / "ok.txt").write_bytes(b"")
    os.symlink(tmp_path / "missing", tmp_path / "dangling")
    assert build_listing(tmp_path).names == ["ok.txt"]


def test_symlink_outside_share_root_is_skipped(tmp_path):
    root = tmp_path / "share"
    (root / "inner").mkdir(parents=True)
    (tmp_path / "secret.txt").write_bytes(b"TOP SECRET")
    os.symlink(tmp_path / "secret.txt", root / "leak.txt")
    os.symlink(tmp_path, root / "up")
    os.symlink(root / "inner", root / "shortcut")
    root = root.resolve()

    assert build_listing(root, share_root=root).names == ["inner", "shortcut"]
    assert "leak.txt" in build_listing(root).names


def test_empty_directory(tmp_path):
    assert build_listing(tmp_path).entries == []


def test_type_label():
    assert type_label("Movie.MKV", EntryKind.FILE) == "mkv"
    assert type_label("Makefile", EntryKind.FILE) == "file"
    assert type_label("photos.d", EntryKind.DIRECTORY) == "folder"
