import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from core.logging_config import get_logger
from schemas.listing import DirEntry, EntryKind, Listing, SortDirection, SortKey
from services.path_resolver import is_within

logger = get_logger(__name__)

# Directories are always listed before files, whatever the sort key or direction.
DIRECTORIES_FIRST = True


def type_label(name: str, kind: EntryKind) -> str:
    if kind is EntryKind.DIRECTORY:
        return "folder"
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    return ext or "file"


def count_children(path: str) -> Optional[int]:
    """Directory size policy: immediate entry count, never recursive."""
    try:
        with os.scandir(path) as it:
            return sum(1 for _ in it)
    except OSError:
        return None


def read_entry(entry: os.DirEntry) -> DirEntry:
    st = entry.stat()  # follows symlinks; raises on dangling links
    kind = EntryKind.DIRECTORY if entry.is_dir() else EntryKind.FILE
    size = count_children(entry.path) if kind is EntryKind.DIRECTORY else st.st_size
    return DirEntry(
        name=entry.name,
        kind=kind,
        size=size,
        modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        type_label=type_label(entry.name, kind),
    )


def _name_key(entry: DirEntry):
    return entry.name.casefold(), entry.name


def _primary_key(sort_key: SortKey):
    if sort_key is SortKey.SIZE:
        return lambda e: e.size if e.size is not None else -1
    if sort_key is SortKey.TYPE:
        return lambda e: e.type_label
    if sort_key is SortKey.MODIFIED:
        return lambda e: e.modified_at
    return _name_key


def sort_entries(
    entries: List[DirEntry],
    sort_key: SortKey = SortKey.NAME,
    direction: SortDirection = SortDirection.ASC,
) -> List[DirEntry]:
    """
    Stable multi-pass sort: Name ascending as the tie-break, then the
    requested key in the requested direction, then directories first.
    """
    ordered = sorted(entries, key=_name_key)
    if sort_key is SortKey.NAME:
        if direction is SortDirection.DESC:
            ordered.reverse()
    else:
        ordered.sort(key=_primary_key(sort_key), reverse=direction is SortDirection.DESC)
    if DIRECTORIES_FIRST:
        ordered.sort(key=lambda e: not e.is_dir)
    return ordered


def build_listing(
    directory: Path,
    sort_key: SortKey = SortKey.NAME,
    direction: SortDirection = SortDirection.ASC,
    share_root: Optional[Path] = None,
) -> Listing:
    """
    Snapshot the immediate children of directory. Entries that cannot be
    stat'ed (dangling symlinks, races with deletion) are skipped.

    With share_root set, symlinks resolving outside it are skipped too: the
    resolver would refuse to serve them, so their metadata is not shown.
    """
    entries: List[DirEntry] = []
    with os.scandir(directory) as it:
        for entry in it:
            if share_root is not None and not is_within(Path(os.path.realpath(entry.path)), share_root):
                logger.warning(f"Skipping entry outside the share root: {entry.path!r}")
                continue
            try:
                entries.append(read_entry(entry))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable entry {entry.path!r}: {e}")

    return Listing(
        entries=sort_entries(entries, sort_key, direction),
        sort_key=sort_key,
        direction=direction,
    )
