from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class SortKey(str, Enum):
    NAME = "name"
    SIZE = "size"
    TYPE = "type"
    MODIFIED = "modified"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class ViewKind(str, Enum):
    LIST = "list"
    TABLE = "table"
    GRID = "grid"


class DirEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: EntryKind
    size: Optional[int] = None  # bytes for files, child count for directories
    modified_at: datetime
    type_label: str

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


class Listing(BaseModel):
    model_config = ConfigDict(frozen=True)

    entries: List[DirEntry]
    sort_key: SortKey = SortKey.NAME
    direction: SortDirection = SortDirection.ASC

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]


def parse_enum(enum_cls, value: Optional[str], default):
    """Map a query parameter onto enum_cls, falling back to default on unknown values."""
    if not value:
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return default
