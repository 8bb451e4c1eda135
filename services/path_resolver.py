import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple
from urllib.parse import unquote

from core.exceptions import NotFoundError, PathEscapeError, PermissionDeniedError


@dataclass(frozen=True)
class ResolvedPath:
    real_path: Path
    segments: Tuple[str, ...]  # normalized components below the share root
    is_dir: bool

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def display_path(self) -> str:
        return "/" + "/".join(self.segments) + ("/" if self.is_dir and self.segments else "")


def normalize_segments(request_path: str) -> Tuple[str, ...]:
    """
    Percent-decode a URL path and collapse "." / ".." segments.
    Raises PathEscapeError when ".." climbs above the root.
    """
    decoded = unquote(request_path, errors="surrogateescape")
    if "\x00" in decoded:
        raise PathEscapeError("NUL byte in request path")

    segments = []
    for part in decoded.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not segments:
                raise PathEscapeError(f"Path escapes share root: {request_path}")
            segments.pop()
            continue
        segments.append(part)
    return tuple(segments)


def is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def resolve(share_root: Path, request_path: str) -> ResolvedPath:
    """
    Map a raw (percent-encoded) URL path onto a real path inside share_root.

    Symlinks are followed before the containment check, so a link pointing
    outside the root is treated as an escape.
    """
    segments = normalize_segments(request_path)
    candidate = share_root.joinpath(*segments)
    real = Path(os.path.realpath(candidate))

    if not is_within(real, share_root):
        raise PathEscapeError(f"Path escapes share root: {request_path}")

    try:
        st = os.stat(real)
    except FileNotFoundError:
        raise NotFoundError(f"No such path: {request_path}")
    except NotADirectoryError:
        raise NotFoundError(f"No such path: {request_path}")
    except PermissionError:
        raise PermissionDeniedError(f"Access denied: {request_path}")

    is_dir = stat.S_ISDIR(st.st_mode)
    if not is_dir and not stat.S_ISREG(st.st_mode):
        raise NotFoundError(f"Not a regular file: {request_path}")

    required = os.R_OK | os.X_OK if is_dir else os.R_OK
    if not os.access(real, required):
        raise PermissionDeniedError(f"Access denied: {request_path}")

    return ResolvedPath(real_path=real, segments=segments, is_dir=is_dir)
