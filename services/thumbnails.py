import asyncio
import functools
import os
import subprocess
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import cv2
import numpy as np

from core.config import (
    IMAGE_EXT,
    THUMBNAIL_CONCURRENCY,
    THUMBNAIL_MAX_DIM,
    THUMBNAIL_TIMEOUT,
    THUMBNAIL_TIMESTAMP,
    VIDEO_EXT,
)
from core.exceptions import ThumbnailUnavailableError
from core.logging_config import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[str, int]

def has_thumbnail(name: str) -> bool:
    ext = os.path.splitext(name)[1].lower()
    return ext in VIDEO_EXT or ext in IMAGE_EXT


def get_video_duration(path: str) -> float:
    duration = 0.0
    try:
        cap = cv2.VideoCapture(path)
        if cap.isOpened():
            fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
            frames = float(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0)
            if fps > 0 and frames > 0:
                duration = frames / fps
        cap.release()
    except cv2.error as e:
        logger.warning(f"Could not read video metadata for {path}: {e}")
    return duration


def pick_timestamp(duration: float, preferred: float = THUMBNAIL_TIMESTAMP) -> float:
    """Seek position for the still frame; short clips use their midpoint."""
    if duration <= 0:
        return 0.0
    if duration > preferred * 2:
        return preferred
    return duration / 2


def extract_video_frame(
    path: Path,
    ffmpeg_bin: str = "ffmpeg",
    timeout: float = THUMBNAIL_TIMEOUT,
) -> bytes:
    """
    Run ffmpeg to grab a single frame of path as a scaled JPEG.
    """
    timestamp = pick_timestamp(get_video_duration(str(path)))
    cmd = [
        ffmpeg_bin, "-hide_banner", "-loglevel", "error",
        "-ss", f"{timestamp:.2f}", "-i", str(path),
        "-frames:v", "1",
        "-vf", f"scale='min({THUMBNAIL_MAX_DIM},iw)':-2",
        "-f", "image2pipe", "-vcodec", "mjpeg", "pipe:1",
    ]
    try:
        proc = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
    except FileNotFoundError:
        raise ThumbnailUnavailableError(f"Transcoder not found: {ffmpeg_bin}")
    except subprocess.TimeoutExpired:
        raise ThumbnailUnavailableError(f"Transcoder timed out after {timeout}s on {path}")

    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        raise ThumbnailUnavailableError(
            f"Transcoder exited with {proc.returncode} on {path}: {stderr[-300:]}"
        )
    if not proc.stdout:
        raise ThumbnailUnavailableError(f"Transcoder produced no frame for {path}")
    return proc.stdout


def scale_image(path: Path, max_dim: int = THUMBNAIL_MAX_DIM) -> bytes:
    """
    Decode an image, shrink its longest side to max_dim and re-encode as JPEG.
    """
    try:
        # np.fromfile + imdecode instead of imread: imread cannot open non-ASCII paths everywhere
        data = np.fromfile(str(path), dtype=np.uint8)
    except OSError as e:
        raise ThumbnailUnavailableError(f"Cannot read image {path}: {e}")

    img = cv2.imdecode(data, cv2.IMREAD_COLOR) if data.size else None
    if img is None:
        raise ThumbnailUnavailableError(f"Cannot decode image {path}")

    height, width = img.shape[:2]
    scale = max_dim / float(max(height, width))
    if scale < 1.0:
        img = cv2.resize(
            img,
            (max(1, int(width * scale)), max(1, int(height * scale))),
            interpolation=cv2.INTER_AREA,
        )

    ok, encoded = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), 80])
    if not ok:
        raise ThumbnailUnavailableError(f"Cannot encode thumbnail for {path}")
    return encoded.tobytes()


def make_thumbnail(
    path: Path,
    ffmpeg_bin: str = "ffmpeg",
    timeout: float = THUMBNAIL_TIMEOUT,
) -> bytes:
    ext = path.suffix.lower()
    if ext in IMAGE_EXT:
        return scale_image(path)
    if ext in VIDEO_EXT:
        return extract_video_frame(path, ffmpeg_bin, timeout)
    raise ThumbnailUnavailableError(f"No thumbnail for file type {ext or '(none)'}")


class ThumbnailCache:
    """
    Process-wide thumbnail store keyed by (path, mtime).

    Generation is single-flight per key: concurrent callers for the same
    uncached file share one producer call and observe the same result or the
    same ThumbnailUnavailableError. Failures are not cached.

    Producers run on a private pool of max_workers threads, so slow
    transcoder runs never occupy the event loop's default executor that
    file streaming and directory listing rely on.
    """

    def __init__(
        self,
        producer: Callable[[Path], bytes],
        max_workers: int = THUMBNAIL_CONCURRENCY,
    ) -> None:
        self.producer = producer
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="thumbnail")
        self._entries: Dict[CacheKey, bytes] = {}
        self._inflight: Dict[CacheKey, "asyncio.Future[bytes]"] = {}

    @classmethod
    def for_settings(cls, settings) -> "ThumbnailCache":
        return cls(
            functools.partial(
                make_thumbnail,
                ffmpeg_bin=settings.ffmpeg_bin,
                timeout=settings.thumbnail_timeout,
            )
        )

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def cache_key(path: Path) -> CacheKey:
        try:
            mtime = os.stat(path).st_mtime_ns
        except OSError as e:
            raise ThumbnailUnavailableError(f"Cannot stat {path}: {e}")
        return str(path), mtime

    def peek(self, path: Path) -> Optional[bytes]:
        return self._entries.get(self.cache_key(path))

    async def get_thumbnail(self, path: Path) -> bytes:
        key = self.cache_key(path)
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._generate(key, path))
            self._inflight[key] = future
            future.add_done_callback(functools.partial(self._finish, key))

        # shield so one cancelled waiter does not abort the shared generation
        return await asyncio.shield(future)

    def _finish(self, key: CacheKey, future: "asyncio.Future[bytes]") -> None:
        self._inflight.pop(key, None)
        # mark the failure retrieved even when every waiter was cancelled
        if not future.cancelled():
            future.exception()

    async def _generate(self, key: CacheKey, path: Path) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(self.executor, self.producer, path)
        except ThumbnailUnavailableError as e:
            logger.warning(f"Thumbnail unavailable: {e}")
            raise
        except Exception as e:
            logger.warning(f"Thumbnail generation failed for {path}: {e}")
            raise ThumbnailUnavailableError(str(e)) from e

        # a newer mtime supersedes older entries for the same file
        for stale in [k for k in self._entries if k[0] == key[0] and k != key]:
            del self._entries[stale]
        self._entries[key] = data
        return data
