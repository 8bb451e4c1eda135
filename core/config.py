import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_REALM = "File Share"

CHUNK_SIZE = 1024 * 1024  # 1 MiB for streaming

THUMBNAIL_MAX_DIM = 320
THUMBNAIL_TIMESTAMP = 3.0  # seconds into the video
THUMBNAIL_TIMEOUT = 30.0
THUMBNAIL_CONCURRENCY = 4

TEXT_PREVIEW_BYTES = 64 * 1024

IMAGE_EXT = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff"}
VIDEO_EXT = {".mp4", ".mov", ".m4v", ".avi", ".mkv", ".webm", ".wmv", ".flv"}
AUDIO_EXT = {".mp3", ".wav", ".flac", ".ogg", ".aac", ".m4a", ".opus"}


@dataclass(frozen=True)
class Settings:
    share_root: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    realm: str = DEFAULT_REALM
    ffmpeg_bin: str = "ffmpeg"
    thumbnail_timeout: float = THUMBNAIL_TIMEOUT
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        root = Path(os.path.realpath(self.share_root))
        if not root.is_dir():
            raise ValueError(f"Share root is not a directory: {self.share_root}")
        object.__setattr__(self, "share_root", root)

    @property
    def auth_enabled(self) -> bool:
        return self.username is not None and self.password is not None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            share_root=Path(os.environ.get("FILESHARE_ROOT", ".")),
            host=os.environ.get("FILESHARE_HOST", DEFAULT_HOST),
            port=int(os.environ.get("FILESHARE_PORT", str(DEFAULT_PORT))),
            username=os.environ.get("FILESHARE_USERNAME") or None,
            password=os.environ.get("FILESHARE_PASSWORD") or None,
            realm=os.environ.get("FILESHARE_REALM", DEFAULT_REALM),
            ffmpeg_bin=os.environ.get("FILESHARE_FFMPEG", "ffmpeg"),
            thumbnail_timeout=float(
                os.environ.get("FILESHARE_THUMBNAIL_TIMEOUT", str(THUMBNAIL_TIMEOUT))
            ),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
