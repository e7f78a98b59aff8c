"""Domain models for ephemeral assets."""

from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional

_EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,10}$")

# mimetypes tables differ between platforms; pin the common video types.
_VIDEO_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/x-m4v",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
    ".3gp": "video/3gpp",
    ".ogv": "video/ogg",
}


@dataclass(frozen=True, slots=True)
class Asset:
    id: str
    extension: str
    size_bytes: int
    created_at: datetime

    @property
    def filename(self) -> str:
        return f"{self.id}{self.extension}"

    @property
    def media_type(self) -> str:
        return guess_media_type(self.extension) or "application/octet-stream"

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).total_seconds()

    def expires_at(self, ttl_seconds: float) -> datetime:
        return self.created_at + timedelta(seconds=ttl_seconds)


def normalize_extension(file_name: Optional[str], default: str = ".mp4") -> str:
    """Return a safe lowercase suffix for ``file_name`` or ``default``.

    Only the final suffix of the base name is considered, so directory parts
    and double extensions supplied by the client never reach the filesystem.
    """
    if not file_name:
        return default
    base = PureWindowsPath(PurePosixPath(file_name).name).name
    suffix = PurePosixPath(base).suffix.lower()
    if _EXTENSION_PATTERN.fullmatch(suffix):
        return suffix
    return default


def is_valid_extension(extension: str) -> bool:
    return _EXTENSION_PATTERN.fullmatch(extension) is not None


def guess_media_type(name_or_extension: str) -> Optional[str]:
    suffix = PurePosixPath(name_or_extension).suffix.lower() or name_or_extension.lower()
    if suffix in _VIDEO_TYPES:
        return _VIDEO_TYPES[suffix]
    media_type, _ = mimetypes.guess_type(f"file{suffix}")
    return media_type
