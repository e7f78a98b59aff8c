"""Shared test helpers."""

from __future__ import annotations

import io
import os
import time
from pathlib import Path
from typing import Callable, Optional

from starlette.datastructures import Headers, UploadFile

MAX_BYTES = 1024 * 1024


class BytesSource:
    """Async byte source that hands out ``data`` in chunks.

    ``on_read`` runs before every read so tests can observe the store while
    a write is in flight.
    """

    def __init__(self, data: bytes, on_read: Optional[Callable[[int], None]] = None) -> None:
        self._stream = io.BytesIO(data)
        self._on_read = on_read
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        if self._on_read is not None:
            self._on_read(self.reads)
        self.reads += 1
        return self._stream.read(size)


def make_upload(
    data: bytes,
    filename: Optional[str] = "clip.mp4",
    content_type: Optional[str] = "video/mp4",
) -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(io.BytesIO(data), size=len(data), filename=filename, headers=headers)


def backdate(path: Path, seconds: float) -> None:
    """Shift a file's modification time into the past."""
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


def published_files(upload_dir: Path) -> list[str]:
    return sorted(entry.name for entry in upload_dir.iterdir() if entry.is_file())
