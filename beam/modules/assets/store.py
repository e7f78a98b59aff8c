"""Flat-directory blob storage for uploaded assets.

One file per asset, named ``<id><ext>``, directly under the storage root.
Uploads are written to ``<root>/.staging`` first and published with an atomic
rename, so a reader either sees the complete file or nothing at all. The
directory listing is the only index; nothing is cached in memory.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Protocol

from .exceptions import (
    CapacityExceededError,
    InvalidAssetIdError,
    StorageFaultError,
    StorageInitError,
)
from .identity import is_valid_id, new_id
from .models import Asset, is_valid_extension

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".staging"


class AsyncByteSource(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass(slots=True)
class OpenBlob:
    """An opened asset positioned at offset 0."""

    asset: Asset
    stream: BinaryIO

    @property
    def size_bytes(self) -> int:
        return self.asset.size_bytes

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "OpenBlob":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class BlobStore:
    def __init__(
        self,
        root: Path,
        *,
        max_bytes: int,
        default_extension: str = ".mp4",
        chunk_size: int = 1024 * 1024,
    ) -> None:
        self._root = Path(root).resolve()
        self._staging = self._root / STAGING_DIR_NAME
        self.max_bytes = max_bytes
        self.default_extension = default_extension
        self.chunk_size = chunk_size
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            self._staging.mkdir(exist_ok=True)
        except OSError as exc:
            raise StorageInitError(f"cannot prepare upload directory {self._root}: {exc}") from exc

    @property
    def root(self) -> Path:
        return self._root

    # -- writes -----------------------------------------------------------

    async def put(self, asset_id: str, extension: Optional[str], source: AsyncByteSource) -> Asset:
        """Stream ``source`` into the store under ``asset_id``.

        The byte count is checked after every chunk; going past ``max_bytes``
        aborts the copy and discards what was written so far.
        """
        if not is_valid_id(asset_id):
            raise InvalidAssetIdError()
        extension = extension if extension and is_valid_extension(extension) else self.default_extension
        if await asyncio.to_thread(self._locate, asset_id) is not None:
            logger.error("Refusing to overwrite existing asset %s", asset_id)
            raise StorageFaultError()

        final_path = self._root / f"{asset_id}{extension}"
        staging_path = self._staging / f"{asset_id}.{new_id()}.part"
        total_size = 0
        published = False
        try:
            buffer = await asyncio.to_thread(staging_path.open, "xb")
            try:
                while True:
                    chunk = await source.read(self.chunk_size)
                    if not chunk:
                        break
                    total_size += len(chunk)
                    if total_size > self.max_bytes:
                        raise CapacityExceededError(self.max_bytes)
                    await asyncio.to_thread(buffer.write, chunk)
                await asyncio.to_thread(_flush_to_disk, buffer)
            finally:
                buffer.close()
            await asyncio.to_thread(os.replace, staging_path, final_path)
            published = True
        except OSError as exc:
            logger.error("Failed to store asset %s at %s: %s", asset_id, final_path, exc)
            raise StorageFaultError() from exc
        finally:
            if not published:
                _unlink_quietly(staging_path)

        asset = await asyncio.to_thread(self._asset_from_path, final_path)
        if asset is None:
            # Deleted concurrently right after publishing.
            logger.error("Asset %s disappeared right after publishing", asset_id)
            raise StorageFaultError()
        logger.debug("Stored asset %s (%d bytes)", asset.filename, asset.size_bytes)
        return asset

    def delete(self, asset_id: str) -> None:
        """Remove the asset. Deleting an absent id is a no-op."""
        if not is_valid_id(asset_id):
            raise InvalidAssetIdError()
        path = self._locate(asset_id)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.error("Failed to delete %s: %s", path, exc)
            raise StorageFaultError() from exc

    # -- reads ------------------------------------------------------------

    def stat(self, asset_id: str) -> Optional[Asset]:
        if not is_valid_id(asset_id):
            return None
        path = self._locate(asset_id)
        if path is None:
            return None
        return self._asset_from_path(path)

    def exists(self, asset_id: str) -> bool:
        return is_valid_id(asset_id) and self._locate(asset_id) is not None

    def get(self, asset_id: str) -> Optional[OpenBlob]:
        if not is_valid_id(asset_id):
            return None
        path = self._locate(asset_id)
        if path is None:
            return None
        try:
            stream = path.open("rb")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to open %s: %s", path, exc)
            raise StorageFaultError() from exc
        try:
            stat = os.fstat(stream.fileno())
        except OSError as exc:
            stream.close()
            raise StorageFaultError() from exc
        asset = Asset(
            id=asset_id,
            extension=path.suffix,
            size_bytes=stat.st_size,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
        return OpenBlob(asset=asset, stream=stream)

    def path_for(self, asset: Asset) -> Path:
        if not is_valid_id(asset.id) or not is_valid_extension(asset.extension):
            raise InvalidAssetIdError()
        return self._root / asset.filename

    def list_all(self, now: Optional[datetime] = None) -> Iterator[tuple[str, float]]:
        """Yield ``(asset_id, age_seconds)`` for one snapshot of the directory.

        Entries removed while the scan runs are skipped.
        """
        now_ts = (now or datetime.now(timezone.utc)).timestamp()
        with os.scandir(self._root) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                asset_id, _ = _split_name(entry.name)
                if asset_id is None:
                    continue
                try:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    mtime = entry.stat(follow_symlinks=False).st_mtime
                except FileNotFoundError:
                    continue
                yield asset_id, now_ts - mtime

    # -- staging housekeeping --------------------------------------------

    def list_stale_staging(self, max_age: float, now: Optional[datetime] = None) -> list[str]:
        now_ts = (now or datetime.now(timezone.utc)).timestamp()
        stale = []
        try:
            with os.scandir(self._staging) as entries:
                for entry in entries:
                    try:
                        if now_ts - entry.stat(follow_symlinks=False).st_mtime > max_age:
                            stale.append(entry.name)
                    except FileNotFoundError:
                        continue
        except FileNotFoundError:
            return []
        return stale

    def discard_staging(self, name: str) -> bool:
        """Remove one staging entry. Returns whether this call removed it."""
        if os.sep in name or (os.altsep and os.altsep in name) or name in {"", ".", ".."}:
            raise InvalidAssetIdError()
        return _unlink_quietly(self._staging / name)

    # -- helpers ----------------------------------------------------------

    def _locate(self, asset_id: str) -> Optional[Path]:
        candidate = self._root / f"{asset_id}{self.default_extension}"
        if candidate.is_file():
            return candidate
        try:
            with os.scandir(self._root) as entries:
                for entry in entries:
                    found_id, _ = _split_name(entry.name)
                    if found_id == asset_id and entry.is_file(follow_symlinks=False):
                        return self._root / entry.name
        except OSError as exc:
            logger.error("Failed to scan %s: %s", self._root, exc)
            raise StorageFaultError() from exc
        return None

    def _asset_from_path(self, path: Path) -> Optional[Asset]:
        try:
            stat = path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to stat %s: %s", path, exc)
            raise StorageFaultError() from exc
        return Asset(
            id=path.stem,
            extension=path.suffix,
            size_bytes=stat.st_size,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )


def _split_name(name: str) -> tuple[Optional[str], str]:
    """Split ``<id><ext>`` into its parts, or ``(None, "")`` for foreign files."""
    stem, dot, suffix = name.partition(".")
    extension = f".{suffix}"
    if not dot or not is_valid_id(stem) or not is_valid_extension(extension):
        return None, ""
    return stem, extension


def _flush_to_disk(buffer: BinaryIO) -> None:
    buffer.flush()
    os.fsync(buffer.fileno())


def _unlink_quietly(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)
        return False
    return True
