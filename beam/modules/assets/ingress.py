"""Validation between an inbound upload and the blob store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from fastapi import UploadFile

from .exceptions import (
    CapacityExceededError,
    InvalidMediaTypeError,
    InvalidUploadError,
    MissingFileError,
)
from .identity import new_id
from .models import Asset, guess_media_type, normalize_extension
from .store import BlobStore

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "video"
# Room for multipart boundaries and part headers on top of the file itself.
MULTIPART_ENVELOPE_BYTES = 64 * 1024
_UNSPECIFIED_TYPES = {"", "application/octet-stream"}


@dataclass(frozen=True, slots=True)
class UploadReceipt:
    asset: Asset

    @property
    def url(self) -> str:
        return f"/v/{self.asset.id}"

    @property
    def filename(self) -> str:
        return self.asset.filename


class IngressGate:
    def __init__(
        self,
        store: BlobStore,
        *,
        allowed_type_prefixes: Sequence[str] = ("video/",),
        field_name: str = UPLOAD_FIELD,
    ) -> None:
        self.store = store
        self.allowed_type_prefixes = tuple(prefix.lower() for prefix in allowed_type_prefixes)
        self.field_name = field_name

    @property
    def max_bytes(self) -> int:
        return self.store.max_bytes

    @property
    def max_body_bytes(self) -> int:
        """Largest request body accepted, multipart framing included."""
        return self.max_bytes + MULTIPART_ENVELOPE_BYTES

    def precheck(self, content_length: Optional[str]) -> None:
        """Reject a request whose declared body length is clearly over the ceiling."""
        if not content_length:
            return
        try:
            declared = int(content_length)
        except ValueError as exc:
            raise InvalidUploadError("Invalid Content-Length header.") from exc
        if declared > self.max_body_bytes:
            raise CapacityExceededError(self.max_bytes)

    async def limit_body(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Pass request body chunks through, failing once they exceed ``max_body_bytes``."""
        received = 0
        async for chunk in chunks:
            received += len(chunk)
            if received > self.max_body_bytes:
                logger.info("Upload body passed %d bytes, rejecting", self.max_body_bytes)
                raise CapacityExceededError(self.max_bytes)
            yield chunk

    def check_media_type(self, content_type: Optional[str], file_name: Optional[str]) -> str:
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type in _UNSPECIFIED_TYPES and file_name:
            media_type = (guess_media_type(file_name) or "").lower()
        if not media_type.startswith(self.allowed_type_prefixes):
            raise InvalidMediaTypeError()
        return media_type

    async def accept(self, files: Sequence[tuple[str, UploadFile]]) -> UploadReceipt:
        """Validate the file parts of one request and store the single video."""
        if not files:
            raise MissingFileError()

        try:
            if len(files) > 1:
                raise InvalidUploadError("Only one file can be uploaded per request.")
            field, upload = files[0]
            if field != self.field_name:
                raise MissingFileError()
            self.check_media_type(upload.content_type, upload.filename)
            if upload.size is not None and upload.size > self.max_bytes:
                raise CapacityExceededError(self.max_bytes)
            extension = normalize_extension(upload.filename, self.store.default_extension)
            asset = await self.store.put(new_id(), extension, upload)
        finally:
            for _, part in files:
                await part.close()

        logger.info("Stored upload %s (%d bytes)", asset.filename, asset.size_bytes)
        return UploadReceipt(asset=asset)
