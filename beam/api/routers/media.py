"""Raw byte serving for stored assets.

Bytes are streamed from a handle opened before the status line goes out, so
an asset reaped mid-request is either served whole or reported absent.
"""

from __future__ import annotations

import hashlib
from email.utils import formatdate, parsedate
from typing import AsyncIterator, Mapping, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from beam.api.deps import get_container
from beam.core.container import ApplicationContainer
from beam.modules.assets import Absent, AssetNotFoundError, OpenBlob

router = APIRouter()

CHUNK_SIZE = 64 * 1024


class RangeNotSatisfiable(Exception):
    pass


def blob_headers(blob: OpenBlob) -> dict[str, str]:
    mtime = blob.asset.created_at.timestamp()
    etag = hashlib.md5(f"{mtime}-{blob.size_bytes}".encode()).hexdigest()
    return {
        "accept-ranges": "bytes",
        "content-length": str(blob.size_bytes),
        "last-modified": formatdate(mtime, usegmt=True),
        "etag": f'"{etag}"',
    }


def is_not_modified(response_headers: Mapping[str, str], request_headers: Mapping[str, str]) -> bool:
    try:
        if_none_match = request_headers["if-none-match"]
        etag = response_headers["etag"]
        if etag in [tag.strip(" W/") for tag in if_none_match.split(",")]:
            return True
    except KeyError:
        pass

    try:
        if_modified_since = parsedate(request_headers["if-modified-since"])
        last_modified = parsedate(response_headers["last-modified"])
        if if_modified_since is not None and last_modified is not None and if_modified_since >= last_modified:
            return True
    except KeyError:
        pass

    return False


def parse_range(header: Optional[str], size: int) -> Optional[tuple[int, int]]:
    """Return ``(start, end)``, end exclusive, for a single ``bytes=`` range.

    Multiple or malformed ranges give ``None`` and the whole body is sent.
    """
    if not header:
        return None
    unit, _, ranges = header.partition("=")
    if unit.strip().lower() != "bytes" or "," in ranges:
        return None
    first, dash, last = ranges.strip().partition("-")
    if not dash:
        return None
    try:
        if first:
            start = int(first)
            end = int(last) + 1 if last else size
        elif last:
            start, end = max(size - int(last), 0), size
        else:
            return None
    except ValueError:
        return None
    if start >= size:
        raise RangeNotSatisfiable()
    end = min(end, size)
    if end <= start:
        return None
    return start, end


async def iter_blob(blob: OpenBlob, start: int, end: int) -> AsyncIterator[bytes]:
    try:
        await run_in_threadpool(blob.stream.seek, start)
        remaining = end - start
        while remaining > 0:
            chunk = await run_in_threadpool(blob.stream.read, min(CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    finally:
        blob.close()


@router.api_route("/uploads/{key}", methods=["GET", "HEAD"], name="asset_bytes")
async def serve_asset(
    request: Request,
    key: str,
    container: ApplicationContainer = Depends(get_container),
):
    resolution = await run_in_threadpool(container.resolver.resolve, key)
    if isinstance(resolution, Absent):
        raise AssetNotFoundError()

    blob = await run_in_threadpool(container.store.get, resolution.asset.id)
    if blob is None:
        # Reaped between resolve and open.
        raise AssetNotFoundError()

    try:
        headers = blob_headers(blob)
        if is_not_modified(headers, request.headers):
            blob.close()
            return Response(
                status_code=304,
                headers={"etag": headers["etag"], "last-modified": headers["last-modified"]},
            )

        size = blob.size_bytes
        range_header = request.headers.get("range")
        if_range = request.headers.get("if-range")
        if if_range and if_range not in (headers["etag"], headers["last-modified"]):
            range_header = None
        try:
            byte_range = parse_range(range_header, size)
        except RangeNotSatisfiable:
            blob.close()
            return Response(status_code=416, headers={"content-range": f"bytes */{size}"})

        status_code, start, end = 200, 0, size
        if byte_range is not None:
            start, end = byte_range
            status_code = 206
            headers["content-range"] = f"bytes {start}-{end - 1}/{size}"
            headers["content-length"] = str(end - start)

        media_type = blob.asset.media_type
        if request.method == "HEAD":
            blob.close()
            return Response(status_code=status_code, headers=headers, media_type=media_type)
    except BaseException:
        blob.close()
        raise

    return StreamingResponse(
        iter_blob(blob, start, end),
        status_code=status_code,
        headers=headers,
        media_type=media_type,
    )
