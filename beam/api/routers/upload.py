"""Upload endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from beam.api.deps import get_container
from beam.core.container import ApplicationContainer
from beam.modules.assets import InvalidUploadError, MissingFileError
from beam.schemas import ErrorResponse, UploadResponse

router = APIRouter()

MULTIPART_CONTENT_TYPE = "multipart/form-data"


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a video and receive a share link",
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def upload_video(
    request: Request,
    container: ApplicationContainer = Depends(get_container),
) -> UploadResponse:
    gate = container.gate
    gate.precheck(request.headers.get("content-length"))

    content_type = request.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() != MULTIPART_CONTENT_TYPE:
        raise MissingFileError()

    # Chunked bodies carry no Content-Length; limit_body counts bytes as they arrive.
    parser = MultiPartParser(request.headers, gate.limit_body(request.stream()), max_files=2)
    try:
        form = await parser.parse()
    except MultiPartException as exc:
        raise InvalidUploadError(exc.message) from exc

    files = [(field, value) for field, value in form.multi_items() if isinstance(value, UploadFile)]
    receipt = await gate.accept(files)
    return UploadResponse(url=receipt.url, filename=receipt.filename)
