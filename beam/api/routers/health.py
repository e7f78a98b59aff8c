from fastapi import APIRouter, Depends

from beam.api.deps import get_container
from beam.core.container import ApplicationContainer
from beam.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Liveness and store limits")
async def health(container: ApplicationContainer = Depends(get_container)) -> HealthResponse:
    return HealthResponse(
        ttl_seconds=container.reaper.ttl,
        sweep_interval_seconds=container.reaper.interval,
        max_upload_bytes=container.store.max_bytes,
        reaper=container.reaper.state.value,
    )
