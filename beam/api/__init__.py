from fastapi import APIRouter

from beam.api.routers import health, upload


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(upload.router, tags=["upload"])
    router.include_router(health.router, tags=["health"])
    return router


__all__ = [
    "create_api_router",
]
