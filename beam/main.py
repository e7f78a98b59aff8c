import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from beam import __version__
from beam.api import create_api_router
from beam.api.routers import media, pages, viewer
from beam.core.config import Settings, get_settings
from beam.core.container import ApplicationContainer
from beam.modules.assets import AssetError

logger = logging.getLogger(__name__)


async def asset_error_handler(request: Request, exc: AssetError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    container = ApplicationContainer.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container.reaper.start()
        try:
            yield
        finally:
            await container.reaper.stop()

    app = FastAPI(
        title=settings.project_name,
        description="Short-lived video sharing",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.container = container
    app.state.templates = Jinja2Templates(directory=str(settings.template_dir))
    # Templates append ?v=<version> to static URLs for cache busting.
    app.state.static_version = __version__
    app.state.templates.env.globals["static_version"] = __version__

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AssetError, asset_error_handler)

    if settings.static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    app.include_router(create_api_router(settings.api_prefix))
    app.include_router(viewer.router)
    app.include_router(media.router)
    app.include_router(pages.router)

    logger.info("Serving uploads from %s", container.store.root)
    return app
