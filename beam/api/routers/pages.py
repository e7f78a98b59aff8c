from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from beam.api.deps import get_container, get_templates
from beam.api.routers.viewer import format_duration
from beam.core.container import ApplicationContainer

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def homepage(
    request: Request,
    container: ApplicationContainer = Depends(get_container),
    templates: Jinja2Templates = Depends(get_templates),
):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "max_upload_mb": container.store.max_bytes // (1024 * 1024),
            "ttl_label": format_duration(container.reaper.ttl),
        },
    )
