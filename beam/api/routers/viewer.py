"""Share page: video player when the asset exists, expiry notice otherwise."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from beam.api.deps import get_container, get_templates
from beam.core.container import ApplicationContainer
from beam.modules.assets import Absent

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}


def format_duration(seconds: float) -> str:
    """Render a duration the way a person would say it ("1 hour", "15 minutes")."""
    seconds = max(0, int(seconds))
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'' if count == 1 else 's'}"
    return f"{seconds} second{'' if seconds == 1 else 's'}"


@router.get("/v/{key}", response_class=HTMLResponse, name="view_asset")
async def view_asset(
    request: Request,
    key: str,
    container: ApplicationContainer = Depends(get_container),
    templates: Jinja2Templates = Depends(get_templates),
):
    ttl = container.reaper.ttl
    resolution = await run_in_threadpool(container.resolver.resolve, key)
    if isinstance(resolution, Absent):
        return templates.TemplateResponse(
            request,
            "expired.html",
            {"ttl_label": format_duration(ttl)},
            status_code=404,
            headers=NO_STORE,
        )

    asset = resolution.asset
    remaining = (asset.expires_at(ttl) - datetime.now(timezone.utc)).total_seconds()
    return templates.TemplateResponse(
        request,
        "viewer.html",
        {
            "asset": asset,
            "video_url": request.url_for("asset_bytes", key=asset.filename).path,
            "ttl_label": format_duration(ttl),
            "remaining_label": format_duration(remaining) if remaining > 0 else None,
        },
        headers=NO_STORE,
    )
