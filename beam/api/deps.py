"""Reusable FastAPI dependencies."""

from fastapi import Request
from fastapi.templating import Jinja2Templates

from beam.core.container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


__all__ = ["get_container", "get_templates"]
