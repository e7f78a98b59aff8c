"""Pydantic schemas for the JSON endpoints."""

from pydantic import BaseModel


class UploadResponse(BaseModel):
    url: str
    filename: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    ttl_seconds: float
    sweep_interval_seconds: float
    max_upload_bytes: int
    reaper: str
