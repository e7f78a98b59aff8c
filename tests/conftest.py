"""
Pytest configuration and fixtures for the Beam tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from beam.core.config import ExpirySettings, Settings, StorageSettings
from beam.main import create_app
from beam.modules.assets import BlobStore
from helpers import MAX_BYTES


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    """Settings pointing at a temporary upload directory with a 1 MiB ceiling."""
    return Settings(
        _env_file=None,
        environment="test",
        storage=StorageSettings(upload_dir=upload_dir, max_upload_bytes=MAX_BYTES, chunk_size=64 * 1024),
        expiry=ExpirySettings(ttl_seconds=3600, sweep_interval_seconds=900, sweep_on_startup=False),
    )


@pytest.fixture
def store(upload_dir: Path) -> BlobStore:
    return BlobStore(upload_dir, max_bytes=MAX_BYTES, chunk_size=64 * 1024)


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
