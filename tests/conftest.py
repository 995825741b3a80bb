"""Shared fixtures for the image upload tests."""

import io
from pathlib import Path
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from api.config import UploadSettings
from api.main import app
from api.routes import uploads
from api.services.storage import ImageUploader, IncomingImage


@pytest.fixture
def base_url() -> str:
    return "https://api.example.test"


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_root: Path, base_url: str) -> UploadSettings:
    return UploadSettings(upload_root=upload_root, public_base_url=base_url)


@pytest.fixture
def uploader(settings: UploadSettings) -> ImageUploader:
    return ImageUploader(settings)


@pytest.fixture
def make_image() -> Callable[..., IncomingImage]:
    """Build an in-memory image; ``size`` overrides the declared byte count."""

    def _make(filename: Optional[str] = "photo.png", data: bytes = b"\x89PNG fake", size: Optional[int] = None):
        return IncomingImage.from_stream(io.BytesIO(data), filename, size)

    return _make


@pytest.fixture
def client(settings: UploadSettings):
    app.dependency_overrides[uploads.get_settings] = lambda: settings
    app.dependency_overrides[uploads.get_upload_root] = lambda: settings.upload_root
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client(monkeypatch, upload_root: Path):
    """A client with no overrides, reading an environment that lacks BACKEND_URL."""
    monkeypatch.delenv("BACKEND_URL", raising=False)
    monkeypatch.setenv("UPLOAD_DIRECTORY", str(upload_root))
    uploads.get_settings.cache_clear()
    with TestClient(app) as test_client:
        yield test_client
    uploads.get_settings.cache_clear()
