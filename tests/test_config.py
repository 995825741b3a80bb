from pathlib import Path

import pytest
from pydantic import ValidationError

from api.config import ConfigurationError, UploadSettings


def test_from_env_reads_upload_directory_and_backend_url(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "https://cdn.example.test/")
    monkeypatch.setenv("UPLOAD_DIRECTORY", "/srv/images")

    settings = UploadSettings.from_env()

    assert settings.public_base_url == "https://cdn.example.test"
    assert settings.upload_root == Path("/srv/images")


def test_from_env_defaults_upload_directory(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "http://localhost:8080")
    monkeypatch.delenv("UPLOAD_DIRECTORY", raising=False)

    assert UploadSettings.from_env().upload_root == Path("uploads")


def test_from_env_requires_backend_url(monkeypatch):
    monkeypatch.delenv("BACKEND_URL", raising=False)

    with pytest.raises(ConfigurationError):
        UploadSettings.from_env()


def test_settings_are_immutable():
    settings = UploadSettings(public_base_url="http://localhost")

    with pytest.raises(ValidationError):
        settings.public_base_url = "http://elsewhere"
