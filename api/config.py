from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_UPLOAD_DIRECTORY = "uploads"


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing from the environment."""


def upload_root_from_env() -> Path:
    return Path(os.getenv("UPLOAD_DIRECTORY", DEFAULT_UPLOAD_DIRECTORY))


class UploadSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    upload_root: Path = Field(default=Path(DEFAULT_UPLOAD_DIRECTORY), description="Filesystem root for stored images")
    public_base_url: str = Field(..., description="Prefix for returned URLs, e.g. https://api.example.com")

    @classmethod
    def from_env(cls) -> "UploadSettings":
        base_url = (os.getenv("BACKEND_URL") or "").strip()
        if not base_url:
            raise ConfigurationError("BACKEND_URL must be set.")
        return cls(
            upload_root=upload_root_from_env(),
            public_base_url=base_url.rstrip("/"),
        )
