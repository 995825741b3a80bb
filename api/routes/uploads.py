from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import List, NoReturn

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from starlette.requests import Request

from api import models
from api.config import ConfigurationError, UploadSettings, upload_root_from_env
from api.services.storage import ImageUploader, IncomingImage, InvalidInput, UploadError, UploadResult

LOG = logging.getLogger(__name__)
router = APIRouter()

SUB_DIRECTORY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@lru_cache(maxsize=1)
def get_settings() -> UploadSettings:
    try:
        return UploadSettings.from_env()
    except ConfigurationError as exc:
        LOG.error("Upload settings unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="Upload service is not configured.") from exc


def get_upload_root() -> Path:
    return upload_root_from_env()


def get_uploader(settings: UploadSettings = Depends(get_settings)) -> ImageUploader:
    return ImageUploader(settings)


@router.post("/{sub_directory}", response_model=models.ImageUploadResponse)
def upload_image(
    request: Request,
    sub_directory: str,
    file: UploadFile = File(...),
    uploader: ImageUploader = Depends(get_uploader),
) -> models.ImageUploadResponse:
    _check_sub_directory(sub_directory)
    _log_upload_start(request, sub_directory, [file])
    try:
        result = uploader.try_upload_image(IncomingImage.from_upload(file), sub_directory)
    except InvalidInput as exc:
        result = UploadResult.failure(exc)
    finally:
        file.file.close()

    if not result.ok:
        _raise_for_error(request, sub_directory, result.error)
    _log_upload_complete(request, sub_directory, [result.value])
    return models.ImageUploadResponse(url=result.value)


@router.post("/{sub_directory}/batch", response_model=models.ImageBatchUploadResponse)
def upload_images(
    request: Request,
    sub_directory: str,
    files: List[UploadFile] = File(...),
    uploader: ImageUploader = Depends(get_uploader),
) -> models.ImageBatchUploadResponse:
    _check_sub_directory(sub_directory)
    _log_upload_start(request, sub_directory, files)
    try:
        result = uploader.try_upload_images(
            [IncomingImage.from_upload(file) for file in files],
            sub_directory,
        )
    except InvalidInput as exc:
        result = UploadResult.failure(exc)
    finally:
        for file in files:
            file.file.close()

    if not result.ok:
        _raise_for_error(request, sub_directory, result.error)
    _log_upload_complete(request, sub_directory, result.value)
    return models.ImageBatchUploadResponse(urls=result.value)


@router.get("/{sub_directory}/{filename}", response_class=FileResponse, name="download_uploaded_image")
def download_uploaded_image(
    sub_directory: str,
    filename: str,
    uploader: ImageUploader = Depends(get_uploader),
) -> FileResponse:
    target = uploader.locate(sub_directory, filename)
    if target is None:
        raise HTTPException(status_code=404, detail="File not found.")
    return FileResponse(target, filename=target.name)


def _check_sub_directory(sub_directory: str) -> None:
    if not SUB_DIRECTORY_PATTERN.match(sub_directory):
        raise HTTPException(status_code=400, detail=f"Invalid upload folder: {sub_directory}")


def _raise_for_error(request: Request, sub_directory: str, error: UploadError) -> NoReturn:
    client = request.client.host if request.client else "unknown"
    if isinstance(error, InvalidInput):
        LOG.warning("Upload rejected from %s | folder=%s | reason=%s", client, sub_directory, error)
        raise HTTPException(status_code=400, detail=str(error)) from error
    LOG.error(
        "Upload failed from %s | folder=%s | context=%s",
        client,
        sub_directory,
        error.context,
        exc_info=error,
    )
    raise HTTPException(status_code=500, detail="Failed to store uploaded file.") from error


def _log_upload_start(request: Request, sub_directory: str, files: List[UploadFile]) -> None:
    client = request.client.host if request.client else "unknown"
    LOG.info(
        "Upload started from %s | folder=%s | filenames=%s | content_length=%s",
        client,
        sub_directory,
        [file.filename for file in files],
        request.headers.get("content-length"),
    )


def _log_upload_complete(request: Request, sub_directory: str, urls: List[str]) -> None:
    client = request.client.host if request.client else "unknown"
    LOG.info(
        "Upload completed from %s | folder=%s | stored=%d | urls=%s",
        client,
        sub_directory,
        len(urls),
        urls,
    )
