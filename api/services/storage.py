"""Local-disk image storage.

Incoming images are validated (size, extension), streamed to
``<upload_root>/<sub_directory>/<uuid>.<ext>`` and answered with the public URL
of the stored file. Nothing here logs; callers decide how to report failures.
"""
from __future__ import annotations

import contextlib
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Generic, Iterable, List, Optional, TypeVar

from api.config import UploadSettings

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")
CHUNK_SIZE = 1024 * 1024

T = TypeVar("T")


class UploadError(RuntimeError):
    """Base class for upload failures."""

    kind = "upload_error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class InvalidInput(UploadError):
    """The incoming file was rejected before (or while) being stored."""

    kind = "invalid_input"


class IOFailure(UploadError):
    """Directory creation or the byte copy failed at the storage layer."""

    kind = "io_failure"


@dataclass(frozen=True)
class IncomingImage:
    filename: Optional[str]
    size: int
    stream: BinaryIO

    @property
    def is_empty(self) -> bool:
        return self.size <= 0

    @classmethod
    def from_stream(cls, stream: BinaryIO, filename: Optional[str], size: Optional[int] = None) -> "IncomingImage":
        if size is None:
            try:
                size = _measure(stream)
            except (OSError, ValueError) as exc:
                raise InvalidInput("File size unknown", context={"filename": filename}) from exc
        return cls(filename=filename, size=size, stream=stream)

    @classmethod
    def from_upload(cls, upload: Any) -> "IncomingImage":
        """Wrap a Starlette ``UploadFile`` (or anything exposing ``file``/``filename``/``size``)."""
        return cls.from_stream(upload.file, upload.filename, getattr(upload, "size", None))


@dataclass(frozen=True)
class UploadResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[UploadError] = None

    @classmethod
    def success(cls, value: T) -> "UploadResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: UploadError) -> "UploadResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def get_file_extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def validate_image(file: Optional[IncomingImage]) -> str:
    """Check an incoming image and return its lower-cased extension."""
    if file is None or file.is_empty:
        raise InvalidInput("File is empty")

    if file.size > MAX_FILE_SIZE:
        raise InvalidInput(
            "File size exceeds maximum limit of 10MB",
            context={"filename": file.filename, "size": file.size},
        )

    extension = get_file_extension(file.filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise InvalidInput(
            f"File type not allowed. Allowed types: {', '.join(ALLOWED_EXTENSIONS)}",
            context={"filename": file.filename, "extension": extension},
        )
    return extension


class ImageUploader:
    def __init__(self, settings: UploadSettings):
        self._settings = settings

    @property
    def settings(self) -> UploadSettings:
        return self._settings

    def try_upload_image(self, file: Optional[IncomingImage], sub_directory: str) -> UploadResult[str]:
        try:
            return UploadResult.success(self._store(file, sub_directory))
        except UploadError as exc:
            return UploadResult.failure(exc)

    def upload_image(self, file: Optional[IncomingImage], sub_directory: str) -> str:
        return self.try_upload_image(file, sub_directory).unwrap()

    def try_upload_images(
        self,
        files: Iterable[Optional[IncomingImage]],
        sub_directory: str,
    ) -> UploadResult[List[str]]:
        """Store every non-empty file in order; stop at the first failure.

        Files written before the failing entry are left on disk.
        """
        urls: List[str] = []
        for file in files:
            if file is None or file.is_empty:
                continue
            result = self.try_upload_image(file, sub_directory)
            if not result.ok:
                return UploadResult.failure(result.error)  # type: ignore[arg-type]
            urls.append(result.value)  # type: ignore[arg-type]
        return UploadResult.success(urls)

    def upload_images(self, files: Iterable[Optional[IncomingImage]], sub_directory: str) -> List[str]:
        return self.try_upload_images(files, sub_directory).unwrap()

    def build_url(self, sub_directory: str, filename: str) -> str:
        return f"{self._settings.public_base_url}/uploads/{sub_directory}/{filename}"

    def locate(self, sub_directory: str, filename: str) -> Optional[Path]:
        """Resolve a stored file, refusing anything outside the upload root."""
        root = self._settings.upload_root.resolve()
        target = (root / sub_directory / filename).resolve()
        try:
            target.relative_to(root)
        except ValueError:
            return None
        if not target.is_file():
            return None
        return target

    def _store(self, file: Optional[IncomingImage], sub_directory: str) -> str:
        extension = validate_image(file)

        directory = self._settings.upload_root / sub_directory
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailure(
                f"Upload directory could not be created: {directory}",
                context={"path": str(directory)},
            ) from exc

        filename = f"{uuid.uuid4()}.{extension}"
        _copy_stream(file, directory / filename)  # type: ignore[arg-type]
        return self.build_url(sub_directory, filename)


def describe_upload_target(upload_root: Path) -> Dict[str, object]:
    root = upload_root.resolve()
    exists = root.exists()
    writable = os.access(root, os.W_OK) if exists else False
    return {
        "path": str(root),
        "exists": exists,
        "writable": writable,
    }


def _copy_stream(file: IncomingImage, destination: Path) -> int:
    written = 0
    try:
        with destination.open("wb") as buffer:
            while True:
                chunk = file.stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > MAX_FILE_SIZE:
                    raise InvalidInput(
                        "File size exceeds maximum limit of 10MB",
                        context={"filename": file.filename, "declared_size": file.size, "read": written},
                    )
                buffer.write(chunk)
    except InvalidInput:
        _discard(destination)
        raise
    except OSError as exc:
        _discard(destination)
        raise IOFailure(
            f"Failed to write uploaded file: {destination}",
            context={"path": str(destination), "written": written},
        ) from exc
    return written


def _discard(path: Path) -> None:
    with contextlib.suppress(OSError):
        path.unlink(missing_ok=True)


def _measure(stream: BinaryIO) -> int:
    current = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(current)
    return size
