import os
import uuid
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from projecthub.config import settings
from projecthub.core.exceptions import StorageFailure, ValidationFailed

CHUNK_SIZE = 1024 * 1024
PUBLIC_PREFIX = "/uploads"


@dataclass
class StoredFile:
    original_name: str
    stored_name: str
    path: str
    size: int
    mime_type: Optional[str]


def _disk_path(stored_name: str) -> str:
    return os.path.join(settings.UPLOAD_DIR, stored_name)


def save_upload(upload, prefix: str = "file", max_size: Optional[int] = None) -> StoredFile:
    # size limit is checked while streaming; partial writes are removed
    max_size = max_size if max_size is not None else settings.MAX_UPLOAD_SIZE_BYTES
    original_name = os.path.basename(upload.filename or "upload")
    extension = os.path.splitext(original_name)[1].lower()
    stored_name = f"{prefix}-{uuid.uuid4().hex}{extension}"
    file_path = _disk_path(stored_name)

    size = 0
    try:
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        with open(file_path, "wb") as buffer:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    break
                buffer.write(chunk)
    except OSError as exc:
        _remove_quietly(file_path)
        raise StorageFailure(original_name, str(exc)) from exc

    if size > max_size:
        _remove_quietly(file_path)
        limit_mb = max_size // (1024 * 1024)
        raise ValidationFailed([f"{original_name} exceeds the {limit_mb}MB upload limit"])

    logger.debug(f"Stored upload {original_name} as {stored_name} ({size} bytes)")
    return StoredFile(
        original_name=original_name,
        stored_name=stored_name,
        path=f"{PUBLIC_PREFIX}/{stored_name}",
        size=size,
        mime_type=upload.content_type,
    )


def delete_stored_file(stored_name: str) -> None:
    file_path = _disk_path(os.path.basename(stored_name))
    try:
        os.remove(file_path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StorageFailure(stored_name, str(exc), operation="delete") from exc


def discard_stored_files(stored_names) -> None:
    for stored_name in stored_names:
        try:
            delete_stored_file(stored_name)
        except StorageFailure as exc:
            logger.error(f"Could not remove orphaned upload: {exc.message}")


def _remove_quietly(file_path: str) -> None:
    if os.path.exists(file_path):
        try:
            os.remove(file_path)
        except OSError:
            logger.error(f"Could not remove partial upload {file_path}")


def ensure_upload_dir() -> str:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    return settings.UPLOAD_DIR
