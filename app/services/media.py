import asyncio
import re
import time
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote

import structlog
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.exceptions import (
    MediaTooLargeError,
    MediaTypeError,
    StoreUnavailableError,
)
from app.schemas.media import MediaKind, StoredMedia, StoredObject, UploadedFile
from app.services.validation import check_file_size, check_file_type

logger = structlog.get_logger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
MAX_OBJECT_NAME_LENGTH = 120


class ObjectStore(Protocol):
    async def store(self, data: bytes, content_type: str, path: str) -> StoredObject:
        ...


class LocalObjectStore:
    """Filesystem object store; objects are served publicly under MEDIA_BASE_URL."""

    def __init__(
        self,
        root: Optional[str] = None,
        base_url: Optional[str] = None,
        cache_control: Optional[str] = None,
    ):
        self.root = Path(root or settings.UPLOAD_PATH)
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")
        self.cache_control = cache_control or settings.MEDIA_CACHE_CONTROL

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def _target(self, path: str) -> Path:
        root = self.root.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            logger.error("Object path escapes media root", path=path)
            raise StoreUnavailableError("Failed to upload file.")
        return target

    async def store(self, data: bytes, content_type: str, path: str) -> StoredObject:
        target = self._target(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            logger.error("Object store write failed", path=path, error=str(e))
            raise StoreUnavailableError("Failed to upload file.") from e

        return StoredObject(
            path=path,
            public_url=f"{self.base_url}/{quote(path)}",
            cache_control=self.cache_control,
        )


def safe_object_name(filename: str, fallback: str = "file") -> str:
    name = _UNSAFE_NAME_CHARS.sub("_", filename or fallback)
    return name[:MAX_OBJECT_NAME_LENGTH]


def object_path(folder: str, owner_id: str, filename: str, fallback: str = "file") -> str:
    millis = int(time.time() * 1000)
    return f"{folder}/{owner_id}/{millis}_{safe_object_name(filename, fallback)}"


async def read_upload(value) -> Optional[UploadedFile]:
    """Read a multipart file field; an empty file input counts as absent."""
    if not isinstance(value, UploadFile):
        return None

    data = await value.read()
    if not value.filename and not data:
        return None
    return UploadedFile(
        filename=value.filename or "",
        content_type=value.content_type or "",
        data=data,
    )


class MediaIngestionService:
    """Checks upload constraints and hands the bytes to the object store."""

    def __init__(self, store: Optional[ObjectStore] = None):
        self.store = store or LocalObjectStore()

    async def ingest(
        self,
        upload: UploadedFile,
        kind: MediaKind,
        owner_id: str,
        folder: str,
        label: str = "File",
    ) -> StoredMedia:
        reason = check_file_size(label, kind, upload.size)
        if reason:
            raise MediaTooLargeError(reason)
        reason = check_file_type(label, kind, upload.content_type)
        if reason:
            raise MediaTypeError(reason)

        path = object_path(folder, owner_id, upload.filename, fallback=kind.value)
        try:
            stored = await self.store.store(
                upload.data, upload.content_type or "application/octet-stream", path
            )
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error(
                "Object store unavailable", path=path, owner_id=owner_id, error=str(e)
            )
            raise StoreUnavailableError("Failed to upload file.") from e

        logger.info(
            "Media stored",
            owner_id=owner_id,
            kind=kind.value,
            path=stored.path,
            size=upload.size,
        )
        return StoredMedia(
            path=stored.path,
            url=stored.public_url,
            name=upload.filename,
            content_type=upload.content_type,
            size=upload.size,
        )


media_service = MediaIngestionService()
