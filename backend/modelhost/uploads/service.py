"""Upload service for the model host.

Implements the four file operations on top of a StorageClient:
upload, list, delete and signed-URL generation. Each operation validates
its input, makes exactly one storage call, and either returns a response
model or raises a ModelHostError; there are no retries.
"""
import logging
import time
from pathlib import PurePosixPath
from typing import List, Optional

from fastapi import Depends, Request

from modelhost.config import AppSettings
from modelhost.errors import (
    FileTooLargeError,
    MissingParameterError,
    NoFileUploadedError,
)
from modelhost.live import ConnectionManager, get_connection_manager
from modelhost.storage import StorageClient, get_storage_client

from .schemas import (
    MessageResponse,
    SignedUrlResponse,
    StoredFile,
    UploadEvent,
    UploadResponse,
)
from .validator import validate_mime_type

logger = logging.getLogger(__name__)


def safe_basename(filename: Optional[str]) -> str:
    """Strip any directory part (POSIX or Windows) from a client filename."""
    if not filename:
        return ""
    return PurePosixPath(filename.replace("\\", "/")).name


class UploadService:
    """Service for storing, listing and removing uploaded model files."""

    def __init__(
        self,
        storage: StorageClient,
        connections: ConnectionManager,
        settings: AppSettings,
    ) -> None:
        self._storage = storage
        self._connections = connections
        self._settings = settings

    @property
    def max_upload_size(self) -> int:
        return self._settings.uploads.max_size_bytes

    def build_key(self, filename: str) -> str:
        """Derive the storage key for an uploaded file.

        ``original`` keeps the client's basename, so re-uploading a file
        overwrites it. ``timestamped`` prepends the epoch milliseconds.
        """
        basename = safe_basename(filename)
        if self._settings.uploads.key_strategy == "timestamped":
            return f"{int(time.time() * 1000)}-{basename}"
        return basename

    async def upload(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
    ) -> UploadResponse:
        """Validate and store an uploaded file, then announce it.

        Raises:
            NoFileUploadedError: If the part has no usable filename.
            UnsupportedFileTypeError: If the declared MIME type is not allowed.
            FileTooLargeError: If the content exceeds the configured limit.
            StorageError: If the storage backend fails.
        """
        if not safe_basename(filename):
            raise NoFileUploadedError()
        mime_type = validate_mime_type(content_type)

        if len(content) > self.max_upload_size:
            raise FileTooLargeError(self.max_upload_size)

        key = self.build_key(filename)
        url = await self._storage.put_object(key, content, mime_type)
        logger.info(f"Model uploaded: {key} ({len(content)} bytes, {mime_type})")

        self._connections.notify(UploadEvent(url=url).model_dump())
        return UploadResponse(url=url)

    async def list_files(self) -> List[StoredFile]:
        """List stored files in the order the backend returns them."""
        keys = await self._storage.list_objects()
        return [StoredFile(name=key, url=self._storage.object_url(key)) for key in keys]

    async def delete_file(self, filename: Optional[str]) -> MessageResponse:
        """Delete a stored file. Unknown names succeed too."""
        key = _require_filename(filename)
        await self._storage.delete_object(key)
        logger.info(f"Model deleted: {key}")
        return MessageResponse(message="File deleted successfully")

    async def signed_url(self, filename: Optional[str]) -> SignedUrlResponse:
        """Return a time-limited download URL without checking existence."""
        key = _require_filename(filename)
        expires_in = self._settings.storage.signed_url_expiry_seconds
        url = await self._storage.generate_signed_url(key, expires_in)
        return SignedUrlResponse(url=url, expires_in=expires_in)


def _require_filename(filename: Optional[str]) -> str:
    if not filename or not filename.strip():
        raise MissingParameterError("filename")
    return filename


def get_upload_service(
    request: Request,
    storage: StorageClient = Depends(get_storage_client),
    connections: ConnectionManager = Depends(get_connection_manager),
) -> UploadService:
    """FastAPI dependency building an UploadService for the current app."""
    return UploadService(storage, connections, request.app.state.settings)
