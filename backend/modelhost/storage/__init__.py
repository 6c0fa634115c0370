"""Object storage for uploaded models.

Provides the StorageClient abstraction and its S3 implementation. The
active client lives on ``app.state.storage`` and is injected into route
handlers with ``Depends(get_storage_client)``.
"""
from fastapi import Request

from .base import StorageClient
from .s3 import S3StorageClient


def get_storage_client(request: Request) -> StorageClient:
    """FastAPI dependency returning the application's storage client."""
    return request.app.state.storage


__all__ = [
    "StorageClient",
    "S3StorageClient",
    "get_storage_client",
]
