"""Abstract StorageClient interface.

Request handlers talk to object storage only through this interface, so the
S3 implementation can be swapped for an S3-compatible service or an
in-memory fake without touching the upload module.
"""
from abc import ABC, abstractmethod
from typing import List


class StorageClient(ABC):
    """Abstract base class for object-storage backends.

    Keys passed in and returned are *logical* keys: any configured bucket
    prefix is applied and stripped by the implementation.
    """

    @abstractmethod
    def object_url(self, key: str) -> str:
        """Public (unsigned) URL of the object stored under *key*."""

    @abstractmethod
    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        """Store *body* under *key* and return its access URL.

        Raises:
            StorageError: On any backend failure.
        """

    @abstractmethod
    async def list_objects(self) -> List[str]:
        """Return every stored key, in the order the backend lists them."""

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Delete *key*. Deleting a key that does not exist succeeds."""

    @abstractmethod
    async def generate_signed_url(self, key: str, expires_in: int) -> str:
        """Return a download URL for *key* valid for *expires_in* seconds.

        No existence check is made; an unknown key still yields a URL.
        """
