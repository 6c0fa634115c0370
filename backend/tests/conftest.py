"""Shared test fixtures and configuration for backend tests."""
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from modelhost.config import AppSettings, StorageSettings, UploadSettings
from modelhost.errors import StorageError
from modelhost.main import create_app
from modelhost.storage import StorageClient

PUBLIC_BASE = "https://test-bucket.s3.us-east-1.amazonaws.com"


class InMemoryStorage(StorageClient):
    """StorageClient keeping objects in a dict, in insertion order.

    Set ``fail_on`` to an operation name ("put", "list", "delete", "sign")
    to make that operation raise StorageError.
    """

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.fail_on: Optional[str] = None

    def _maybe_fail(self, operation: str, key: str = "") -> None:
        if self.fail_on == operation:
            raise StorageError(operation, key, RuntimeError("simulated outage"))

    def object_url(self, key: str) -> str:
        return f"{PUBLIC_BASE}/{key}"

    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        self.calls.append(("put", key))
        self._maybe_fail("put", key)
        # Overwrites keep their original position, like a re-PUT on S3
        self.objects[key] = body
        self.content_types[key] = content_type
        return self.object_url(key)

    async def list_objects(self) -> List[str]:
        self.calls.append(("list",))
        self._maybe_fail("list")
        return list(self.objects)

    async def delete_object(self, key: str) -> None:
        self.calls.append(("delete", key))
        self._maybe_fail("delete", key)
        self.objects.pop(key, None)
        self.content_types.pop(key, None)

    async def generate_signed_url(self, key: str, expires_in: int) -> str:
        self.calls.append(("sign", key))
        self._maybe_fail("sign", key)
        return f"{PUBLIC_BASE}/{key}?X-Amz-Expires={expires_in}&X-Amz-Signature=test"

    def mutations(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("put", "delete")]


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        storage=StorageSettings(bucket="test-bucket", region="us-east-1"),
        uploads=UploadSettings(max_size_bytes=1024),
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def app(settings, storage):
    return create_app(settings=settings, storage=storage)


@pytest.fixture
def api_client(app):
    """Provide a TestClient running the app lifespan.

    Entering the client keeps one event loop alive for all requests and
    WebSocket sessions, so upload broadcasts reach connected sockets.
    """
    with TestClient(app) as client:
        yield client
