"""Pydantic schemas for model uploads.

This module defines the data exchanged by the upload endpoints:
- StoredFile: a stored object as seen by clients (name + URL)
- UploadResponse / SignedUrlResponse / MessageResponse / ErrorResponse:
  endpoint response bodies
- UploadEvent: live-update notification pushed to WebSocket clients

The bucket is the only record of what has been uploaded; none of these
models are persisted.
"""
from typing import Literal

from pydantic import BaseModel, Field

# Multipart field the client puts the file in
UPLOAD_FIELD_NAME = "model"

# 3D model formats accepted for upload. Matching is exact.
ALLOWED_MIME_TYPES = frozenset({
    "model/gltf-binary",
    "model/gltf+json",
    "model/stl",
    "model/obj",
    "model/mtl",
    "model/vnd.collada+xml",
    "application/octet-stream",
})


class StoredFile(BaseModel):
    """A stored model file.

    The name is the storage key; the URL is its public object URL.
    """
    name: str = Field(..., description="Storage key")
    url: str = Field(..., description="Public URL of the object")


class UploadResponse(BaseModel):
    url: str = Field(..., description="Access URL of the uploaded file")


class SignedUrlResponse(BaseModel):
    url: str = Field(..., description="Time-limited download URL")
    expires_in: int = Field(..., description="Seconds until the URL expires")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class UploadEvent(BaseModel):
    """Notification broadcast to live clients after each successful upload."""
    type: Literal["UPLOAD"] = "UPLOAD"
    url: str = Field(..., description="Access URL of the uploaded file")
