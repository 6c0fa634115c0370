"""FastAPI router for model upload endpoints.

Endpoints:
    POST   /api/upload              Upload one model (multipart field "model")
    GET    /api/load                List stored models (alias: /api/models)
    GET    /api/uploads/{filename}  Time-limited signed download URL
    DELETE /api/uploads/{filename}  Delete a stored model

Client errors are raised as RequestError subclasses and rendered by the
application's exception handlers. Storage failures are logged in full and
answered with a fixed 500 message per operation.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.datastructures import UploadFile

from modelhost.errors import (
    FileTooLargeError,
    MissingParameterError,
    NoFileUploadedError,
    StorageError,
)

from .schemas import (
    ErrorResponse,
    MessageResponse,
    SignedUrlResponse,
    StoredFile,
    UPLOAD_FIELD_NAME,
    UploadResponse,
)
from .service import UploadService, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# Allowance for multipart boundaries and part headers on top of the file size
MULTIPART_OVERHEAD = 64 * 1024


def _declared_length(request: Request) -> Optional[int]:
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={**_ERROR_RESPONSES, 413: {"model": ErrorResponse}},
)
async def upload_model(
    request: Request,
    service: UploadService = Depends(get_upload_service),
):
    """Upload a 3D model file in the multipart field ``model``.

    Accepted types: glTF (binary and JSON), STL, OBJ, MTL, COLLADA, and
    generic binary. The file is buffered in memory up to the configured
    size limit, stored, and announced to live clients.

    A Content-Length well past the limit is refused before the body is
    parsed. Chunked bodies carry no length, so Starlette spools them to a
    temporary file in full before the size check below runs.

    Raises:
        HTTPException 400: No file part, or unsupported MIME type
        HTTPException 413: File exceeds the size limit
        HTTPException 500: Storage upload failed
    """
    declared = _declared_length(request)
    if declared is not None and declared > service.max_upload_size + MULTIPART_OVERHEAD:
        raise FileTooLargeError(service.max_upload_size)

    form = await request.form()
    model = form.get(UPLOAD_FIELD_NAME)
    # A part without a filename is parsed as a plain text field
    if not isinstance(model, UploadFile):
        raise NoFileUploadedError()

    # Read one byte past the limit so oversize files are detectable
    try:
        content = await model.read(service.max_upload_size + 1)
    finally:
        await model.close()

    try:
        return await service.upload(model.filename, model.content_type, content)
    except StorageError as e:
        logger.error(f"File upload failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload file")


@router.get("/load", response_model=List[StoredFile], responses=_ERROR_RESPONSES)
@router.get("/models", response_model=List[StoredFile], responses=_ERROR_RESPONSES)
async def list_models(service: UploadService = Depends(get_upload_service)):
    """List every stored model with its public URL."""
    try:
        return await service.list_files()
    except StorageError as e:
        logger.error(f"Error listing models: {e}")
        raise HTTPException(status_code=500, detail="Failed to list files")


@router.api_route("/uploads", methods=["GET", "DELETE"], include_in_schema=False)
async def missing_filename():
    """Reject signed-URL and delete requests that carry no filename."""
    raise MissingParameterError("filename")


@router.get(
    "/uploads/{filename:path}",
    response_model=SignedUrlResponse,
    responses=_ERROR_RESPONSES,
)
async def get_signed_url(
    filename: str,
    service: UploadService = Depends(get_upload_service),
):
    """Return a signed download URL for a stored model.

    The key is not checked for existence; an unknown filename still yields
    a URL, which will fail when fetched.
    """
    try:
        return await service.signed_url(filename)
    except StorageError as e:
        logger.error(f"Signed URL generation failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate download URL")


@router.delete(
    "/uploads/{filename:path}",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
)
async def delete_model(
    filename: str,
    service: UploadService = Depends(get_upload_service),
):
    """Delete a stored model. Deleting an unknown filename also succeeds."""
    try:
        return await service.delete_file(filename)
    except StorageError as e:
        logger.error(f"Error deleting file: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete file")
