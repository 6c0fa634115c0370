"""MIME allow-list check for uploaded model files.

The declared content type of the multipart part is trusted as-is; the bytes
are never sniffed.
"""
from typing import Optional

from modelhost.errors import UnsupportedFileTypeError

from .schemas import ALLOWED_MIME_TYPES


def is_allowed_mime_type(mime_type: Optional[str]) -> bool:
    """Return True if *mime_type* exactly matches an allowed model type.

    Examples:
        >>> is_allowed_mime_type("model/gltf-binary")
        True
        >>> is_allowed_mime_type("image/png")
        False
        >>> is_allowed_mime_type("")
        False
    """
    if not mime_type:
        return False
    return mime_type in ALLOWED_MIME_TYPES


def validate_mime_type(mime_type: Optional[str]) -> str:
    """Return *mime_type* unchanged, or raise UnsupportedFileTypeError."""
    if not is_allowed_mime_type(mime_type):
        raise UnsupportedFileTypeError(mime_type or "")
    return mime_type
