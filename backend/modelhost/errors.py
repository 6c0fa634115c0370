"""Error taxonomy for the model host.

Request errors are the caller's fault and map to 4xx responses with a
descriptive message. Storage errors map to 500 with a fixed, per-operation
message; the underlying cause stays in the server log. Configuration errors
abort startup and are never rendered per-request.
"""
from typing import Optional


class ModelHostError(Exception):
    """Base class for all errors raised by the model host."""


class ConfigurationError(ModelHostError):
    """Required configuration (bucket name, credentials) is missing or invalid."""


class RequestError(ModelHostError):
    """The request itself is unacceptable."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoFileUploadedError(RequestError):
    def __init__(self) -> None:
        super().__init__("No file uploaded")


class MissingParameterError(RequestError):
    def __init__(self, name: str) -> None:
        super().__init__(f"{name.capitalize()} is required")
        self.name = name


class UnsupportedFileTypeError(RequestError):
    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported file type: {mime_type or 'unknown'}")
        self.mime_type = mime_type


class FileTooLargeError(RequestError):
    status_code = 413

    def __init__(self, limit_bytes: int) -> None:
        super().__init__(f"File exceeds the upload size limit of {limit_bytes} bytes")
        self.limit_bytes = limit_bytes


class StorageError(ModelHostError):
    """The object-storage backend failed.

    Attributes:
        operation: Storage operation that failed (put, list, delete, sign).
        key: Object key involved, if any.
    """

    status_code = 500

    def __init__(
        self, operation: str, key: str = "", cause: Optional[Exception] = None
    ) -> None:
        detail = f"{operation} failed"
        if key:
            detail += f" for key {key!r}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)
        self.operation = operation
        self.key = key
        self.cause = cause
