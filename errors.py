"""Exception types shared by the gallery services."""
from typing import Optional


class GalleryError(Exception):
    """Base class for gallery failures."""


class ConfigurationError(GalleryError):
    """A required key or credential is not configured."""


class GatewayError(GalleryError):
    """The AI gateway was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(GalleryError):
    """The AI gateway answered 2xx but the body is not what we asked for."""


class StorageError(GalleryError):
    """Object storage rejected a read, write or delete."""


class InvalidUploadError(GalleryError):
    """Uploaded file has an unsupported type or exceeds the size limit."""


class InvalidRequestError(GalleryError):
    """Request body is not valid JSON or does not match the expected shape."""
