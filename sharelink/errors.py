"""
Error taxonomy for ShareLink.

Every error carries a stable ``code`` for programmatic handling and the HTTP
status the API maps it to.
"""

from typing import Any, Dict


class ShareLinkError(Exception):
    """
    Base class for errors raised by the link lifecycle.

    Attributes:
        code: Stable error code
        message: Human-readable error description
        status_code: HTTP status the API responds with
    """

    code = "SHARELINK_ERROR"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {"error": self.code, "message": self.message}


class ValidationError(ShareLinkError):
    """Required input is missing or malformed."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(ShareLinkError):
    """No link or user matches the identifier."""

    code = "NOT_FOUND"
    status_code = 404


class NoChangesError(ShareLinkError):
    """An update left the persisted link unchanged."""

    code = "NO_CHANGES"
    status_code = 404


class StorageFailure(ShareLinkError):
    """The blob store or the record store failed."""

    code = "STORAGE_FAILURE"
    status_code = 500
