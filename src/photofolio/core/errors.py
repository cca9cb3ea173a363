"""Error taxonomy shared by the store, the services, and the HTTP layer.

Every error carries the HTTP status code it maps to.  The API installs a
single exception handler for :class:`PhotofolioError` that renders
``{"error": message}`` with that status, so services never import FastAPI.
"""

from __future__ import annotations


class PhotofolioError(Exception):
    """Base class for all expected, user-facing failures.

    The message is intended to be displayed directly to the caller.
    """

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        """Return the JSON error body for this failure."""
        return {"error": self.message}


class AuthError(PhotofolioError):
    """Missing, malformed, or rejected bearer token."""

    status_code = 401


class ValidationError(PhotofolioError):
    """A required field is missing or a value is out of range."""

    status_code = 400


class NotFoundError(PhotofolioError):
    """A referenced image id or category slug does not exist.

    Args:
        message: Human-readable description.
        missing: Optional list of ids that could not be found.  Batch
            operations use it to report every absent image at once.
    """

    status_code = 404

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])

    def to_body(self) -> dict:
        body = super().to_body()
        if self.missing:
            body["notFoundImages"] = self.missing
        return body


class ConflictError(PhotofolioError):
    """The target key already exists (category rename)."""

    status_code = 409


class StoreError(PhotofolioError):
    """The underlying document store failed to read or write."""

    status_code = 500
