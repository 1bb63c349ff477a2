"""
Errors raised by the Remote Store client.

Every failure the client can hit while talking to the diary API is mapped onto
one of these, so callers only ever need to catch ``RemoteStoreError``.
"""
from typing import Any, Dict, Optional


class RemoteStoreError(Exception):
    """Base exception for all Remote Store failures."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: Human-readable error message
            status_code: HTTP status of the failed response, if there was one
            context: Additional context information (method, path, ...)
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
        }


class AuthenticationError(RemoteStoreError):
    """Bearer token missing, invalid or expired. Caller must log in again."""


class NotFoundError(RemoteStoreError):
    """Entry or todo does not exist (any more). Caller must refetch."""


class RequestValidationError(RemoteStoreError):
    """The server rejected the request body or parameters."""


class TransportError(RemoteStoreError):
    """Network failure or server-side error."""


class MalformedResponseError(RemoteStoreError):
    """The server answered with a body that is not the expected shape."""


def error_for_status(status_code: int, message: str, context: Optional[Dict[str, Any]] = None) -> RemoteStoreError:
    """Pick the exception class matching an HTTP error status."""
    if status_code == 401:
        cls = AuthenticationError
    elif status_code == 404:
        cls = NotFoundError
    elif status_code in (400, 422):
        cls = RequestValidationError
    else:
        cls = TransportError
    return cls(message, status_code=status_code, context=context)
