"""
Error taxonomy for the favorites service.
http_exception() maps these errors to HTTP status codes; anything else is an internal failure.
"""

from typing import Dict, Optional

from fastapi import HTTPException, status


class FavoritesError(Exception):
    """Base class for all classified service errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFound(FavoritesError):
    """Share token unknown, or a list / movie missing where one is required."""


class DuplicateEntry(FavoritesError):
    """The movie is already in the favorite list."""


class Unauthorized(FavoritesError):
    """Missing or invalid identity on an operation that needs one."""


class UpstreamUnavailable(FavoritesError):
    """The movie catalog could not be reached or answered with a server error."""


class InvalidRequest(FavoritesError):
    """Malformed input such as a non-positive movie id or page."""


ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    DuplicateEntry: status.HTTP_409_CONFLICT,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    UpstreamUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
}


def http_exception(error: FavoritesError, headers: Optional[Dict[str, str]] = None) -> HTTPException:
    """Translate a classified error into the HTTPException the routes raise."""
    status_code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(error, Unauthorized) and headers is None:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(
        status_code=status_code,
        detail=error.message or "Internal server error",
        headers=headers,
    )
