"""
API error types.

Every error carries the HTTP status it maps to; `main` renders them as
`{"message": ...}` JSON bodies.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors that are reported to the client."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConflictError(ApiError):
    status_code = 409


class NotFoundError(ApiError):
    status_code = 404


class UnauthorizedError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class InvalidTrackError(ApiError):
    """musicData is missing a link variant the catalog stores."""

    status_code = 422


class HistoryEmptyError(ApiError):
    """Raised when the last played track is requested for an empty history."""

    status_code = 500


class ProviderError(ApiError):
    """The metadata provider could not be reached or returned an error."""

    status_code = 500


class ProviderTokenRefreshedError(ProviderError):
    """Token acquisition failed and a refresh was performed; the original lookup is not retried."""

    status_code = 503
