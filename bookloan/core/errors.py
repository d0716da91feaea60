"""Domain errors mapped to HTTP responses by the handlers registered in bookloan.main."""

from typing import Any


class LibraryError(Exception):
    """Base error: carries the HTTP status and the JSON body fields."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationFailed(LibraryError):
    status_code = 400


class Unauthenticated(LibraryError):
    status_code = 401


class Forbidden(LibraryError):
    status_code = 403


class NotFound(LibraryError):
    status_code = 404


class Conflict(LibraryError):
    status_code = 409
