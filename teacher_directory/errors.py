# teacher_directory/errors.py

from typing import Optional


class DirectoryError(Exception):
    """Base error. ``message`` is safe to show to clients."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequest(DirectoryError):
    status_code = 400


class Unauthorized(DirectoryError):
    status_code = 401


class NotFound(DirectoryError):
    status_code = 404


class PayloadTooLarge(DirectoryError):
    status_code = 413


class InvalidMediaType(DirectoryError):
    status_code = 415


class Internal(DirectoryError):
    status_code = 500
