"""
Domain errors raised by the services.

Routes never build error responses by hand: the handlers registered in
``diary.main`` turn these into ``{"detail": ...}`` responses.
"""


class DiaryError(Exception):
    """Base class for every error a service can surface to a caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DiaryError):
    """Bad input: empty/oversized text, non-future schedule, self-reply..."""

    status_code = 400


class PermissionDenied(DiaryError):
    status_code = 403


class NotFoundError(DiaryError):
    status_code = 404


class ConflictError(DiaryError):
    """The request clashes with existing state (second check-in, replied letter)."""

    status_code = 409


class StoreError(DiaryError):
    """The backing store failed. The message shown to callers stays generic."""

    status_code = 500
