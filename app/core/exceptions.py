from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


class ValidationError(AppException):
    """Missing or malformed input. Reported, never retried."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.VALIDATION_ERROR, details: dict | None = None):
        super().__init__(400, message, error_code, details)


class NotFoundError(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.NOT_FOUND, details: dict | None = None):
        super().__init__(404, message, error_code, details)


class ConflictError(AppException):
    """Target already finalized, locked, clubbed or billed."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFLICT, details: dict | None = None):
        super().__init__(409, message, error_code, details)


class DegradedError(Exception):
    """An external collaborator (rate lookup, notification) failed.

    Never allowed to roll back or block a consolidation/billing transition;
    callers turn it into a warning on the result.
    """

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator
        self.message = message
