"""Application exception types."""

from coursehub_auth.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class ValidationError(ApiError):
    """Malformed request input."""

    def __init__(self, message: str = "Invalid request payload") -> None:
        super().__init__(status_code=400, code="VALIDATION_ERROR", message=message)


class AuthenticationError(ApiError):
    """Any failure on an authentication path.

    Callers never learn which factor failed; the message is chosen per route and
    is identical for every cause on that route.
    """

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(status_code=401, code="UNAUTHORIZED", message=message)


class ConflictError(ApiError):
    """A uniqueness constraint rejected the write."""

    def __init__(self, message: str = "Email already in use") -> None:
        super().__init__(status_code=409, code="CONFLICT", message=message)


class InternalError(ApiError):
    """Store or upstream provider failure."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(status_code=500, code="INTERNAL_ERROR", message=message)


__all__ = ["ApiError", "AuthenticationError", "ConflictError", "InternalError", "ValidationError"]
