"""
Error taxonomy for the booking API.

Every error is an ``HTTPException`` so FastAPI renders it without extra glue,
and carries a machine-readable ``kind`` that ends up in the response envelope.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed"


class AuthError(AppError):
    kind = "auth_error"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied. Insufficient privileges."


class NotFoundError(AppError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "The requested resource was not found"


class ConflictError(AppError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The resource was modified by another request"


class TooManyRequestsError(AppError):
    kind = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many requests. Please try again later."


class InternalError(AppError):
    kind = "internal_error"


_KIND_BY_STATUS = {
    400: ValidationError.kind,
    401: AuthError.kind,
    403: ForbiddenError.kind,
    404: NotFoundError.kind,
    409: ConflictError.kind,
    429: TooManyRequestsError.kind,
}


def error_kind(exc: HTTPException) -> str:
    """Kind for any HTTPException, including ones raised by the framework itself."""
    if isinstance(exc, AppError):
        return exc.kind
    return _KIND_BY_STATUS.get(exc.status_code, InternalError.kind if exc.status_code >= 500 else "error")
