"""
Error taxonomy shared by every domain package.

Domain modules subclass these to pin a default message; the handler in
``wallnest.main`` renders any of them as ``{"success": false, "message": ...}``
with the matching status code.
"""
from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base class for errors raised on purpose by the services."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationException(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class UnauthorizedException(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenException(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access forbidden"


class NotFoundException(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class ConflictException(AppException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource conflict"
