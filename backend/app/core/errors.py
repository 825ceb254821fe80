"""
Centralized error handling for service/API failures.
Domain errors carry their HTTP status so routes stay thin; one handler renders them.
"""
from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500

MSG_NOTIFICATION_NOT_FOUND = "Bildirishnoma topilmadi"
MSG_CUSTOMER_NOT_FOUND = "Mijoz topilmadi"
MSG_USER_NOT_FOUND = "Foydalanuvchi topilmadi"
MSG_TRIGGER_FORBIDDEN = "Bu endpoint faqat ishlab chiqish muhitida ishlaydi"
MSG_UNAUTHORIZED = "Missing or invalid authorization header"
MSG_TOKEN_INVALID = "Invalid or expired token"


class AppError(Exception):
    """Base for errors that map to an HTTP status."""

    status_code = STATUS_INTERNAL_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = STATUS_BAD_REQUEST


class UnauthorizedError(AppError):
    status_code = STATUS_UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = STATUS_FORBIDDEN


class NotFoundError(AppError):
    status_code = STATUS_NOT_FOUND


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )
