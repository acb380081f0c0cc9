"""
Error taxonomy shared by every service.

Each exception is an HTTPException carrying a stable ``code`` so that clients
can branch on the failure kind instead of parsing messages. Handlers
registered through ``register_exception_handlers`` render them as
``{"error": <code>, "detail": <message>}``.
"""
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse


class AppException(HTTPException):
    code = "AppError"

    def __init__(
        self,
        detail: str = "An error occurred",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: Optional[dict] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class Unauthorized(AppException):
    code = "Unauthorized"

    def __init__(self, detail: str = "Unauthorized", status_code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(detail, status_code, headers={"WWW-Authenticate": "Bearer"})


class AdminRequired(Unauthorized):
    code = "AdminRequired"

    def __init__(self, detail: str = "Administrator role required"):
        super().__init__(detail, status.HTTP_403_FORBIDDEN)


class NotFound(AppException):
    code = "NotFound"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail, status.HTTP_404_NOT_FOUND)


class UserNotFound(NotFound):
    code = "UserNotFound"

    def __init__(self, email: Optional[str]):
        super().__init__(f"User not found for email: {email}" if email else "No customer email on session")
        self.email = email


class PaymentNotCompleted(AppException):
    code = "PaymentNotCompleted"

    def __init__(self, payment_status: Optional[str]):
        super().__init__(f"Payment not completed (status: {payment_status})")
        self.payment_status = payment_status


class NoItemsResolved(AppException):
    code = "NoItemsResolved"

    def __init__(self, detail: str = "No items found in order"):
        super().__init__(detail)


class InvalidTransition(AppException):
    code = "InvalidTransition"

    def __init__(self, current, target):
        super().__init__(
            f"Cannot move order from {current.value} to {target.value}",
            status.HTTP_409_CONFLICT,
        )
        self.current = current
        self.target = target


class UpstreamFailure(AppException):
    code = "UpstreamFailure"

    def __init__(self, detail: str = "Payment gateway request failed", status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(detail, status_code)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
        headers=exc.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
