from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED", status_code=status.HTTP_401_UNAUTHORIZED)

class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND)

class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, code="BAD_REQUEST", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class ConfigurationError(AppError):
    """Server is missing a required secret or setting; never fall back silently."""

    def __init__(self, message: str = "Server configuration error"):
        super().__init__(message, code="CONFIG_ERROR", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class PaymentGatewayError(AppError):
    def __init__(self, message: str = "Payment gateway error", details: dict[str, Any] | None = None):
        super().__init__(message, code="GATEWAY_ERROR", status_code=status.HTTP_502_BAD_GATEWAY, details=details)


class ServiceUnavailableError(AppError):
    def __init__(self, message: str = "Service unavailable"):
        super().__init__(message, code="SERVICE_UNAVAILABLE", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


def _with_request_id(request: Request, body: dict[str, Any]) -> dict[str, Any]:
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return body


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    body = {
        "error": {
            "message": exc.message,
            "code": exc.code,
            "details": exc.details,
        }
    }
    return ORJSONResponse(status_code=exc.status_code, content=_with_request_id(request, body))


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    body = {
        "error": {
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"errors": exc.errors()},
        }
    }
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_with_request_id(request, body),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from studyhub.core.config import get_settings
    from studyhub.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", path=request.url.path, exc_info=exc)
    details: dict[str, Any] = {}
    if get_settings().debug:
        details["exception"] = type(exc).__name__
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": details,
        }
    }
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_with_request_id(request, body),
    )
