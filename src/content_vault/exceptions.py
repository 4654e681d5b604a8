"""
Domain errors and exception handlers with request ID support
Standardized error response format: { code, message, details?, request_id }
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from typing import Optional, Dict, Any

from .logging_config import get_request_id

logger = logging.getLogger(__name__)


class ContentVaultError(Exception):
    """Base class for entitlement and payment errors surfaced to clients"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LimitReached(ContentVaultError):
    """Free selection quota exhausted for this project and content type"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "LIMIT_REACHED"


class AlreadySelected(ContentVaultError):
    """The user already free-selected this item"""
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_SELECTED"


class AlreadyOwned(ContentVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ALREADY_OWNED"


class NotFound(ContentVaultError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ContentNotFound(NotFound):
    pass


class ProjectNotFound(NotFound):
    pass


class PaymentNotFound(NotFound):
    pass


class ProjectMismatch(ContentVaultError):
    """Content item does not belong to the given project"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "PROJECT_MISMATCH"


class InvalidPackage(ContentVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_PACKAGE"


class AmountMismatch(ContentVaultError):
    """Client-quoted amount disagrees with the server price"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "AMOUNT_MISMATCH"


class PaymentNotCompleted(ContentVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "PAYMENT_NOT_COMPLETED"


class PaymentProcessorError(ContentVaultError):
    """Transient upstream failure; the payment row stays pending"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "PAYMENT_PROCESSOR_ERROR"
    retryable = True


class SignatureInvalid(ContentVaultError):
    """Webhook authenticity check failed"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "SIGNATURE_INVALID"


class Forbidden(ContentVaultError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class ErrorResponse:
    """
    Standard error response format

    Schema: { code, message, details?, request_id }
    """

    @staticmethod
    def create(
        message: str,
        code: str,
        status_code: int,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """
        Create standardized error response

        Args:
            message: Human-readable error message
            code: Error code (e.g., "VALIDATION_ERROR", "LIMIT_REACHED")
            status_code: HTTP status code
            request_id: Request ID from context (auto-fetched if None)
            details: Optional additional error details

        Returns:
            Dictionary with error details
        """
        if request_id is None:
            request_id = get_request_id()

        response = {
            "code": code,
            "message": message,
            "status_code": status_code,
        }
        if request_id:
            response["request_id"] = request_id
        if details:
            response["details"] = details
        return response


async def content_vault_exception_handler(request: Request, exc: ContentVaultError) -> JSONResponse:
    """Render domain errors in the standard envelope"""
    request_id = get_request_id()
    details = dict(exc.details)
    if exc.retryable:
        details["retryable"] = True

    # Expected business outcomes, not server faults
    log = logger.warning if exc.status_code >= 500 else logger.info
    log(f"{exc.code} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(
            message=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            request_id=request_id,
            details=details or None,
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with request ID"""
    request_id = get_request_id()

    error_code_map = {
        400: "BAD_REQUEST",
        401: "AUTH_ERROR",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMITED",
        500: "INTERNAL_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    error_code = error_code_map.get(exc.status_code, "HTTP_ERROR")

    detail = exc.detail
    error_message = str(detail) if detail else f"HTTP {exc.status_code} error"
    error_details = None

    if isinstance(detail, dict):
        error_message = detail.get("message", str(detail))
        error_code = detail.get("code", error_code)
        error_details = {k: v for k, v in detail.items() if k not in ["message", "code"]} or None

    logger.warning(f"HTTP {exc.status_code}: {error_message}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(
            message=error_message,
            code=error_code,
            status_code=exc.status_code,
            request_id=request_id,
            details=error_details,
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation exceptions with request ID"""
    request_id = get_request_id()

    errors = exc.errors()
    error_messages = [f"{err['loc']}: {err['msg']}" for err in errors]
    detail = "; ".join(error_messages)

    logger.warning(f"Validation error: {detail}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse.create(
            message=f"Validation error: {detail}",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            request_id=request_id,
            details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in errors]},
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions with request ID"""
    request_id = get_request_id()

    # Don't expose internal error details outside dev
    from .config import config
    error_message = "Internal server error"
    error_details = None

    if config.is_dev:
        error_message = f"Internal server error: {str(exc)}"
        error_details = {"exception_type": type(exc).__name__}

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True, extra={"path": request.url.path})

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.create(
            message=error_message,
            code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
            details=error_details,
        ),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ContentVaultError, content_vault_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
