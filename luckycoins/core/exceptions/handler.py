"""
Error responses for the portal HTTP surface.

Every failure leaves the API in the same envelope:
``{"success": false, "error": {"code", "message", "timestamp", ...}}``.
ServiceError carries its own code and status; PortalError subclasses raised
by the session core are mapped by type; anything else is a 500.
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from luckycoins.core.exceptions.base import BackendCallError, IdentityError, PortalError
from luckycoins.core.logger.logger import get_logger
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()

REQUEST_ID_HEADER = "X-Request-ID"


class ServiceErrorCode:
    """Error codes returned in the `error.code` field"""

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"

    # Session
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    PROFILE_SETUP_FAILED = "PROFILE_SETUP_FAILED"
    ADMIN_SESSION_REQUIRED = "ADMIN_SESSION_REQUIRED"
    IDENTITY_UNAVAILABLE = "IDENTITY_UNAVAILABLE"

    # Backend
    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
    BACKEND_CALL_FAILED = "BACKEND_CALL_FAILED"

    # System
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Most specific type first
PORTAL_ERROR_MAP: Tuple[Tuple[Type[PortalError], str, int], ...] = (
    (BackendCallError, ServiceErrorCode.BACKEND_CALL_FAILED, 502),
    (IdentityError, ServiceErrorCode.IDENTITY_UNAVAILABLE, 500),
    (PortalError, ServiceErrorCode.INTERNAL_ERROR, 500),
)

HTTP_STATUS_CODES: Dict[int, str] = {
    401: ServiceErrorCode.NOT_AUTHENTICATED,
    403: ServiceErrorCode.ADMIN_SESSION_REQUIRED,
    404: ServiceErrorCode.NOT_FOUND,
    422: ServiceErrorCode.INVALID_INPUT,
}


class ServiceError(Exception):
    """
    Error raised by services and controllers with an explicit code and status.
    Converted into the error envelope by GlobalErrorHandler.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.context = context or {}
        super().__init__(message)


class ErrorResponseBuilder:
    """Builds the error envelope"""

    @staticmethod
    def build_error_response(
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            error["details"] = details
        if request_id:
            error["request_id"] = request_id
        return {"success": False, "error": error}


def _request_id(request: Request) -> str:
    return request.headers.get(REQUEST_ID_HEADER, "unknown")


def _respond(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponseBuilder.build_error_response(
            error_code=error_code,
            message=message,
            details=details,
            request_id=_request_id(request)
        )
    )


class GlobalErrorHandler:
    """Exception handlers registered on the app"""

    @staticmethod
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"Service error: {exc.code}",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "status_code": exc.status_code,
                "context": exc.context,
                "request_id": _request_id(request),
                "path": request.url.path,
            }
        )
        return _respond(request, exc.status_code, exc.code, exc.message, exc.details)

    @staticmethod
    async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
        """Session-core errors that escaped a controller"""
        code, status_code = next(
            (code, status_code) for error_type, code, status_code in PORTAL_ERROR_MAP
            if isinstance(exc, error_type)
        )
        logger.error(
            f"Portal error: {type(exc).__name__}",
            extra={
                "error_code": code,
                "error_message": exc.message,
                "request_id": _request_id(request),
                "path": request.url.path,
            }
        )
        return _respond(request, status_code, code, exc.message, exc.to_dict())

    @staticmethod
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        error_code = HTTP_STATUS_CODES.get(exc.status_code, ServiceErrorCode.INTERNAL_ERROR)
        logger.warning(
            f"HTTP exception: {exc.status_code}",
            extra={
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_id": _request_id(request),
                "path": request.url.path,
            }
        )
        return _respond(request, exc.status_code, error_code, str(exc.detail))

    @staticmethod
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Inputs are left out; a rejected login body would otherwise echo the password
        validation_errors = [
            {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.warning(
            f"Validation error: {len(validation_errors)} errors",
            extra={
                "validation_errors": validation_errors,
                "request_id": _request_id(request),
                "path": request.url.path,
            }
        )
        return _respond(
            request,
            422,
            ServiceErrorCode.INVALID_INPUT,
            "Validation failed",
            {"validation_errors": validation_errors}
        )

    @staticmethod
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unexpected error: {type(exc).__name__}",
            extra={
                "error_type": type(exc).__name__,
                "error_message": str(exc),
                "request_id": _request_id(request),
                "path": request.url.path,
            },
            exc_info=True
        )

        # Internals are only exposed in debug mode
        if settings.DEBUG:
            message = f"Internal error: {exc}"
            details = {"traceback": traceback.format_exc()}
        else:
            message = "An unexpected error occurred. Please try again."
            details = {}

        return _respond(request, 500, ServiceErrorCode.INTERNAL_ERROR, message, details)
