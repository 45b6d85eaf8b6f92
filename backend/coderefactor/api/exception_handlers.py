"""
Centralized exception handlers for consistent error responses

Every error leaves the API as:
    {"error": {"message": ..., "status": ..., "details": ...}}
"""
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from coderefactor.core.config import settings
from coderefactor.core.logging import log_security_event
from coderefactor.services.rate_limiter import RateLimitExceeded

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Error raised by route handlers, rendered as the error envelope"""
    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


def error_response(
    status_code: int,
    message: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    error: Dict[str, Any] = {"message": message, "status": status_code}
    if details is not None:
        error["details"] = details
    error.update(extra)
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def rate_limit_response(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    429 envelope with rate limit headers.

    Used directly by the rate limit middleware, which runs outside the
    routing-level exception handlers.
    """
    log_security_event(
        "rate_limit_exceeded",
        ip_address=request.client.host if request.client else None,
        success=False,
        path=request.url.path,
    )
    headers = {name: str(value) for name, value in exc.headers.items()}
    headers["Retry-After"] = str(exc.retry_after)
    return error_response(429, exc.message, headers=headers)


def setup_exception_handlers(app: FastAPI):
    """
    Register all exception handlers on the FastAPI app.

    Call this after creating the FastAPI app instance:
        app = FastAPI()
        setup_exception_handlers(app)
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return error_response(exc.status_code, exc.message, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.warning(f"Route not found: {request.method} {request.url.path}")
            return error_response(404, "Route not found", path=request.url.path)
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with detailed field info"""
        errors = []
        for error in exc.errors():
            if error["type"] == "json_invalid":
                return error_response(400, "Invalid JSON")
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"]
            })

        return error_response(422, "Request validation failed", errors)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Catch-all handler for unhandled exceptions"""
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

        # Don't expose internal details in production
        if settings.DEBUG:
            return error_response(500, str(exc), type=type(exc).__name__)

        return error_response(500, "Internal Server Error")
