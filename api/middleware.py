"""
Consolidated middleware for the MealBridge API
"""

import hmac
import time
import logging
from datetime import datetime, timezone
from typing import Iterable
from uuid import uuid4

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import Settings
from app.exceptions import ServiceError, UpstreamError

logger = logging.getLogger("mealbridge.middleware")


# ============================================================================
# Helper Functions
# ============================================================================


def error_body(error: dict) -> dict:
    """Standard error envelope shared by every handler"""
    return {
        "success": False,
        "error": error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ============================================================================
# Request Logging Middleware
# ============================================================================


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests and responses"""

    async def dispatch(self, request: Request, call_next):
        # Generate unique request ID
        request_id = str(uuid4())
        request.state.request_id = request_id

        # Query strings are left out: /auth/callback carries the OAuth code
        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            },
        )

        start_time = time.time()

        try:
            response: Response = await call_next(request)
            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "process_time": f"{process_time:.4f}s",
                },
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            return response

        except Exception as exc:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(exc),
                    "process_time": f"{process_time:.4f}s",
                },
                exc_info=True,
            )
            raise


# ============================================================================
# API Key Gate
# ============================================================================


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """
    Reject requests without the pre-shared API key before any route runs.

    Paths in public_paths, and anything under public_prefixes, pass through.
    """

    def __init__(
        self,
        app,
        config: Settings,
        public_paths: Iterable[str] = (),
        public_prefixes: Iterable[str] = (),
    ):
        super().__init__(app)
        self.config = config
        self.public_paths = frozenset(public_paths)
        self.public_prefixes = tuple(public_prefixes)

    def is_public(self, path: str) -> bool:
        return path in self.public_paths or path.startswith(self.public_prefixes)

    def key_matches(self, provided: str) -> bool:
        expected = self.config.api_key
        if not expected or not provided:
            return False
        return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or self.is_public(request.url.path):
            return await call_next(request)

        provided = request.headers.get(self.config.api_key_header, "")
        if not self.key_matches(provided):
            logger.warning("Rejected request to %s: missing or invalid API key", request.url.path)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content=error_body(
                    {"code": "UNAUTHORIZED", "message": "Missing or invalid API key"}
                ),
            )
        return await call_next(request)


# ============================================================================
# Error Handlers
# ============================================================================


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request schema errors as 400 VALIDATION_ERROR"""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body({"code": f"HTTP_{exc.status_code}", "message": exc.detail}),
        headers=getattr(exc, "headers", None),
    )


async def service_exception_handler(request: Request, exc: ServiceError):
    """Handle typed service errors (validation, conflict, auth, upstream)"""
    if isinstance(exc, UpstreamError):
        logger.warning(
            f"Upstream error on {request.url.path}: HTTP {exc.status} from Fitbit"
        )
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.http_status, content=error_body(exc.to_dict()))


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception(f"Unexpected error on {request.url.path}: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
            }
        ),
    )
