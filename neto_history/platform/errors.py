"""
Consistent error handling for the order history service.

All API errors MUST use these standard error classes and shapes.
Stack traces are NEVER returned to clients.

Error taxonomy:
- 400: InvalidTenantError (missing or unusable Origin header)
- 400: OAuthError (bad state, failed code exchange)
- 401: UnauthorizedTenantError (store never completed authorization)
- 502: UpstreamError (Neto API failure, non-2xx, malformed body)
- 503: StorageUnavailableError (key-value store unreachable)

CacheCorruptionError is internal: the digest cache treats it as staleness
and it never reaches a client.
"""

import logging
import uuid
from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class AppError(Exception):
    """
    Base application error with consistent error shape.

    All custom errors should inherit from this class.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to API error response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class InvalidTenantError(AppError):
    """Tenant could not be derived from the request (400)."""

    def __init__(self, message: str = "Request origin is required"):
        super().__init__(
            code="INVALID_TENANT",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class UnauthorizedTenantError(AppError):
    """No credential on file for the tenant (401)."""

    def __init__(self, tenant: str):
        super().__init__(
            code="UNAUTHORIZED_TENANT",
            message="Store has not completed authorization",
            status_code=status.HTTP_401_UNAUTHORIZED,
            details={"store_domain": tenant},
        )
        self.tenant = tenant


class UpstreamError(AppError):
    """Order API call failed or returned an unusable body (502)."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            code="UPSTREAM_ERROR",
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )


class StorageUnavailableError(AppError):
    """Key-value store is unreachable (503)."""

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(
            code="STORAGE_UNAVAILABLE",
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class OAuthError(AppError):
    """OAuth handshake could not be completed (400)."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            code="OAUTH_ERROR",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class CacheCorruptionError(Exception):
    """Stored digest blob could not be deserialized."""
    pass


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return str(uuid.uuid4())


def get_correlation_id(request: Request) -> str:
    """
    Get correlation ID from request or generate new one.

    Checks X-Correlation-ID header first, then request state.
    """
    correlation_id = request.headers.get("X-Correlation-ID")
    if correlation_id:
        return correlation_id

    if hasattr(request.state, "correlation_id"):
        return request.state.correlation_id

    return generate_correlation_id()


def _error_response(status_code: int, body: dict, correlation_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Correlation-ID": correlation_id},
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turns AppError into its JSON shape and anything else into a bare 500.

    Client errors (4xx) log at WARNING and server-side failures (5xx) at
    ERROR, with the store domain attached when the error carries one.

    IMPORTANT: Stack traces are NEVER returned to clients.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = get_correlation_id(request)
        request.state.correlation_id = correlation_id

        try:
            response = await call_next(request)
        except AppError as e:
            level = logging.ERROR if e.status_code >= 500 else logging.WARNING
            logger.log(level, "Application error", extra={
                "correlation_id": correlation_id,
                "error_code": e.code,
                "status_code": e.status_code,
                "store_domain": e.details.get("store_domain"),
                "path": request.url.path,
            })
            return _error_response(e.status_code, e.to_dict(), correlation_id)
        except Exception as e:
            # Full exception stays server-side
            logger.exception("Unhandled exception", extra={
                "correlation_id": correlation_id,
                "error_type": type(e).__name__,
                "path": request.url.path,
            })
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                {
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "message": "An unexpected error occurred",
                        "details": {"correlation_id": correlation_id},
                    }
                },
                correlation_id,
            )

        response.headers["X-Correlation-ID"] = correlation_id
        return response
