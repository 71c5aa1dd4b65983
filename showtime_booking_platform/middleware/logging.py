"""
Request logging middleware.

Each request gets an id (the caller's ``X-Request-ID`` or a fresh UUID) that
is stored in ``request_id_var`` for the log filters and echoed back in the
response headers.
"""

import contextvars
import logging
import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="no-request-id")

QUIET_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}
MASKED_HEADERS = {"authorization", "cookie", "x-api-key", "x-auth-token"}
SLOW_REQUEST_THRESHOLD = 2.0


def client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and logs every request and its outcome."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        request.state.request_id = request_id
        context_token = request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            self._log_request(request)
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"Unhandled exception in {request.method} {request.url.path}",
                extra={"elapsed": time.perf_counter() - started}
            )
            raise
        else:
            elapsed = time.perf_counter() - started
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{elapsed:.4f}"
            self._log_response(request, response, elapsed)
            return response
        finally:
            request_id_var.reset(context_token)

    def _log_request(self, request: Request) -> None:
        path = request.url.path
        level = logging.DEBUG if path in QUIET_PATHS else logging.INFO
        logger.log(
            level,
            f"{request.method} {path}",
            extra={
                "query_params": dict(request.query_params),
                "client_ip": client_ip(request),
                "user_agent": request.headers.get("user-agent"),
                "headers": {
                    key: "***MASKED***" if key.lower() in MASKED_HEADERS else value
                    for key, value in request.headers.items()
                },
            }
        )

    def _log_response(self, request: Request, response: Response, elapsed: float) -> None:
        code = response.status_code
        if code >= 500:
            level = logging.ERROR
        elif code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        user_id = getattr(request.state, "user_id", None)
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {code} ({elapsed:.4f}s)",
            extra={
                "status_code": code,
                "elapsed": elapsed,
                "response_size": response.headers.get("content-length"),
                "user_id": str(user_id) if user_id else None,
            }
        )

        if elapsed > SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.4f}s",
                extra={"slow_request": True, "threshold": SLOW_REQUEST_THRESHOLD}
            )
