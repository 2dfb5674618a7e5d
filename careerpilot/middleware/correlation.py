"""
Request tracing.

Each request gets a correlation ID (the client's X-Correlation-ID when it
is well formed, else a fresh UUID4). The ID and the authenticated user
live in contextvars; RequestContextFilter copies them onto every log
record emitted while the request is being handled.
"""
import contextvars
import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from careerpilot.utils.logger import logger
from careerpilot.utils.metrics import inc, observe

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="")
request_user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_user_id", default="")

_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def get_correlation_id() -> str:
    return correlation_id_var.get("")


def get_request_user_id() -> str:
    return request_user_id_var.get("")


def set_request_user_id(user_id: str) -> None:
    request_user_id_var.set(user_id)


def resolve_correlation_id(header_value: str) -> str:
    if header_value and _VALID_CORRELATION_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get("")
        if not getattr(record, "user_id", None):
            record.user_id = request_user_id_var.get("")
        return True


_context_filter = RequestContextFilter()
for _handler in logger.handlers:
    _handler.addFilter(_context_filter)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Sets the request context, logs start/finish with timings, echoes X-Correlation-ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = resolve_correlation_id(request.headers.get("x-correlation-id", ""))
        correlation_id_var.set(cid)
        request_user_id_var.set("")

        route = {"method": request.method, "path": request.url.path}
        logger.info(
            "request.started",
            extra={**route, "client_ip": request.client.host if request.client else ""},
        )

        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception as exc:
            inc("http.errors")
            logger.error(
                "request.failed",
                extra={
                    **route,
                    "duration_ms": round((time.monotonic() - started) * 1000),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        elapsed_ms = round((time.monotonic() - started) * 1000)
        inc(f"http.status.{response.status_code}")
        observe("http.duration_ms", elapsed_ms)

        # the route sets request.state.user_id in a copied context
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "request.completed",
            extra={
                **route,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
                "user_id": getattr(request.state, "user_id", ""),
            },
        )

        response.headers["X-Correlation-ID"] = cid
        return response
