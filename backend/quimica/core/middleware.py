"""
FastAPI middleware for request context and logging
"""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from quimica.core.logging_config import LoggingConfig
from quimica.core.tracing import add_span_attributes, get_current_trace_id

logger = LoggingConfig.get_logger(__name__)

# Probes and scrapes hit these every few seconds
QUIET_PATHS = ("/health", "/health/liveness", "/metrics")


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Give every request an id, put it in the log context and log the outcome"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        path = request.url.path

        LoggingConfig.set_context(
            request_id=request_id,
            method=request.method,
            path=path,
            client_host=request.client.host if request.client else None,
        )

        trace_id = get_current_trace_id()
        if trace_id:
            LoggingConfig.set_context(trace_id=trace_id)
            add_span_attributes(request_id=request_id)
        elif request.headers.get("traceparent"):
            LoggingConfig.set_context(trace_id=request.headers["traceparent"])

        level = logging.DEBUG if path in QUIET_PATHS else logging.INFO
        started = time.perf_counter()
        logger.log(level, f"{request.method} {path} started")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{request.method} {path} failed",
                exc_info=True,
                extra={
                    "error_type": type(e).__name__,
                    "duration_ms": int((time.perf_counter() - started) * 1000),
                },
            )
            raise
        else:
            if response.status_code >= 500:
                level = logging.WARNING
            logger.log(
                level,
                f"{request.method} {path} -> {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": int((time.perf_counter() - started) * 1000),
                },
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            LoggingConfig.clear_context()
