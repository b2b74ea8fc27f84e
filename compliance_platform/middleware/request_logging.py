"""
Request logging middleware: one log line per request, tagged with a trace id.
"""
import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency; echo the trace id in X-Trace-ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse a caller-supplied trace id so logs can be joined across services
        trace_id = request.headers.get(TRACE_HEADER) or str(uuid.uuid4())
        request.state.trace_id = trace_id

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(
                f"[{trace_id}] {request.method} {request.url.path} -> EXCEPTION after {latency_ms}ms: {exc}",
                exc_info=True
            )
            raise

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        status_code = response.status_code
        log_level = logging.WARNING if status_code >= 400 else logging.INFO
        query = f"?{request.url.query}" if request.url.query else ""
        logger.log(
            log_level,
            f"[{trace_id}] {request.method} {request.url.path}{query} -> {status_code} ({latency_ms}ms)"
        )

        response.headers[TRACE_HEADER] = trace_id
        return response
