"""
Request Context Middleware Module
=================================

Starlette middleware for request processing.

Features:
- Request ID for tracing (honors an inbound ``X-Request-ID``)
- Request timing
- Request completion logging
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import get_logger, request_id_context

# Initialize logger
logger = get_logger(__name__)

# Paths not worth a log line per request
QUIET_PATHS = frozenset({"/", "/health", "/ready"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attach a request id to the logging context and the response.

    The id is echoed in ``X-Request-ID`` and the handling time in
    ``X-Process-Time`` (seconds).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_context.set(request_id)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise
        finally:
            request_id_context.reset(token)

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        self._log_request(request, response, process_time, request_id)
        return response

    def _log_request(
        self,
        request: Request,
        response: Response,
        process_time: float,
        request_id: str,
    ) -> None:
        if request.url.path in QUIET_PATHS:
            return

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
            "actor_id": request.headers.get("X-User-ID"),
        }

        # Log based on status code
        if response.status_code >= 500:
            logger.error("request_completed", **log_data)
        elif response.status_code >= 400:
            logger.warning("request_completed", **log_data)
        else:
            logger.info("request_completed", **log_data)
