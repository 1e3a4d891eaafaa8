"""
Request context middleware.

Binds a request id into the structlog context so the parse, facet and
filter log lines emitted while serving one catalog query share it, and
reports request duration. Requests slower than ``slow_request_ms`` are
logged at WARNING.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.logging import bind_context, clear_context, get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Echo or assign X-Request-ID and log one summary line per request.

    Usage:
        app.add_middleware(RequestTracingMiddleware, slow_request_ms=1500)
    """

    def __init__(self, app: ASGIApp, slow_request_ms: float = 2000.0):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        bind_context(request_id=request_id, path=request.url.path)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled error while serving request",
                method=request.method,
                error_type=type(e).__name__,
                elapsed_ms=self._elapsed_ms(started),
            )
            raise
        else:
            elapsed_ms = self._elapsed_ms(started)
            log = logger.warning if elapsed_ms >= self.slow_request_ms else logger.info
            log(
                "Request served",
                method=request.method,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers[RESPONSE_TIME_HEADER] = str(elapsed_ms)
            return response
        finally:
            clear_context()

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 1)
