"""
Request ID Middleware - tags every request with a short trace ID
The ID is echoed in X-Request-ID and attached to every log line of the request
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
from loguru import logger


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses an incoming X-Request-ID header or generates a new ID.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        with logger.contextualize(request_id=request_id):
            started = time.perf_counter()
            logger.info(f"📨 REQUEST START {request.method} {request.url.path}")

            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"✅ REQUEST END {response.status_code} ({elapsed_ms:.0f} ms)")
            return response
