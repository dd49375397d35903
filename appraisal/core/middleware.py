"""
HTTP middleware: correlation ids and request logging.
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from appraisal.core.config import settings
from appraisal.core.logging import actor_id_var, request_id_var

logger = logging.getLogger("appraisal.requests")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Reuses the caller's request id or mints one, and echoes it back.
    The raw actor header is tagged onto log lines as-is; it is validated later
    by the identity dependency.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header) or str(uuid.uuid4())
        request_token = request_id_var.set(request_id)
        actor_token = actor_id_var.set(request.headers.get(settings.actor_header, ""))
        try:
            response = await call_next(request)
        finally:
            actor_id_var.reset(actor_token)
            request_id_var.reset(request_token)
        response.headers[settings.request_id_header] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time"] = str(elapsed_ms)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"duration_ms": elapsed_ms, "status_code": response.status_code},
        )
        return response
