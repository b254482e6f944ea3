"""Request context middleware: request ids in logs, spans and responses."""

import uuid

import structlog
from fastapi import Request
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Propagate ``x-request-id`` through structlog context and the OTel span."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_attribute("app.request_id", request_id)

        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response

