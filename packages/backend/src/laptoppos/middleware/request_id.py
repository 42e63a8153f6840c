"""Request context middleware — request ID and tenant for log correlation.

Learn: Every request gets a UUID, either from the incoming X-Request-ID
header or auto-generated. LaptopPOS frontends also send X-Tenant-ID, so
broadcasts logged while handling a request can be traced back to the shop
that caused them. Both are bound to structlog's contextvars so they appear
in every log entry for that request. The request ID is echoed back.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind request_id (and tenant_id when sent) to the logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id}
        tenant_id = request.headers.get("X-Tenant-ID")
        if tenant_id:
            context["tenant_id"] = tenant_id
        structlog.contextvars.bind_contextvars(**context)

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
