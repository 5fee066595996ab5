import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from chatbridge.logging.setup import trace_id_var


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request (and every log line emitted while serving it) with a trace id."""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("x-trace-id") or uuid.uuid4().hex
        request.state.trace_id = trace_id
        token = trace_id_var.set(trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_var.reset(token)
        response.headers["x-trace-id"] = trace_id
        return response
