"""FastAPI middleware for request tracing, window status and metrics"""

import re
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from cambio_gateway.infrastructure.observability.metrics import request_duration_histogram

REQUEST_ID_HEADER = "X-Request-ID"
WINDOW_STATUS_HEADER = "X-Window-Status"
UNMATCHED_ROUTE = "unmatched"

# Accept caller ids that are safe to echo and log
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate the caller's X-Request-ID, or mint one, and echo it back"""

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _REQUEST_ID_PATTERN.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class WindowStatusMiddleware(BaseHTTPMiddleware):
    """
    Stamp every response with the teller window status after the request.

    Lets the workstation UI notice a pause lock or a closed window from any
    call, without polling GET /v1/window.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        workstation = getattr(request.app.state, "workstation", None)
        if workstation is not None:
            response.headers[WINDOW_STATUS_HEADER] = workstation.session.status.value
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP latency labelled by route template, not by raw path"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        # the router stores the matched route in the shared scope
        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or UNMATCHED_ROUTE

        request_duration_histogram.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).observe(time.time() - start_time)

        return response
