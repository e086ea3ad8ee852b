"""Request logging middleware.

One log line per request with the caller kind, method, path, status and
latency. The request id is taken from an inbound `X-Request-ID` when it is
safe to reuse (PayGate and the cron runner both send one), otherwise
generated. It lands in request.state for ApiResponse and is echoed back in
the `X-Request-ID` response header.

Log format:
    INFO [paygate] POST /api/v1/payments/webhook/paygate → 200 (23ms) req_a1b2c3d4e5f6
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("boost.request")

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")


def resolve_request_id(inbound: str | None) -> str:
    if inbound and _SAFE_REQUEST_ID.match(inbound):
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


def caller_kind(request: Request) -> str:
    """Which kind of caller sent this; header values themselves are never logged."""
    if "x-paygate-signature" in request.headers:
        return "paygate"
    if "x-cron-secret" in request.headers:
        return "cron"
    return "client"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "[%s] %s %s → %d (%.0fms) %s",
            caller_kind(request),
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
