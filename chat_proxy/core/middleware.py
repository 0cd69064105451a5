"""HTTP middleware for request ID propagation and timing.

Every request/response pair carries a correlation id:
- an incoming ``X-Request-ID`` header is reused, otherwise a UUID4 is generated
- the id is stored in contextvars so every log line of the request carries it
- the id and the handling duration are echoed back as response headers

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from chat_proxy.core.config import settings
from chat_proxy.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id and duration header to every response.

    The header name is configurable via ``LOG_REQUEST_ID_HEADER``. The
    context variable is cleared once the downstream handler returns, so ids
    never leak between requests served by the same task.

    Example:
        >>> # Headers: {"X-Request-ID": "req-abc-123"}
        >>> # Response: {"X-Request-ID": "req-abc-123", "X-Request-Duration-ms": "45.67"}
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
