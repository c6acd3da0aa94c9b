"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a correlation id: the incoming
``X-Request-ID`` (header name configurable) or a fresh UUID. The id is bound
to contextvars for the duration of the request so queue and limiter logs
emitted on its behalf carry it too.
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from courier.core.config import settings
from courier.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id, echo it back, and report request duration.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with request id and duration
            headers added.

    Side Effects:
        - Binds the request id in contextvars for the duration of the request
          (error bodies and queue/limiter logs pick it up)
        - Clears it once the downstream handler returns or raises
        - Adds ``X-Request-ID`` (header name from ``LOG_REQUEST_ID_HEADER``)
          and ``X-Request-Duration-ms`` to the response
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
