import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

logger = structlog.get_logger()


class RequestContextMiddleware:
    """Binds per-request logging context and echoes the correlation ID.

    Reads X-Request-ID from the incoming request or generates a UUID4.
    The ID is bound into structlog's contextvars so every log line of
    the request carries it.  An incoming W3C
    ``traceparent`` is bound as ``traceparent`` so logs can be joined to
    the distributed trace started by the caller.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)
        traceparent = request.META.get("HTTP_TRACEPARENT")
        if traceparent:
            structlog.contextvars.bind_contextvars(traceparent=traceparent)

        logger.info(
            "request_started",
            method=request.method,
            path=request.get_full_path(),
        )
        start = time.monotonic()

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.get_full_path(),
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )

        response["X-Request-ID"] = cid
        return response
