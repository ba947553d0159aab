import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Request-ID"
MAX_CORRELATION_ID_LENGTH = 128


def _incoming_correlation_id(request: HttpRequest) -> str:
    cid = request.META.get("HTTP_X_REQUEST_ID", "").strip()
    if not cid or len(cid) > MAX_CORRELATION_ID_LENGTH:
        return str(uuid.uuid4())
    return cid


class CorrelationIdMiddleware:
    """Tag every log line of a request with a correlation ID.

    The ID comes from the ``X-Request-ID`` header (a fresh UUID4 when the
    header is missing, blank or oversized), is bound into structlog's
    contextvars for the duration of the request, and is echoed back in
    the response header so clients can quote it when reporting a failed
    order update.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = _incoming_correlation_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        logger.info(
            "http.request_started",
            method=request.method,
            path=request.path,
        )

        response = self.get_response(request)

        logger.info(
            "http.request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )

        response[CORRELATION_HEADER] = cid
        return response
