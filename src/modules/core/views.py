"""Liveness endpoint.

``/health`` answers 200 when the database and the cache (Redis in
production) both respond, 503 otherwise.  The outbox backlog is reported
for operators but never makes the service unhealthy.
"""

import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)


def _timed(check: Callable[[], None]) -> Dict[str, Any]:
    start = time.monotonic()
    check()
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


def _outbox_backlog() -> Dict[str, int]:
    return {
        "pending": OutboxEvent.objects.pending().count(),
        "failed": OutboxEvent.objects.failed().count(),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {}
    healthy = True

    for name, check in (("database", _check_database), ("cache", _check_cache)):
        try:
            services[name] = _timed(check)
        except Exception:
            services[name] = {"status": "down"}
            healthy = False
            logger.exception("health_check.service_down", service=name)

    payload: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "services": services,
    }
    if services["database"]["status"] == "up":
        try:
            payload["outbox"] = _outbox_backlog()
        except DatabaseError:
            logger.warning("health_check.outbox_unavailable")

    logger.info("health_check.completed", status=payload["status"])
    return JsonResponse(payload, status=200 if healthy else 503)
