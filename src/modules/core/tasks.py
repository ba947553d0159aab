"""Async tasks for the core module."""

import structlog
from celery import shared_task
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

RELAY_BATCH_SIZE = 100


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = RELAY_BATCH_SIZE) -> dict:
    """Publish pending outbox rows on the in-process event bus.

    Rows are processed in creation order.  A row whose event type has no
    registered class, or whose handlers raise, is marked ``FAILED`` and
    the relay moves on to the next one.
    """
    published = 0
    failed = 0

    pending = list(OutboxEvent.objects.pending()[:batch_size])
    for outbox_event in pending:
        log = logger.bind(
            outbox_event_id=str(outbox_event.id),
            event_type=outbox_event.event_type,
            aggregate_id=outbox_event.aggregate_id,
        )
        event_class = event_bus.resolve(outbox_event.event_type)
        if event_class is None:
            outbox_event.mark_as_failed(
                f"No event class registered for {outbox_event.event_type}"
            )
            log.warning("outbox.unknown_event_type")
            failed += 1
            continue

        try:
            with transaction.atomic():
                event_bus.publish(event_class.from_payload(outbox_event.payload))
                outbox_event.mark_as_published()
        except Exception as exc:
            outbox_event.mark_as_failed(str(exc))
            log.exception("outbox.publish_failed")
            failed += 1
            continue

        published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
