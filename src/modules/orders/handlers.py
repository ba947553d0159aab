"""Outbox consumers for order events.

They run in the relay task, after the status change has committed, and
only write the audit trail to the log; refunds, restocking and
notifications are scheduled directly by the lifecycle service.
"""

from __future__ import annotations

import structlog

from modules.orders.events import OrderCancelled, OrderStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.audit.status_changed",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            transition=f"{event.old_status}->{event.new_status}",
            source="system" if event.changed_by_id is None else "user",
            changed_by_id=event.changed_by_id,
            event_id=str(event.event_id),
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.audit.cancelled",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            reason=event.reason or None,
            refunded_coins=event.wallet_coins_used,
            event_id=str(event.event_id),
        )


order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
