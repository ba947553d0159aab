"""Post-commit side effects of order status changes.

The dispatcher turns a committed status change into independent Celery
jobs (wallet refund, stock restoration, one notification per recipient)
and registers each enqueue with ``transaction.on_commit``.  Nothing is
enqueued if the status write rolls back, and a broker failure for one
job is logged without affecting the others or the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog
from django.db import transaction

from modules.orders import tasks
from modules.orders.constants import OrderStatus

if TYPE_CHECKING:
    from modules.notifications.repositories.interfaces import INotificationRepository
    from modules.orders.models import Order, SellerOrder

logger = structlog.get_logger(__name__)


class Audience:
    STAFF = "staff"
    BUYER = "buyer"
    SELLER = "seller"


@dataclass(frozen=True)
class SideEffectJob:
    task: Any
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.task.name


class OrderSideEffectDispatcher:
    """Plans and schedules the side-effect jobs of a status change.

    *recipient_repository* supplies the staff user ids that receive the
    order notification fan-out; *on_commit* defaults to Django's
    ``transaction.on_commit``.
    """

    def __init__(
        self,
        recipient_repository: INotificationRepository,
        on_commit: Optional[Callable[[Callable[[], None]], None]] = None,
    ) -> None:
        self._recipients = recipient_repository
        self._on_commit = on_commit or transaction.on_commit

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan_status_change(
        self, order: Order, old_status: str, new_status: str
    ) -> List[SideEffectJob]:
        order_id = str(order.id)
        jobs = self.plan_compensation(order, new_status)

        recipients = [
            (recipient_id, Audience.STAFF)
            for recipient_id in self._recipients.get_staff_recipient_ids()
            if recipient_id != str(order.user_id)
        ]
        recipients.append((str(order.user_id), Audience.BUYER))
        for recipient_id, audience in recipients:
            jobs.append(
                SideEffectJob(
                    tasks.deliver_order_notification,
                    {
                        "order_id": order_id,
                        "recipient_id": recipient_id,
                        "old_status": old_status,
                        "new_status": new_status,
                        "audience": audience,
                    },
                )
            )
        return jobs

    def plan_compensation(self, order: Order, new_status: str) -> List[SideEffectJob]:
        """Refund redeemed coins and restock items when the order is cancelled."""
        if new_status != OrderStatus.CANCELLED:
            return []
        order_id = str(order.id)
        jobs: List[SideEffectJob] = []
        if order.wallet_coins_used > 0:
            jobs.append(
                SideEffectJob(
                    tasks.refund_wallet_coins,
                    {
                        "order_id": order_id,
                        "user_id": order.user_id,
                        "amount": order.wallet_coins_used,
                        "order_number": order.order_number,
                    },
                )
            )
        jobs.append(SideEffectJob(tasks.restore_order_stock, {"order_id": order_id}))
        return jobs

    def plan_seller_rollup(
        self, order: Order, seller_order: SellerOrder, new_status: str
    ) -> List[SideEffectJob]:
        return [
            SideEffectJob(
                tasks.notify_status_rollup,
                {
                    "order_id": str(order.id),
                    "new_status": new_status,
                    "audience": Audience.SELLER,
                    "seller_order_id": str(seller_order.id),
                },
            )
        ]

    def plan_buyer_rollup(self, order: Order, new_status: str) -> List[SideEffectJob]:
        jobs = self.plan_compensation(order, new_status)
        jobs.append(
            SideEffectJob(
                tasks.notify_status_rollup,
                {
                    "order_id": str(order.id),
                    "new_status": new_status,
                    "audience": Audience.BUYER,
                },
            )
        )
        return jobs

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch_status_change(
        self, order: Order, old_status: str, new_status: str
    ) -> List[SideEffectJob]:
        return self._schedule(self.plan_status_change(order, old_status, new_status))

    def dispatch_seller_rollup(
        self, order: Order, seller_order: SellerOrder, new_status: str
    ) -> List[SideEffectJob]:
        return self._schedule(self.plan_seller_rollup(order, seller_order, new_status))

    def dispatch_buyer_rollup(self, order: Order, new_status: str) -> List[SideEffectJob]:
        return self._schedule(self.plan_buyer_rollup(order, new_status))

    def _schedule(self, jobs: List[SideEffectJob]) -> List[SideEffectJob]:
        for job in jobs:
            self._on_commit(partial(self._enqueue, job))
        return jobs

    @staticmethod
    def _enqueue(job: SideEffectJob) -> None:
        try:
            job.task.apply_async(kwargs=job.kwargs)
        except Exception:
            logger.exception(
                "order.side_effect.enqueue_failed",
                task=job.name,
                order_id=job.kwargs.get("order_id"),
            )
