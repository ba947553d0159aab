"""Celery tasks for order side effects.

Every task builds its collaborators per invocation and is wrapped by
``isolated``: any exception is logged with the originating ``order_id``
and turned into a ``{"status": "failed"}`` result, so a failing side
effect never reaches the caller nor undoes the committed status change.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, Optional

import structlog
from celery import shared_task

from modules.notifications.delivery import EmailSender, get_realtime_publisher
from modules.notifications.models import NotificationType
from modules.notifications.repositories.django_repository import (
    NotificationDjangoRepository,
)
from modules.notifications.services import EmailContent, NotificationService
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import OrderNotFound, SellerOrderNotFound
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    SellerOrderDjangoRepository,
)
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import StockService
from modules.wallets.models import TransactionReason
from modules.wallets.repositories.django_repository import WalletDjangoRepository
from modules.wallets.services import WalletService

logger = structlog.get_logger(__name__)


def isolated(side_effect: str) -> Callable:
    def decorator(func: Callable[..., Dict[str, Any]]) -> Callable[..., Dict[str, Any]]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Dict[str, Any]:
            order_id = kwargs.get("order_id", args[0] if args else None)
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                logger.exception(
                    f"order.side_effect.{side_effect}_failed",
                    order_id=order_id,
                )
                return {"status": "failed", "order_id": order_id, "error": str(exc)}

        return wrapper

    return decorator


def _notification_service(with_email: bool = False):
    return NotificationService(
        repository=NotificationDjangoRepository(),
        publisher=get_realtime_publisher(),
        mailer=EmailSender() if with_email else None,
    )


def _status_label(status: str) -> str:
    try:
        return OrderStatus(status).label
    except ValueError:
        return status


@shared_task(name="orders.refund_wallet_coins")
@isolated("wallet_refund")
def refund_wallet_coins(
    order_id: str, user_id: Any, amount: int, order_number: str = ""
) -> Dict[str, Any]:
    """Credit the coins redeemed on a cancelled order back to the buyer."""
    wallet = WalletService(WalletDjangoRepository()).adjust_wallet(
        user_id,
        amount,
        reason=TransactionReason.REFUND,
        note=f"Refund for cancelled order #{order_number or order_id}",
    )
    logger.info(
        "order.side_effect.wallet_refunded",
        order_id=order_id,
        amount=amount,
        new_balance=wallet.balance,
    )
    return {"status": "ok", "order_id": order_id, "balance": wallet.balance}


@shared_task(name="orders.restore_order_stock")
@isolated("stock_restore")
def restore_order_stock(order_id: str) -> Dict[str, Any]:
    """Give every item's quantity back to its variant or product."""
    items = OrderDjangoRepository().get_items(order_id)
    report = StockService(ProductDjangoRepository()).restore_order_stock(order_id, items)
    return {
        "status": "ok" if report.ok else "partial",
        "order_id": order_id,
        "restored": len(report.restored),
        "failed_item_ids": report.failed_item_ids,
    }


@shared_task(name="orders.deliver_order_notification")
@isolated("notification")
def deliver_order_notification(
    order_id: str,
    recipient_id: str,
    old_status: str,
    new_status: str,
    audience: str = "buyer",
) -> Dict[str, Any]:
    """Persist and push one order-status notification to one recipient."""
    order = OrderDjangoRepository().get_by_id(order_id)
    if order is None:
        logger.warning("order.side_effect.notification_skipped", order_id=order_id)
        return {"status": "skipped", "order_id": order_id}

    label = _status_label(new_status)
    if audience == "buyer":
        title = f"Order #{order.order_number} {label}"
        message = f"Your order #{order.order_number} is now {label}."
        link = f"/orders/{order.id}"
    else:
        title = f"Order #{order.order_number} status updated"
        message = (
            f"Order #{order.order_number} moved from "
            f"{_status_label(old_status)} to {label}."
        )
        link = f"/admin/orders/{order.id}"

    outcome = _notification_service().notify(
        recipient_id,
        NotificationType.ORDER_STATUS,
        title,
        message,
        link=link,
        metadata={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "old_status": old_status,
            "new_status": new_status,
        },
    )
    return {
        "status": "ok" if outcome.ok else "partial",
        "order_id": order_id,
        "recipient_id": recipient_id,
    }


@shared_task(name="orders.notify_status_rollup")
@isolated("rollup_notification")
def notify_status_rollup(
    order_id: str,
    new_status: str,
    audience: str,
    seller_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Tell a seller (or the buyer) that their whole sub-order (or order) moved."""
    order = OrderDjangoRepository().get_by_id(order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found.")

    label = _status_label(new_status)
    metadata = {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "new_status": new_status,
    }

    if audience == "seller":
        seller_order = next(
            (
                so
                for so in SellerOrderDjangoRepository().get_by_order(order_id)
                if str(so.id) == str(seller_order_id)
            ),
            None,
        )
        if seller_order is None:
            raise SellerOrderNotFound(f"Seller order {seller_order_id} not found.")
        recipient = seller_order.seller
        metadata["seller_order_id"] = str(seller_order.id)
        title = f"Order #{order.order_number} {label}"
        message = f"All your items in order #{order.order_number} are now {label}."
        link = f"/seller/orders/{order.id}"
        email = EmailContent(
            subject=f"Order #{order.order_number} Status Update",
            template="order_status_updated",
            context={
                "order_number": order.order_number,
                "seller_order_id": str(seller_order.id),
                "status": new_status,
                "status_label": label,
                "seller_name": recipient.get_username(),
            },
        )
    else:
        recipient = order.user
        title = f"Order #{order.order_number} {label}"
        message = f"Your order #{order.order_number} is now {label}."
        link = f"/orders/{order.id}"
        email = EmailContent(
            subject=f"Your Order #{order.order_number} Status Update",
            template="order_status_updated_buyer",
            context={
                "order_number": order.order_number,
                "status": new_status,
                "status_label": label,
                "buyer_name": recipient.get_username(),
            },
        )

    outcome = _notification_service(with_email=True).notify(
        str(recipient.pk),
        NotificationType.ORDER_STATUS,
        title,
        message,
        link=link,
        metadata=metadata,
        email=email,
    )
    return {
        "status": "ok" if outcome.ok else "partial",
        "order_id": order_id,
        "recipient_id": str(recipient.pk),
        "emailed": outcome.emailed,
    }
