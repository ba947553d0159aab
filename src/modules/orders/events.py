"""Events raised by order status writes and stored in the outbox."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """An order moved between two statuses.

    ``changed_by_id`` is ``None`` for system changes, such as a roll-up
    from the seller orders.
    """

    old_status: str = ""
    new_status: str = ""
    order_number: str = ""
    changed_by_id: Optional[int] = None


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    reason: str = ""
    order_number: str = ""
    # coins redeemed at checkout
    wallet_coins_used: int = 0
