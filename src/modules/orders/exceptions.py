"""Order domain exceptions.

Raised by the Service Layer when a lookup fails or a status change is
rejected.  The API layer (Views) catches these and translates them into
HTTP responses.
"""

from __future__ import annotations

from typing import Iterable, Optional


class OrderLifecycleError(Exception):
    """Base class for every order lifecycle failure."""


class NotFound(OrderLifecycleError):
    """A referenced order, item or seller sub-order does not exist."""


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class OrderItemNotFound(NotFound):
    """The item does not exist or does not belong to the order."""


class SellerOrderNotFound(NotFound):
    """The item's seller sub-order does not exist on the order."""


class InvalidTransition(OrderLifecycleError):
    """The requested status is unknown or not reachable from the current one."""

    def __init__(
        self,
        current_status: str,
        target_status: str,
        allowed: Iterable[str] = (),
        message: Optional[str] = None,
    ) -> None:
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = sorted(allowed)
        super().__init__(
            message
            or (
                f"Cannot transition from {current_status} to {target_status}. "
                f"Allowed: {', '.join(self.allowed) or 'none'}."
            )
        )


class BusinessRuleViolation(OrderLifecycleError):
    """The transition is structurally possible but breaks a business rule."""

    def __init__(self, current_status: str, target_status: str, message: str) -> None:
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(message)


class PersistenceFailure(OrderLifecycleError):
    """The status write failed at the database level."""

    def __init__(self, order_id: str, cause: Exception) -> None:
        self.order_id = order_id
        self.cause = cause
        super().__init__(f"Failed to persist status for order {order_id}: {cause}")
