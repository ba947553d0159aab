"""Order domain constants.

Defines the status choices, the transition table of the order state
machine, and the business-rule tables the validator checks around it.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    RETURNED = "returned", "Returned"
    REFUNDED = "refunded", "Refunded"
    REPLACED = "replaced", "Replaced"
    CANCELLED = "cancelled", "Cancelled"
    APPROVE_RETURN = "approve_return", "Return approved"
    REJECT_RETURN = "reject_return", "Return rejected"
    PROCESS_RETURN = "process_return", "Return in process"
    COMPLETED_RETURN = "completed_return", "Return completed"


class PaymentMethod(models.TextChoices):
    COD = "cod", "Cash on delivery"
    RAZORPAY = "razorpay", "Razorpay"
    WALLET = "wallet", "Wallet"


VALID_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
            OrderStatus.APPROVE_RETURN,
            OrderStatus.REJECT_RETURN,
        }
    ),
    OrderStatus.CONFIRMED: frozenset(
        {
            OrderStatus.PROCESSING,
            OrderStatus.CANCELLED,
            OrderStatus.APPROVE_RETURN,
            OrderStatus.REJECT_RETURN,
        }
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset(
        {OrderStatus.DELIVERED, OrderStatus.RETURNED, OrderStatus.CANCELLED}
    ),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.RETURNED: frozenset({OrderStatus.REFUNDED, OrderStatus.REPLACED}),
    OrderStatus.REPLACED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.APPROVE_RETURN: frozenset({OrderStatus.PROCESS_RETURN}),
    OrderStatus.REJECT_RETURN: frozenset({OrderStatus.RETURNED}),
    OrderStatus.PROCESS_RETURN: frozenset(
        {OrderStatus.COMPLETED_RETURN, OrderStatus.RETURNED}
    ),
    OrderStatus.REFUNDED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.COMPLETED_RETURN: frozenset(),
}

TERMINAL_STATES: frozenset[str] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

# Target -> statuses the order must currently be in.
REQUIRED_PRIOR_STATUSES: dict[str, frozenset[str]] = {
    OrderStatus.DELIVERED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.PROCESSING, OrderStatus.REPLACED}),
    OrderStatus.RETURNED: frozenset(
        {
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
            OrderStatus.REJECT_RETURN,
            OrderStatus.PROCESS_RETURN,
        }
    ),
    OrderStatus.REFUNDED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.REPLACED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.APPROVE_RETURN: frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED}),
    # a return request is either approved or rejected from the same states
    OrderStatus.REJECT_RETURN: frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED}),
    OrderStatus.PROCESS_RETURN: frozenset({OrderStatus.APPROVE_RETURN}),
    OrderStatus.COMPLETED_RETURN: frozenset({OrderStatus.PROCESS_RETURN}),
}

# Target -> statuses the order must NOT currently be in.
FORBIDDEN_PRIOR_STATUSES: dict[str, frozenset[str]] = {
    OrderStatus.CANCELLED: frozenset({OrderStatus.DELIVERED}),
}

# Statuses written with a single UPDATE statement instead of Model.save().
HOT_PATH_STATUSES: frozenset[str] = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.SHIPPED,
        OrderStatus.PROCESSING,
        OrderStatus.CONFIRMED,
    }
)

ORDER_NUMBER_MAX_RETRIES = 5
