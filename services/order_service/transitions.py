"""
Order lifecycle rules. Pure functions, no database access.

Delivery axis:  pending -> processing -> shipped -> delivered
                pending/processing -> cancelled
Payment axis:   pending -> paid | failed, failed -> paid
"""
from shared.errors import Conflict, InvalidTransition

PENDING = "pending"
PROCESSING = "processing"
SHIPPED = "shipped"
DELIVERED = "delivered"
CANCELLED = "cancelled"

ORDER_STATUSES = (PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED)

ORDER_TRANSITIONS: dict[str, set[str]] = {
    PENDING: {PROCESSING, CANCELLED},
    PROCESSING: {SHIPPED, CANCELLED},
    SHIPPED: {DELIVERED},
    DELIVERED: set(),
    CANCELLED: set(),
}

TERMINAL_ORDER_STATUSES = {DELIVERED, CANCELLED}

# Customers may only withdraw an order nobody has started working on
BUYER_CANCELLABLE = {PENDING}

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"

PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PAYMENT_PENDING: {PAYMENT_PAID, PAYMENT_FAILED},
    PAYMENT_FAILED: {PAYMENT_PAID},
    PAYMENT_PAID: set(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ORDER_TRANSITIONS.get(from_status, set())


def validate_transition(order_number: str, from_status: str, to_status: str) -> None:
    if to_status == from_status:
        # A retried request whose effect is already applied
        raise Conflict(
            f"Order {order_number} is already {from_status}",
            current_status=from_status,
        )
    if not can_transition(from_status, to_status):
        raise InvalidTransition(
            f"Cannot change order status from {from_status} to {to_status}",
            current_status=from_status,
        )


def validate_payment_transition(order_status: str, from_status: str, to_status: str) -> None:
    if order_status == CANCELLED:
        raise InvalidTransition(
            "Cancelled orders cannot change payment status",
            current_status=order_status,
        )
    if to_status not in PAYMENT_TRANSITIONS.get(from_status, set()):
        raise InvalidTransition(
            f"Cannot change payment status from {from_status} to {to_status}",
            current_payment_status=from_status,
        )
    if to_status == PAYMENT_PAID and order_status != DELIVERED:
        raise InvalidTransition(
            "Only delivered orders can be marked as paid",
            current_status=order_status,
        )
