"""Order domain constants.

Defines status choices and the transition allow-lists for the order
state machine.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


# Every status change the lifecycle accepts, cancellation included.
VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Fulfilment progress reachable through a status update; cancelling has
# its own operation.
FORWARD_TRANSITIONS: dict[str, set[str]] = {
    current: allowed - {OrderStatus.CANCELLED}
    for current, allowed in VALID_TRANSITIONS.items()
}

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

DELETABLE_STATES: set[str] = {OrderStatus.CANCELLED}

# Column ranges of ``OrderItem.item_id`` (bigint) and ``quantity`` (int).
MAX_ITEM_ID = 9223372036854775807
MAX_QUANTITY = 2147483647
