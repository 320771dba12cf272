"""Order lifecycle state machine.

States: ``PENDING`` (initial) -> ``SHIPPED`` -> ``DELIVERED``, plus
``PENDING`` -> ``CANCELLED``.  ``CANCELLED`` has no way out except a hard
delete performed by the service.

Every mutating check verifies ownership **before** the status, so a
caller who does not own the order learns nothing about its state.

Functions operate on any object exposing ``owner_id`` and ``status``
and mutate it in place; persisting the change is the caller's job.
"""

from __future__ import annotations

from typing import Any

import structlog

from modules.orders.constants import (
    DELETABLE_STATES,
    FORWARD_TRANSITIONS,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import (
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderAccessForbidden,
)

logger = structlog.get_logger(__name__)


def ensure_owner(order: Any, actor_id: str) -> None:
    """Raise ``OrderAccessForbidden`` unless *actor_id* owns *order*."""
    if str(order.owner_id) != str(actor_id):
        raise OrderAccessForbidden("Order does not belong to the current user.")


def parse_status(value: Any) -> OrderStatus:
    """Coerce a status name (case-insensitive) into ``OrderStatus``."""
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidOrderInput(f"Unknown order status '{value}'.") from None


def cancel(order: Any, actor_id: str) -> Any:
    """Cancel a pending order owned by *actor_id*."""
    ensure_owner(order, actor_id)
    if OrderStatus.CANCELLED not in VALID_TRANSITIONS.get(order.status, set()):
        raise InvalidOrderStatus(
            f"Only pending orders can be cancelled (current status: {order.status!s})."
        )
    order.status = OrderStatus.CANCELLED
    return order


def advance(order: Any, actor_id: str, target_status: Any) -> Any:
    """Move an order one step forward along ``PENDING -> SHIPPED -> DELIVERED``.

    Raises ``InvalidOrderStatus`` for anything off the allow-list: going
    back to ``PENDING``, skipping a step, leaving ``CANCELLED``, or
    cancelling through this path.
    """
    ensure_owner(order, actor_id)
    target = parse_status(target_status)
    current = order.status
    if target not in FORWARD_TRANSITIONS.get(current, set()):
        logger.warning(
            "order.invalid_transition",
            current_status=str(current),
            new_status=str(target),
        )
        raise InvalidOrderStatus(f"Cannot transition from {current!s} to {target!s}.")
    order.status = target
    return order


def can_delete(order: Any) -> bool:
    """Only cancelled orders may be removed."""
    return order.status in DELETABLE_STATES
