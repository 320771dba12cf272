"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single ``(item_id, quantity)`` pair.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``OrderLineDTO``: one priced, titled line of an order view.
- ``OrderViewDTO``: client-facing view of an order with totals.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import MAX_ITEM_ID, MAX_QUANTITY

if TYPE_CHECKING:
    from modules.orders.catalog import CatalogItem
    from modules.orders.models import Order


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    Title and price are **not** stored: they are resolved from the
    catalog every time the order is viewed.
    """

    model_config = ConfigDict(frozen=True)

    item_id: int = Field(ge=0, le=MAX_ITEM_ID)
    quantity: int = Field(le=MAX_QUANTITY)

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``owner_id`` must not be blank.
    - ``items`` must contain at least one item.
    - Each item quantity must be positive.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str
    items: List[CreateOrderItemDTO]

    @field_validator("owner_id")
    @classmethod
    def owner_must_be_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Owner id is required.")
        return v

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderLineDTO(BaseModel):
    """Immutable DTO for one line of an order view."""

    model_config = ConfigDict(frozen=True)

    item_id: int
    title: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal

    @classmethod
    def from_catalog(cls, catalog_item: CatalogItem, quantity: int) -> OrderLineDTO:
        return cls(
            item_id=catalog_item.item_id,
            title=catalog_item.title,
            unit_price=catalog_item.unit_price,
            quantity=quantity,
            line_total=catalog_item.unit_price * quantity,
        )


class OrderViewDTO(BaseModel):
    """Immutable client-facing view of an order.

    ``lines`` keep the order's item sequence; totals are derived from
    them, never stored.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    status: str
    placed_at: datetime
    lines: List[OrderLineDTO]
    total_count: int
    total_price: Decimal

    @classmethod
    def from_entity(cls, order: Order, lines: Sequence[OrderLineDTO]) -> OrderViewDTO:
        """Build the view from an order and its resolved lines."""
        return cls(
            id=order.id,
            status=str(order.status),
            placed_at=order.placed_at,
            lines=list(lines),
            total_count=sum(line.quantity for line in lines),
            total_price=sum((line.line_total for line in lines), Decimal("0")),
        )
