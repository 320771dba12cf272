"""Order and OrderItem models.

Business rules implemented:
- ``owner_id`` and ``placed_at`` are set once at creation and never edited.
- Status changes go through ``modules.orders.lifecycle`` only.
- Line items are immutable; ``position`` keeps the order the caller sent.
- ``quantity >= 1`` is enforced by validators and a DB check constraint.
- Deletion is a hard delete; items are removed by CASCADE.

Title and unit price are deliberately absent: they belong to the catalog
service and are resolved when an order view is built.
"""

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import OrderStatus


class Order(BaseModel):
    """Order aggregate root, owned by exactly one caller."""

    owner_id: models.CharField = models.CharField(max_length=64, editable=False)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    placed_at: models.DateTimeField = models.DateTimeField(
        default=timezone.now,
        editable=False,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-placed_at"]
        indexes = [
            models.Index(
                fields=["owner_id", "-placed_at"],
                name="orders_owner_placed_idx",
            ),
        ]

    def ordered_items(self) -> list[OrderItem]:
        """Line items in the sequence they were placed."""
        return list(self.items.all())

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status})"


class OrderItem(BaseModel):
    """``(item_id, quantity)`` line of an order."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position: models.PositiveIntegerField = models.PositiveIntegerField()
    item_id: models.PositiveBigIntegerField = models.PositiveBigIntegerField()
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["order", "position"],
                name="order_items_order_position_uniq",
            ),
        ]

    def __str__(self) -> str:
        return f"item {self.item_id} x{self.quantity}"
