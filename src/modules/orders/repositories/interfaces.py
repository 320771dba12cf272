"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: atomic creation with items and the per-owner listing.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    Single-record operations are assumed atomic at the storage layer;
    no application-level locking is layered on top.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``owner_id``, ``placed_at`` and ``items``
        (list of dicts with ``item_id`` and ``quantity``, in order).
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items, ``None`` when absent."""

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[Order]:
        """List an owner's orders, newest ``placed_at`` first."""
