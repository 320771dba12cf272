"""Order DRF serializers for API input.

The serializer operates at the Interface layer (API Views).
Business rules (non-empty orders, positive quantities) are enforced
again by the Service Layer through the Pydantic DTOs in ``dtos.py``;
output is rendered straight from ``OrderViewDTO``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import MAX_ITEM_ID, MAX_QUANTITY


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    item_id = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_ID)
    quantity = serializers.IntegerField(max_value=MAX_QUANTITY)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload.

    Empty item lists and non-positive quantities pass through to the
    service, which rejects them with ``InvalidOrderInput``.
    """

    items = CreateOrderItemSerializer(many=True)
