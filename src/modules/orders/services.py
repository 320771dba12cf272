"""Order service layer (Use Cases).

Orchestrates order creation, listing, viewing and lifecycle changes for
one request at a time.  Every public operation:

- opens a root span ``OrderService.<operation>`` under the caller's
  trace context and annotates it with owner/actor/order ids;
- runs each store access under its own child span carrying
  ``db.row_count``;
- builds client-facing views through ``OrderAggregator`` under an
  aggregation child span;
- records business-rule rejections as span events only, while
  upstream/unexpected failures are recorded as exceptions with an
  ``ERROR`` status.

Spans are ``with``-scoped, so each one is closed exactly once on every
exit path.  Dependencies (store, catalog client, trace fabric) are
injected through the constructor.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional
from uuid import UUID

import structlog
from django.utils import timezone
from opentelemetry.trace import StatusCode
from pydantic import ValidationError

from modules.orders import lifecycle
from modules.orders.aggregator import DEFAULT_MAX_WORKERS, OrderAggregator
from modules.orders.catalog import ICatalogClient
from modules.orders.dtos import CreateOrderDTO, OrderViewDTO
from modules.orders.exceptions import (
    BUSINESS_ERRORS,
    AggregationError,
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderAccessForbidden,
    OrderNotFound,
    UpstreamFailure,
)
from modules.orders.models import Order
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.tracing import Span, TraceContext, TraceFabric

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        catalog_client: ICatalogClient,
        tracing: TraceFabric,
        max_lookup_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._order_repo = order_repository
        self._tracing = tracing
        self._aggregator = OrderAggregator(
            catalog_client, tracing, max_workers=max_lookup_workers
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_orders(
        self, owner_id: str, trace_context: Optional[TraceContext] = None
    ) -> List[OrderViewDTO]:
        """Return the owner's order views, newest first (empty if none)."""
        with self._root_span("list_orders", trace_context, {"owner.id": owner_id}) as span:
            log = logger.bind(owner_id=owner_id, trace_id=span.trace_id)

            with self._tracing.span("DB list_by_owner", span.context) as db_span:
                orders = self._order_repo.list_by_owner(owner_id)
                db_span.set_attribute("db.row_count", len(orders))
                db_span.add_event("DB query complete")

            views = [self._build_view(order, span) for order in orders]
            span.add_event("order convert to dto complete")
            span.set_status(StatusCode.OK)
            log.info("order.listed", count=len(views))
            return views

    def get_order(
        self, order_id: UUID | str, trace_context: Optional[TraceContext] = None
    ) -> OrderViewDTO:
        """Return the view of one order.

        Raises:
            OrderNotFound: no such order.
            UpstreamFailure: a catalog lookup failed.
        """
        with self._root_span("get_order", trace_context, {"order.id": str(order_id)}) as span:
            order = self._fetch(order_id, span)
            span.add_event("DB query complete")

            view = self._build_view(order, span)
            span.add_event("order convert to dto complete")
            span.set_status(StatusCode.OK)
            return view

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(
        self,
        owner_id: str,
        items: Iterable[Any],
        trace_context: Optional[TraceContext] = None,
    ) -> UUID:
        """Place a new ``PENDING`` order and return its id.

        ``items`` holds ``{"item_id", "quantity"}`` mappings or
        ``CreateOrderItemDTO`` instances, in display order.

        Raises:
            InvalidOrderInput: no items, or an item id or quantity out of range.
        """
        with self._root_span("create_order", trace_context, {"owner.id": owner_id}) as span:
            try:
                dto = CreateOrderDTO(owner_id=owner_id, items=list(items or []))
            except ValidationError as exc:
                span.add_event("invalid order input")
                raise InvalidOrderInput(_first_error(exc)) from exc

            placed_at = timezone.now()
            span.set_attribute("order.placed_at", placed_at.isoformat())

            with self._tracing.span("DB save", span.context) as db_span:
                order = self._order_repo.create(
                    {
                        "owner_id": dto.owner_id,
                        "placed_at": placed_at,
                        "items": [item.model_dump() for item in dto.items],
                    }
                )
                db_span.set_attribute("db.row_count", 1 + len(dto.items))
                db_span.add_event("DB save complete")
                db_span.set_status(StatusCode.OK)

            span.set_attribute("order.id", str(order.id))
            span.add_event("order create complete")
            span.set_status(StatusCode.OK)
            logger.info(
                "order.created",
                order_id=str(order.id),
                owner_id=owner_id,
                item_count=len(dto.items),
                trace_id=span.trace_id,
            )
            return order.id

    def cancel_order(
        self,
        order_id: UUID | str,
        actor_id: str,
        trace_context: Optional[TraceContext] = None,
    ) -> None:
        """Cancel a pending order owned by *actor_id*.

        Raises:
            OrderNotFound / OrderAccessForbidden / InvalidOrderStatus.
        """
        attributes = {"order.id": str(order_id), "actor.id": actor_id}
        with self._root_span("cancel_order", trace_context, attributes) as span:
            order = self._fetch(order_id, span)
            self._apply_rule(span, lifecycle.cancel, order, actor_id)
            self._save(order, span)

            span.add_event("order cancel complete")
            span.set_status(StatusCode.OK)
            logger.info("order.cancelled", order_id=str(order.id), actor_id=actor_id)

    def delete_order(
        self,
        order_id: UUID | str,
        actor_id: str,
        trace_context: Optional[TraceContext] = None,
    ) -> None:
        """Hard-delete a cancelled order owned by *actor_id*.

        Raises:
            OrderNotFound / OrderAccessForbidden / InvalidOrderStatus.
        """
        attributes = {"order.id": str(order_id), "actor.id": actor_id}
        with self._root_span("delete_order", trace_context, attributes) as span:
            order = self._fetch(order_id, span)
            self._apply_rule(span, lifecycle.ensure_owner, order, actor_id)
            if not lifecycle.can_delete(order):
                span.add_event("invalid status transition", {"order.status": str(order.status)})
                raise InvalidOrderStatus(
                    f"Only cancelled orders can be deleted (current status: {order.status!s})."
                )

            with self._tracing.span("DB delete", span.context) as db_span:
                deleted = self._order_repo.delete(str(order.id))
                db_span.set_attribute("db.row_count", int(deleted))
            if not deleted:
                # Removed by a concurrent request between fetch and delete.
                span.add_event("order not found")
                raise OrderNotFound(f"Order {order_id} not found.")

            span.add_event("order delete complete")
            span.set_status(StatusCode.OK)
            logger.info("order.deleted", order_id=str(order_id), actor_id=actor_id)

    def update_status(
        self,
        order_id: UUID | str,
        actor_id: str,
        target_status: str,
        trace_context: Optional[TraceContext] = None,
    ) -> None:
        """Advance an order along ``PENDING -> SHIPPED -> DELIVERED``.

        Raises:
            OrderNotFound / OrderAccessForbidden: as for cancellation.
            InvalidOrderInput: unknown status name.
            InvalidOrderStatus: transition not on the allow-list.
        """
        attributes = {
            "order.id": str(order_id),
            "actor.id": actor_id,
            "order.target_status": str(target_status),
        }
        with self._root_span("update_status", trace_context, attributes) as span:
            order = self._fetch(order_id, span)
            old_status = str(order.status)
            self._apply_rule(span, lifecycle.advance, order, actor_id, target_status)
            self._save(order, span)

            span.add_event("order status update complete")
            span.set_status(StatusCode.OK)
            logger.info(
                "order.status_updated",
                order_id=str(order.id),
                actor_id=actor_id,
                old_status=old_status,
                new_status=str(order.status),
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _root_span(
        self,
        operation: str,
        trace_context: Optional[TraceContext],
        attributes: Mapping[str, Any],
    ) -> Iterator[Span]:
        with self._tracing.span(
            f"OrderService.{operation}",
            trace_context,
            attributes,
            expected=BUSINESS_ERRORS,
        ) as span:
            yield span

    def _fetch(self, order_id: UUID | str, span: Span) -> Order:
        with self._tracing.span(
            "DB get_by_id", span.context, {"order.id": str(order_id)}
        ) as db_span:
            order = self._order_repo.get_by_id(str(order_id))
            db_span.set_attribute("db.row_count", 0 if order is None else 1)
            if order is None:
                db_span.add_event("order not found")

        if order is None:
            span.add_event("order not found")
            raise OrderNotFound(f"Order {order_id} not found.")
        span.set_attribute("owner.id", str(order.owner_id))
        return order

    def _save(self, order: Order, span: Span) -> None:
        with self._tracing.span("DB save", span.context, {"order.id": str(order.id)}) as db_span:
            self._order_repo.save(order)
            db_span.set_attribute("db.row_count", 1)
            db_span.add_event("DB save complete")
            db_span.set_status(StatusCode.OK)

    @staticmethod
    def _apply_rule(span: Span, rule: Callable[..., Any], order: Order, *args: Any) -> None:
        try:
            rule(order, *args)
        except OrderAccessForbidden:
            span.add_event("order user is not current user")
            raise
        except InvalidOrderStatus:
            span.add_event("invalid status transition", {"order.status": str(order.status)})
            raise
        except InvalidOrderInput:
            span.add_event("invalid order input")
            raise

    def _build_view(self, order: Order, span: Span) -> OrderViewDTO:
        attributes = {"order.id": str(order.id)}
        try:
            with self._tracing.span("OrderAggregator.aggregate", span.context, attributes) as agg_span:
                view = self._aggregator.aggregate(order, agg_span.context)
                agg_span.set_attribute("order.line_count", len(view.lines))
                agg_span.set_status(StatusCode.OK)
                return view
        except AggregationError as exc:
            logger.warning(
                "order.aggregation_failed",
                order_id=str(order.id),
                item_id=exc.item_id,
                error_type=type(exc.cause).__name__,
            )
            raise UpstreamFailure(
                f"Could not resolve catalog item {exc.item_id} for order {order.id}."
            ) from exc


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid order input."
    message = str(errors[0].get("msg", "Invalid order input."))
    return message.removeprefix("Value error, ")
