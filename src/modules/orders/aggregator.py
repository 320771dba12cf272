"""Order aggregation: persisted order + catalog data -> ``OrderViewDTO``.

One catalog lookup per line item, each under its own child span of the
supplied trace context, fanned out on a bounded thread pool.

Completion is fail-fast: the first failed lookup aborts the whole
aggregation with ``AggregationError``.  Lookups still queued are
cancelled, lookups already running are abandoned (their results are
discarded), and no partial view is ever built.  Successful results are
reassembled by original item index, never by arrival order.
"""

from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional

import structlog
from opentelemetry.trace import StatusCode

from modules.orders.catalog import CatalogItem, CatalogTransportError, ICatalogClient
from modules.orders.dtos import OrderLineDTO, OrderViewDTO
from modules.orders.exceptions import AggregationError
from shared.infrastructure.tracing import TraceContext, TraceFabric

logger = structlog.get_logger(__name__)

DEFAULT_MAX_WORKERS = 8


class OrderAggregator:
    """Builds order views by querying the catalog once per line item."""

    def __init__(
        self,
        catalog_client: ICatalogClient,
        tracing: TraceFabric,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self._catalog = catalog_client
        self._tracing = tracing
        self._max_workers = max_workers

    def aggregate(self, order: Any, trace_context: Optional[TraceContext]) -> OrderViewDTO:
        """Resolve every line of *order* or raise ``AggregationError``."""
        items = order.ordered_items()
        catalog_items = self._fetch_all(items, trace_context)
        lines = [
            OrderLineDTO.from_catalog(catalog_item, item.quantity)
            for item, catalog_item in zip(items, catalog_items)
        ]
        return OrderViewDTO.from_entity(order, lines)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def _fetch_all(
        self, items: List[Any], trace_context: Optional[TraceContext]
    ) -> List[CatalogItem]:
        if not items:
            return []

        results: List[Optional[CatalogItem]] = [None] * len(items)
        executor = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(items)),
            thread_name_prefix="catalog-lookup",
        )
        futures: Dict[Future, int] = {
            executor.submit(self._lookup, index, item, trace_context): index
            for index, item in enumerate(items)
        }
        try:
            pending = set(futures)
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                for future in sorted(done, key=futures.__getitem__):
                    index = futures[future]
                    exc = future.exception()
                    if exc is not None:
                        logger.warning(
                            "order.catalog_lookup_failed",
                            item_id=items[index].item_id,
                            index=index,
                            abandoned=len(pending),
                            error_type=type(exc).__name__,
                        )
                        raise AggregationError(items[index].item_id, exc) from exc
                    results[index] = future.result()
        finally:
            # Queued lookups are dropped; running ones finish unobserved.
            executor.shutdown(wait=False, cancel_futures=True)

        return results  # every slot is filled once the loop completes

    def _lookup(
        self, index: int, item: Any, trace_context: Optional[TraceContext]
    ) -> CatalogItem:
        attributes = {
            "item.id": item.item_id,
            "item.index": index,
            "item.quantity": item.quantity,
        }
        with self._tracing.span("catalog.get_item", trace_context, attributes) as span:
            catalog_item = self._catalog.get_item(item.item_id, span.context)
            if catalog_item is None:
                raise CatalogTransportError(
                    item.item_id, f"Catalog returned no data for item {item.item_id}."
                )
            span.set_attribute("item.title", catalog_item.title)
            span.set_attribute("item.unit_price", str(catalog_item.unit_price))
            span.set_status(StatusCode.OK)
            return catalog_item
