"""Catalog service client.

The catalog owns item titles and prices; orders only store
``(item_id, quantity)``.  ``ICatalogClient`` is the contract the
aggregator depends on; ``HttpCatalogClient`` talks to the catalog
service over HTTP and forwards the caller's trace context so catalog
spans join the same trace.

Every failure surfaces as a ``CatalogError`` subclass:

- ``CatalogItemNotFound``: the catalog answered 404.
- ``CatalogTimeout``: connect/read timeout.
- ``CatalogTransportError``: any other transport problem, non-2xx
  status, or malformed payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional, Protocol

import httpx
import structlog
from django.conf import settings

from modules.core.tracing import get_trace_fabric
from shared.infrastructure.tracing import TraceContext, TraceFabric

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CatalogItem:
    item_id: int
    title: str
    unit_price: Decimal


class CatalogError(Exception):
    """Base class for catalog lookup failures."""

    def __init__(self, item_id: int, message: str) -> None:
        super().__init__(message)
        self.item_id = item_id


class CatalogItemNotFound(CatalogError):
    """The catalog has no item with this id."""


class CatalogTransportError(CatalogError):
    """The catalog could not be reached or answered unexpectedly."""


class CatalogTimeout(CatalogError):
    """The catalog did not answer in time."""


class ICatalogClient(Protocol):
    def get_item(self, item_id: int, trace_context: Optional[TraceContext]) -> CatalogItem:
        ...


class HttpCatalogClient:
    """``ICatalogClient`` over HTTP (``GET {base_url}{item_path}``).

    Expects a JSON body with ``title`` and ``price``.  The underlying
    ``httpx.Client`` is shared across worker threads; its connection
    pool is thread-safe.
    """

    def __init__(
        self,
        base_url: str,
        tracing: TraceFabric,
        *,
        timeout: float = 5.0,
        item_path: str = "/api/books/{item_id}",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._tracing = tracing
        self._item_path = item_path
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def get_item(self, item_id: int, trace_context: Optional[TraceContext]) -> CatalogItem:
        headers = {"Accept": "application/json"}
        self._tracing.inject(trace_context, headers)
        path = self._item_path.format(item_id=item_id)

        try:
            response = self._client.get(path, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("catalog.timeout", item_id=item_id)
            raise CatalogTimeout(item_id, f"Catalog timed out for item {item_id}.") from exc
        except httpx.HTTPError as exc:
            logger.warning("catalog.transport_error", item_id=item_id, error=str(exc))
            raise CatalogTransportError(
                item_id, f"Catalog unreachable for item {item_id}."
            ) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise CatalogItemNotFound(item_id, f"Catalog item {item_id} not found.")
        if response.is_error:
            logger.warning(
                "catalog.bad_status",
                item_id=item_id,
                status_code=response.status_code,
            )
            raise CatalogTransportError(
                item_id,
                f"Catalog answered HTTP {response.status_code} for item {item_id}.",
            )

        try:
            payload = response.json(parse_float=Decimal)
            title = str(payload["title"])
            unit_price = Decimal(str(payload["price"]))
        except (ValueError, KeyError, TypeError, InvalidOperation) as exc:
            raise CatalogTransportError(
                item_id, f"Malformed catalog payload for item {item_id}."
            ) from exc

        if not unit_price.is_finite() or unit_price < 0:
            raise CatalogTransportError(
                item_id, f"Invalid catalog price for item {item_id}."
            )
        return CatalogItem(item_id=item_id, title=title, unit_price=unit_price)

    def close(self) -> None:
        self._client.close()


@lru_cache(maxsize=1)
def get_catalog_client() -> HttpCatalogClient:
    """Process-wide catalog client built from settings."""
    return HttpCatalogClient(
        base_url=settings.CATALOG_BASE_URL,
        tracing=get_trace_fabric(),
        timeout=settings.CATALOG_TIMEOUT_SECONDS,
        item_path=settings.CATALOG_ITEM_PATH,
    )
