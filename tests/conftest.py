import threading
from collections import Counter
from decimal import Decimal

import pytest
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from rest_framework.test import APIClient

from modules.orders.catalog import CatalogItem, CatalogItemNotFound
from shared.infrastructure.tracing import TraceFabric


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Tracing
# ---------------------------------------------------------------------------


class SpanAccountingProcessor(SpanProcessor):
    """Counts span starts and ends per span id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.started: Counter = Counter()
        self.ended: Counter = Counter()

    def on_start(self, span, parent_context=None) -> None:
        with self._lock:
            self.started[span.context.span_id] += 1

    def on_end(self, span) -> None:
        with self._lock:
            self.ended[span.context.span_id] += 1

    @property
    def open_spans(self) -> set:
        with self._lock:
            return set(self.started) - set(self.ended)

    def assert_balanced(self) -> None:
        """Every started span was ended exactly once."""
        with self._lock:
            assert self.started, "no spans were started"
            assert set(self.started) == set(self.ended)
            assert all(count == 1 for count in self.ended.values())


@pytest.fixture()
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture()
def span_accounting():
    return SpanAccountingProcessor()


@pytest.fixture()
def tracing(span_exporter, span_accounting):
    """TraceFabric on a private provider that keeps finished spans in memory."""
    provider = TracerProvider()
    provider.add_span_processor(span_accounting)
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    fabric = TraceFabric(provider)
    yield fabric
    fabric.shutdown()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class FakeCatalogClient:
    """In-memory ``ICatalogClient``.

    ``items`` maps item ids to ``(title, price)``; ``failures`` maps item
    ids to the exception a lookup raises.  Unknown ids raise
    ``CatalogItemNotFound``.
    """

    def __init__(self, items=None, failures=None) -> None:
        self.items = dict(items or {})
        self.failures = dict(failures or {})
        self.calls = []
        self._lock = threading.Lock()

    def get_item(self, item_id, trace_context):
        with self._lock:
            self.calls.append((item_id, trace_context))
        if item_id in self.failures:
            raise self.failures[item_id]
        if item_id not in self.items:
            raise CatalogItemNotFound(item_id, f"Catalog item {item_id} not found.")
        title, price = self.items[item_id]
        return CatalogItem(item_id=item_id, title=title, unit_price=Decimal(price))


@pytest.fixture()
def catalog():
    return FakeCatalogClient(
        items={
            7: ("Go", "10.00"),
            8: ("Python", "25.50"),
            9: ("Rust", "3.25"),
        }
    )
