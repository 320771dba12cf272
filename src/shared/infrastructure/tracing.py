"""Trace fabric on top of OpenTelemetry.

Every span is started from an **explicit** parent context. Nothing here
reads or mutates the ambient (thread-local) current span, so a context can
be handed to worker threads or outbound HTTP calls by value.

- ``Span``: thin wrapper whose ``end()`` reaches the SDK exactly once.
- ``TraceFabric``: owns a ``TracerProvider`` instance (never the global one),
  starts spans, and injects/extracts W3C ``traceparent`` headers.
- ``build_tracer_provider``: provider factory driven by settings values.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Tuple, Type

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

# Public alias: the causal parent handed from one unit of work to the next.
TraceContext = Context

AttributeMap = Mapping[str, Any]


class Span:
    """A traced unit of work with guaranteed single closure."""

    def __init__(self, otel_span: trace.Span) -> None:
        self._span = otel_span
        self._lock = threading.Lock()
        self._ended = False

    @property
    def context(self) -> TraceContext:
        """Parent handle for child spans and outbound propagation."""
        return trace.set_span_in_context(self._span, Context())

    @property
    def trace_id(self) -> str:
        return format(self._span.get_span_context().trace_id, "032x")

    @property
    def is_ended(self) -> bool:
        return self._ended

    def set_attribute(self, key: str, value: Any) -> Span:
        self._span.set_attribute(key, value)
        return self

    def add_event(self, name: str, attributes: Optional[AttributeMap] = None) -> Span:
        self._span.add_event(name, attributes=dict(attributes or {}))
        return self

    def record_exception(self, exc: BaseException) -> Span:
        self._span.record_exception(exc)
        return self

    def set_status(self, code: StatusCode, message: Optional[str] = None) -> Span:
        # OpenTelemetry only accepts a description alongside ERROR.
        description = message if code is StatusCode.ERROR else None
        self._span.set_status(Status(code, description))
        return self

    def end(self) -> None:
        with self._lock:
            if self._ended:
                return
            self._ended = True
        self._span.end()


class TraceFabric:
    """Span factory bound to one ``TracerProvider``."""

    def __init__(
        self,
        provider: TracerProvider,
        instrumentation_name: str = "order-management",
    ) -> None:
        self._provider = provider
        self._tracer = provider.get_tracer(instrumentation_name)
        self._propagator = TraceContextTextMapPropagator()

    def start_span(
        self,
        name: str,
        parent: Optional[TraceContext] = None,
        attributes: Optional[AttributeMap] = None,
    ) -> Span:
        """Start a span under *parent*; ``None`` starts a new trace."""
        otel_span = self._tracer.start_span(
            name,
            context=parent if parent is not None else Context(),
            attributes=dict(attributes or {}),
        )
        return Span(otel_span)

    @contextmanager
    def span(
        self,
        name: str,
        parent: Optional[TraceContext] = None,
        attributes: Optional[AttributeMap] = None,
        expected: Tuple[Type[BaseException], ...] = (),
    ) -> Iterator[Span]:
        """Scope a span to a ``with`` block.

        Exceptions listed in *expected* propagate untouched; anything else
        is recorded on the span with an ``ERROR`` status before re-raising.
        The span is ended on every exit path.
        """
        span = self.start_span(name, parent, attributes)
        try:
            yield span
        except expected:
            raise
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(StatusCode.ERROR, f"{type(exc).__name__}: {exc}")
            raise
        finally:
            span.end()

    def inject(
        self, context: Optional[TraceContext], carrier: MutableMapping[str, str]
    ) -> MutableMapping[str, str]:
        """Write ``traceparent``/``tracestate`` for *context* into *carrier*."""
        if context is not None:
            self._propagator.inject(carrier, context=context)
        return carrier

    def extract(self, carrier: Mapping[str, str]) -> TraceContext:
        """Read an incoming W3C trace context; empty when absent."""
        return self._propagator.extract(carrier=carrier, context=Context())

    def shutdown(self) -> None:
        self._provider.shutdown()


def build_tracer_provider(service_name: str, exporter: str = "none") -> TracerProvider:
    """Create a provider for *service_name*.

    ``exporter`` is ``"console"`` (batched JSON spans on stdout) or
    ``"none"``.
    """
    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name}),
    )
    if exporter == "console":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    elif exporter != "none":
        raise ValueError(f"Unsupported trace exporter: {exporter!r}")
    return provider


__all__ = [
    "Span",
    "TraceContext",
    "TraceFabric",
    "build_tracer_provider",
]
