"""Process-wide trace fabric built from Django settings."""

from __future__ import annotations

from functools import lru_cache

from django.conf import settings

from shared.infrastructure.tracing import TraceFabric, build_tracer_provider


@lru_cache(maxsize=1)
def get_trace_fabric() -> TraceFabric:
    provider = build_tracer_provider(
        service_name=settings.OTEL_SERVICE_NAME,
        exporter=settings.OTEL_TRACES_EXPORTER,
    )
    return TraceFabric(provider)
