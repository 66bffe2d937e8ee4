"""Prometheus metrics and optional OpenTelemetry tracing for histview."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from histview import config

logger = logging.getLogger("histview.observability")

REGISTRY = CollectorRegistry()
PROMETHEUS_CONTENT_TYPE = CONTENT_TYPE_LATEST

_parse_runs_counter = Counter(
    "histview_parse_runs_total",
    "Count of history parse runs",
    ["result"],
    registry=REGISTRY,
)
_parse_latency_hist = Histogram(
    "histview_parse_latency_ms",
    "Latency of parse, segment and describe runs",
    ["result"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
    registry=REGISTRY,
)
_commands_gauge = Gauge(
    "histview_commands",
    "Commands in the last successful parse",
    registry=REGISTRY,
)
_sessions_gauge = Gauge(
    "histview_sessions",
    "Sessions in the last successful parse",
    registry=REGISTRY,
)

_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_fastapi_instrumentor: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _fastapi_instrumentor

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (HISTVIEW_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    service_name = config.OTEL_SERVICE_NAME or "histview"

    resource = Resource.create({"service.name": service_name, "service.namespace": "histview"})
    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    _trace_provider = trace_provider
    _tracer = trace.get_tracer("histview")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    logger.info("OpenTelemetry initialized (service=%s endpoint=%s)", service_name, config.OTEL_ENDPOINT)


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception as exc:  # noqa: BLE001
        logger.warning("OpenTelemetry shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_parse(commands: int, sessions: int, duration_ms: float) -> None:
    _parse_runs_counter.labels(result="success").inc()
    _parse_latency_hist.labels(result="success").observe(max(0.0, float(duration_ms)))
    _commands_gauge.set(max(0, int(commands)))
    _sessions_gauge.set(max(0, int(sessions)))


def record_parse_failure(duration_ms: float) -> None:
    _parse_runs_counter.labels(result="failure").inc()
    _parse_latency_hist.labels(result="failure").observe(max(0.0, float(duration_ms)))


def render_prometheus() -> bytes:
    return generate_latest(REGISTRY)
