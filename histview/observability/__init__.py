"""Observability helpers."""

from histview.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_parse,
    record_parse_failure,
    render_prometheus,
    PROMETHEUS_CONTENT_TYPE,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_parse",
    "record_parse_failure",
    "render_prometheus",
    "PROMETHEUS_CONTENT_TYPE",
]
