"""
Observability — Logging and metrics for the compiler.

Provides:
- Structured logging with compile ID
- Metrics collection (counters, gauges, histograms)
"""

from kiln.observability.logging import (
    set_compile_id,
    get_compile_id,
    configure_logging,
    get_logger,
    LogContext,
    compile_fields,
    JSONFormatter,
    ReadableFormatter,
)
from kiln.observability.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    get_metrics,
    reset_metrics,
)

__all__ = [
    # Logging
    "set_compile_id",
    "get_compile_id",
    "configure_logging",
    "get_logger",
    "LogContext",
    "compile_fields",
    "JSONFormatter",
    "ReadableFormatter",
    # Metrics
    "Counter",
    "Gauge",
    "Histogram",
    "MetricsRegistry",
    "get_metrics",
    "reset_metrics",
]
