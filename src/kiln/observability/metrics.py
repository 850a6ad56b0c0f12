"""
Metrics — Simple metrics collection for template compilation.

Tracks compile throughput, failures and latency. All metrics are safe to
update from concurrent compiles.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from threading import Lock
from typing import Any


class Metric(ABC):
    """Named metric guarded by its own lock."""
    
    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._lock = Lock()
        self.reset()
    
    @abstractmethod
    def reset(self) -> None:
        """Return the metric to its initial value."""


class Counter(Metric):
    """Monotonically increasing counter."""
    
    def inc(self, amount: float = 1.0) -> None:
        with self._lock:
            self._value += amount
    
    @property
    def value(self) -> float:
        return self._value
    
    def reset(self) -> None:
        """Reset counter (for testing)."""
        with self._lock:
            self._value = 0.0


class Gauge(Counter):
    """Counter that can also go down or be set."""
    
    def set(self, value: float) -> None:
        with self._lock:
            self._value = value
    
    def dec(self, amount: float = 1.0) -> None:
        self.inc(-amount)


class Histogram(Metric):
    """
    Distribution summary: count, sum, min and max.
    
    Empty histograms report 0.0 for every statistic.
    """
    
    def observe(self, value: float) -> None:
        with self._lock:
            self._values = (
                self._values[0] + 1,
                self._values[1] + value,
                min(self._values[2], value),
                max(self._values[3], value),
            )
    
    @property
    def count(self) -> int:
        return self._values[0]
    
    @property
    def sum(self) -> float:
        return self._values[1]
    
    @property
    def avg(self) -> float:
        count, total, _, _ = self._values
        return total / count if count else 0.0
    
    @property
    def min(self) -> float:
        return self._values[2] if self.count else 0.0
    
    @property
    def max(self) -> float:
        return self._values[3] if self.count else 0.0
    
    def reset(self) -> None:
        with self._lock:
            self._values = (0, 0.0, float("inf"), float("-inf"))
    
    def to_dict(self) -> dict[str, float]:
        return {
            "count": self.count,
            "sum": self.sum,
            "avg": self.avg,
            "min": self.min,
            "max": self.max,
        }


@dataclass
class MetricsRegistry:
    """
    Registry for all compiler metrics.
    """
    # Compilation outcomes
    compilations_total: Counter = field(
        default_factory=lambda: Counter("compilations_total", "Total compile calls")
    )
    compilations_success: Counter = field(
        default_factory=lambda: Counter("compilations_success", "Successful compiles")
    )
    compilations_failed: Counter = field(
        default_factory=lambda: Counter("compilations_failed", "Failed compiles")
    )
    
    # Diagnostics
    diagnostics_total: Counter = field(
        default_factory=lambda: Counter("diagnostics_total", "Diagnostics reported")
    )
    warnings_total: Counter = field(
        default_factory=lambda: Counter("warnings_total", "Warning diagnostics reported")
    )
    
    # Duration
    compile_duration_seconds: Histogram = field(
        default_factory=lambda: Histogram("compile_duration_seconds", "Compile duration")
    )
    
    # Active state
    active_compilations: Gauge = field(
        default_factory=lambda: Gauge("active_compilations", "Compiles in progress")
    )
    
    def to_dict(self) -> dict[str, Any]:
        """Export all metrics as dict."""
        return {
            "compilations": {
                "total": self.compilations_total.value,
                "success": self.compilations_success.value,
                "failed": self.compilations_failed.value,
                "active": self.active_compilations.value,
            },
            "diagnostics": {
                "total": self.diagnostics_total.value,
                "warnings": self.warnings_total.value,
            },
            "duration": {
                "compile": self.compile_duration_seconds.to_dict(),
            },
        }
    
    def reset(self) -> None:
        """Reset all metrics (for testing)."""
        for f in fields(self):
            getattr(self, f.name).reset()


# Global metrics registry
_metrics = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get global metrics registry."""
    return _metrics


def reset_metrics() -> None:
    """Reset global metrics (for testing)."""
    _metrics.reset()
