"""Prometheus metrics for the ChainHive remote-call layer.

Rendered in Prometheus text format by ``generate_metrics()``:
- Call metrics: remote_call_attempts_total, remote_call_retries_total,
  remote_call_latency_seconds
- Breaker metrics: circuit_breaker_state, circuit_breaker_trips_total
- Rate-limit metrics: rate_limit_wait_seconds
"""

import threading
from typing import Optional


# =============================================================================
# Metric Classes (Lightweight implementation without prometheus_client dependency)
# =============================================================================


def _escape(value) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_labels(names: list[str], values: tuple, extra: str = "") -> str:
    parts = [f'{n}="{_escape(v)}"' for n, v in zip(names, values)]
    if extra:
        parts.append(extra)
    return "{" + ",".join(parts) + "}" if parts else ""


class _Metric:
    """Shared label handling for all metric types."""

    metric_type = "untyped"

    def __init__(self, name: str, description: str, labels: Optional[list[str]] = None):
        self.name = name
        self.description = description
        self._label_names = labels or []
        self._lock = threading.Lock()

    def _key(self, labels: dict[str, str]) -> tuple:
        return tuple(str(labels.get(n, "")) for n in self._label_names)

    def labels(self, **kwargs) -> "_BoundMetric":
        """Return a child bound to specific label values."""
        return _BoundMetric(self, self._key(kwargs))

    def _header(self) -> list[str]:
        return [
            f"# HELP {self.name} {self.description}",
            f"# TYPE {self.name} {self.metric_type}",
        ]


class _BoundMetric:
    """Metric with specific label values."""

    def __init__(self, parent: _Metric, label_values: tuple):
        self._parent = parent
        self._label_values = label_values

    def inc(self, value: float = 1.0) -> None:
        self._parent._inc(self._label_values, value)

    def set(self, value: float) -> None:
        self._parent._set(self._label_values, value)

    def observe(self, value: float) -> None:
        self._parent._observe(self._label_values, value)


class Counter(_Metric):
    """A counter metric that can only increase."""

    metric_type = "counter"

    def __init__(self, name: str, description: str, labels: Optional[list[str]] = None):
        super().__init__(name, description, labels)
        self._values: dict[tuple, float] = {}

    def inc(self, value: float = 1.0) -> None:
        """Increment the unlabelled counter."""
        self._inc((), value)

    def _inc(self, key: tuple, value: float) -> None:
        if value < 0:
            raise ValueError("Counters can only increase")
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + value

    def get(self, **labels) -> float:
        """Current value for a label set (0 if never incremented)."""
        with self._lock:
            return self._values.get(self._key(labels), 0.0)

    def get_all(self) -> dict[tuple, float]:
        with self._lock:
            return self._values.copy()

    def to_prometheus(self) -> str:
        lines = self._header()
        with self._lock:
            for key, value in self._values.items():
                lines.append(f"{self.name}{_format_labels(self._label_names, key)} {value}")
        return "\n".join(lines)


class Gauge(Counter):
    """A gauge metric that can be set to any value."""

    metric_type = "gauge"

    def set(self, value: float) -> None:
        """Set the unlabelled gauge."""
        self._set((), value)

    def _set(self, key: tuple, value: float) -> None:
        with self._lock:
            self._values[key] = value

    def _inc(self, key: tuple, value: float) -> None:
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + value


class Histogram(_Metric):
    """A histogram metric for tracking distributions.

    Keeps cumulative bucket counts, sum and count per label set; raw
    observations are not retained.
    """

    metric_type = "histogram"
    DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

    def __init__(
        self,
        name: str,
        description: str,
        labels: Optional[list[str]] = None,
        buckets: Optional[tuple] = None,
    ):
        super().__init__(name, description, labels)
        self.buckets = buckets or self.DEFAULT_BUCKETS
        self._series: dict[tuple, dict] = {}

    def _empty(self) -> dict:
        return {"buckets": [0] * len(self.buckets), "sum": 0.0, "count": 0}

    def observe(self, value: float) -> None:
        """Record an unlabelled observation."""
        self._observe((), value)

    def _observe(self, key: tuple, value: float) -> None:
        with self._lock:
            series = self._series.setdefault(key, self._empty())
            for i, bucket in enumerate(self.buckets):
                if value <= bucket:
                    series["buckets"][i] += 1
            series["sum"] += value
            series["count"] += 1

    def get(self, **labels) -> dict:
        """Bucket counts, sum and count for a label set."""
        with self._lock:
            series = self._series.get(self._key(labels)) or self._empty()
            return {**series, "buckets": list(series["buckets"])}

    def get_all(self) -> dict[tuple, dict]:
        with self._lock:
            return {k: {**v, "buckets": list(v["buckets"])} for k, v in self._series.items()}

    def to_prometheus(self) -> str:
        lines = self._header()
        with self._lock:
            for key, series in self._series.items():
                for bucket, count in zip(self.buckets, series["buckets"]):
                    labels = _format_labels(self._label_names, key, f'le="{bucket}"')
                    lines.append(f"{self.name}_bucket{labels} {count}")
                labels = _format_labels(self._label_names, key, 'le="+Inf"')
                lines.append(f"{self.name}_bucket{labels} {series['count']}")
                plain = _format_labels(self._label_names, key)
                lines.append(f"{self.name}_sum{plain} {series['sum']}")
                lines.append(f"{self.name}_count{plain} {series['count']}")
        return "\n".join(lines)


# =============================================================================
# Remote Call Metrics
# =============================================================================

remote_call_attempts_total = Counter(
    name="chainhive_remote_call_attempts_total",
    description="Remote call attempts by outcome",
    labels=["context", "outcome"],
)

remote_call_retries_total = Counter(
    name="chainhive_remote_call_retries_total",
    description="Retries scheduled after a retryable failure",
    labels=["context"],
)

remote_call_latency_seconds = Histogram(
    name="chainhive_remote_call_latency_seconds",
    description="Latency of single remote call attempts in seconds",
    labels=["context"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# =============================================================================
# Circuit Breaker Metrics
# =============================================================================

circuit_breaker_state = Gauge(
    name="chainhive_circuit_breaker_state",
    description="Circuit breaker state (0=closed, 1=half_open, 2=open)",
    labels=["breaker"],
)

circuit_breaker_trips_total = Counter(
    name="chainhive_circuit_breaker_trips_total",
    description="Number of times a circuit breaker opened",
    labels=["breaker"],
)


# =============================================================================
# Rate Limit Metrics
# =============================================================================

rate_limit_wait_seconds = Histogram(
    name="chainhive_rate_limit_wait_seconds",
    description="Time spent queued by the rate limiter in seconds",
    labels=["limiter"],
    buckets=(0.01, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0),
)


# =============================================================================
# Metrics Registry
# =============================================================================

_ALL_METRICS = [
    remote_call_attempts_total,
    remote_call_retries_total,
    remote_call_latency_seconds,
    circuit_breaker_state,
    circuit_breaker_trips_total,
    rate_limit_wait_seconds,
]


def generate_metrics() -> str:
    """Generate all metrics in Prometheus text format."""
    return "\n\n".join(metric.to_prometheus() for metric in _ALL_METRICS)
