"""Monitoring module for the ChainHive remote-call layer.

This module provides:
- Prometheus-format metrics for retries, circuit breakers and rate limits
- The exporter the resilience components report through
"""

from .exporters import ResilienceMetricsExporter, resilience_exporter
from .metrics import (
    circuit_breaker_state,
    circuit_breaker_trips_total,
    generate_metrics,
    rate_limit_wait_seconds,
    remote_call_attempts_total,
    remote_call_latency_seconds,
    remote_call_retries_total,
)

__all__ = [
    "remote_call_attempts_total",
    "remote_call_retries_total",
    "remote_call_latency_seconds",
    "circuit_breaker_state",
    "circuit_breaker_trips_total",
    "rate_limit_wait_seconds",
    "generate_metrics",
    "ResilienceMetricsExporter",
    "resilience_exporter",
]
