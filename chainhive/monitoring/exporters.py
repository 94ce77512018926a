"""Metric exporters for the remote-call layer.

The resilience components report through ``resilience_exporter`` so they
never touch metric objects directly.
"""

from .metrics import (
    circuit_breaker_state,
    circuit_breaker_trips_total,
    rate_limit_wait_seconds,
    remote_call_attempts_total,
    remote_call_latency_seconds,
    remote_call_retries_total,
)

BREAKER_STATE_VALUES = {"CLOSED": 0, "HALF_OPEN": 1, "OPEN": 2}


class ResilienceMetricsExporter:
    """Exports retry, circuit breaker and rate limiter metrics."""

    def record_attempt(self, context: str, success: bool, latency_seconds: float) -> None:
        """Record a single attempt of a wrapped operation.

        Args:
            context: Call label (e.g. "nodit GET /ethereum/...")
            success: Whether the attempt succeeded
            latency_seconds: Attempt duration in seconds
        """
        outcome = "success" if success else "failure"
        remote_call_attempts_total.labels(context=context, outcome=outcome).inc()
        remote_call_latency_seconds.labels(context=context).observe(latency_seconds)

    def record_retry(self, context: str) -> None:
        remote_call_retries_total.labels(context=context).inc()

    def record_breaker_state(self, breaker: str, state: str, tripped: bool = False) -> None:
        """Record a circuit breaker state change.

        Args:
            breaker: Breaker name
            state: New state name (CLOSED, HALF_OPEN, OPEN)
            tripped: True when this change opened the circuit
        """
        circuit_breaker_state.labels(breaker=breaker).set(BREAKER_STATE_VALUES[state])
        if tripped:
            circuit_breaker_trips_total.labels(breaker=breaker).inc()

    def record_rate_limit_wait(self, limiter: str, wait_seconds: float) -> None:
        rate_limit_wait_seconds.labels(limiter=limiter).observe(wait_seconds)


# Global exporter instance
resilience_exporter = ResilienceMetricsExporter()
