"""Metrics service for tracking feed composition.

Singleton service counting compositions, degraded responses and failures,
and tracking composition latency.
"""

import threading
from typing import Dict


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe counters and latency tracking for feed compositions.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize metrics counters."""
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._composition_count = 0
        self._degraded_count = 0
        self._failure_count = 0
        self._total_latency_ms = 0.0
        self._max_latency_ms = 0.0

    def record_composition(self, latency_ms: float, degraded: bool = False) -> None:
        """Record a successful composition.

        Args:
            latency_ms: Latency in milliseconds
            degraded: Whether the response carried warnings
        """
        with self._lock:
            self._composition_count += 1
            self._total_latency_ms += latency_ms
            if degraded:
                self._degraded_count += 1
            if latency_ms > self._max_latency_ms:
                self._max_latency_ms = latency_ms

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with composition_count, degraded_count,
            failure_count, average_latency_ms and max_latency_ms.
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._composition_count
                if self._composition_count > 0
                else 0.0
            )

            return {
                "composition_count": self._composition_count,
                "degraded_count": self._degraded_count,
                "failure_count": self._failure_count,
                "average_latency_ms": round(avg_latency, 2),
                "max_latency_ms": round(self._max_latency_ms, 2),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()
