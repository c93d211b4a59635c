"""
Per-provider call metrics.

Pure bookkeeping with no influence on control flow. Feeds the
technical/observability panel.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Any, Iterable, Optional

from app.ml.failover.health_registry import HealthRegistry


STATUS_ACTIVE = "active"
STATUS_EXCLUDED = "excluded"


@dataclass
class ProviderMetrics:
    """Counters for a single provider."""
    calls: int = 0
    successes: int = 0
    running_average_confidence: float = 0.0
    last_used_at: Optional[float] = None  # Unix timestamp

    @property
    def success_rate(self) -> float:
        """Success percentage in [0, 100]; 0 when never called."""
        if self.calls == 0:
            return 0.0
        return self.successes / self.calls * 100


class MetricsRecorder:
    """
    Accumulates call counts, successes and smoothed confidence per provider.

    The confidence update is `(previous + new) / 2`, which weights recent
    calls exponentially rather than computing a true mean. Downstream
    consumers depend on this exact rule.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._metrics: Dict[str, ProviderMetrics] = {}
        self._lock = threading.Lock()

    def record(self, provider_name: str, success: bool, confidence: float = 0.0) -> None:
        """Record the outcome of one call attempt."""
        with self._lock:
            metrics = self._metrics.setdefault(provider_name, ProviderMetrics())
            metrics.calls += 1
            metrics.last_used_at = self._clock()
            if success:
                metrics.successes += 1
                metrics.running_average_confidence = (
                    metrics.running_average_confidence + confidence
                ) / 2

    def get(self, provider_name: str) -> ProviderMetrics:
        """Get a snapshot of one provider's counters."""
        with self._lock:
            metrics = self._metrics.get(provider_name, ProviderMetrics())
            return ProviderMetrics(
                calls=metrics.calls,
                successes=metrics.successes,
                running_average_confidence=metrics.running_average_confidence,
                last_used_at=metrics.last_used_at,
            )

    def summary(
        self,
        health: Optional[HealthRegistry] = None,
        provider_names: Optional[Iterable[str]] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Build the read-only metrics summary.

        Args:
            health: Registry used to report active/excluded status
            provider_names: Providers to always include, even if never called

        Returns:
            Mapping of provider name to successRate/calls/avgConfidence/lastUsed/status
        """
        excluded = health.list_excluded() if health else set()

        with self._lock:
            names = list(self._metrics.keys())
            for name in provider_names or []:
                if name not in self._metrics:
                    names.append(name)

            summary = {}
            for name in names:
                metrics = self._metrics.get(name, ProviderMetrics())
                summary[name] = {
                    "successRate": metrics.success_rate,
                    "calls": metrics.calls,
                    "avgConfidence": metrics.running_average_confidence,
                    "lastUsed": metrics.last_used_at,
                    "status": STATUS_EXCLUDED if name in excluded else STATUS_ACTIVE,
                }
            return summary
