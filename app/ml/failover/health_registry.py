"""
Provider Health Registry

Per-provider circuit breaker: Available -> Excluded -> Available.

A provider is excluded immediately after any failure and becomes
available again once the cooldown has elapsed. Expiry is checked lazily
on read against an injectable clock, so no timers are involved.
"""

import logging
import threading
import time
from typing import Callable, Dict, Iterable, Optional, Set

logger = logging.getLogger(__name__)


DEFAULT_COOLDOWN_SECONDS = 5 * 60


class HealthRegistry:
    """
    Tracks which providers are temporarily excluded after a failure.

    Shared across concurrent classification requests; every
    read-modify-write happens under a lock.
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize health registry.

        Args:
            cooldown_seconds: How long a failed provider stays excluded
            clock: Monotonic time source (injectable for tests)
        """
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be non-negative")
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock or time.monotonic
        self._excluded_until: Dict[str, float] = {}
        self._lock = threading.Lock()

    def is_available(self, name: str) -> bool:
        """Check whether a provider may be tried right now."""
        with self._lock:
            return self._is_available_locked(name, self._clock())

    def mark_failed(self, name: str) -> None:
        """Exclude a provider for one full cooldown, starting now."""
        with self._lock:
            until = self._clock() + self.cooldown_seconds
            self._excluded_until[name] = until
        logger.info(f"Provider {name} excluded for {self.cooldown_seconds:.0f}s")

    def reset(self) -> None:
        """Clear all exclusions (explicit user-triggered retry)."""
        with self._lock:
            cleared = list(self._excluded_until.keys())
            self._excluded_until.clear()
        if cleared:
            logger.info(f"Reset failed providers: {', '.join(sorted(cleared))}")

    def list_excluded(self) -> Set[str]:
        """Get names of providers currently excluded."""
        with self._lock:
            now = self._clock()
            return {
                name for name in list(self._excluded_until)
                if not self._is_available_locked(name, now)
            }

    def filter_available(self, names: Iterable[str]) -> list:
        """Return the subset of names that are currently available, in order."""
        with self._lock:
            now = self._clock()
            return [name for name in names if self._is_available_locked(name, now)]

    def cooldown_remaining(self, name: str) -> Optional[float]:
        """Seconds until an excluded provider is tried again; None if available."""
        with self._lock:
            now = self._clock()
            if self._is_available_locked(name, now):
                return None
            return self._excluded_until[name] - now

    def _is_available_locked(self, name: str, now: float) -> bool:
        until = self._excluded_until.get(name)
        if until is None:
            return True
        if now >= until:
            # Lazy expiry
            del self._excluded_until[name]
            logger.info(f"Provider {name} restored to available providers")
            return True
        return False
