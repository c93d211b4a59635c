"""
Enumerations exposed in API responses.
"""

from enum import Enum


class ConfidenceLevel(str, Enum):
    """Coarse confidence bucket so the UI can flag uncertain identifications."""
    VERY_HIGH = "very_high"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    VERY_LOW = "very_low"

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        for threshold, level in _LEVEL_THRESHOLDS:
            if score >= threshold:
                return level
        return cls.VERY_LOW


# Lower bounds, highest first
_LEVEL_THRESHOLDS = (
    (0.95, ConfidenceLevel.VERY_HIGH),
    (0.85, ConfidenceLevel.HIGH),
    (0.70, ConfidenceLevel.MODERATE),
    (0.50, ConfidenceLevel.LOW),
)


class ProviderStatus(str, Enum):
    """Circuit breaker status reported for a provider."""
    ACTIVE = "active"
    EXCLUDED = "excluded"
