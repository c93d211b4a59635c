"""
Failover Classification Package

Queries multiple independent classification providers in priority
order, short-circuits on the first confident result, falls back to
weighted ensemble voting, and guarantees a result through an offline
emergency fallback.

Components:
- ClassificationProvider: Capability interface for all providers
- HealthRegistry: Per-provider circuit breaker with cooldown
- MetricsRecorder: Per-provider call accounting
- LabelNormalizer: Fuzzy label comparison
- EnsembleScorer: Weighted voting across label groups
- EmergencyFallback: Deterministic last-resort classifier
- FailoverOrchestrator: Drives one classification attempt
"""

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ConfigurationError,
    FinalClassification,
    ImagePayload,
    InvalidInputError,
    ProviderDescriptor,
    ProviderError,
    WildlifeClassificationError,
)
from app.ml.failover.health_registry import HealthRegistry
from app.ml.failover.metrics import MetricsRecorder, ProviderMetrics
from app.ml.failover.label_normalizer import LabelNormalizer
from app.ml.failover.ensemble_scorer import EnsembleScorer, LabelGroup
from app.ml.failover.emergency_fallback import EmergencyFallback
from app.ml.failover.orchestrator import FailoverOrchestrator
from app.ml.failover.taxonomy import WildlifeTaxonomyResolver, get_wildlife_taxonomy_resolver

__all__ = [
    "ClassificationOutcome",
    "ClassificationProvider",
    "ConfigurationError",
    "FinalClassification",
    "ImagePayload",
    "InvalidInputError",
    "ProviderDescriptor",
    "ProviderError",
    "WildlifeClassificationError",
    "HealthRegistry",
    "MetricsRecorder",
    "ProviderMetrics",
    "LabelNormalizer",
    "EnsembleScorer",
    "LabelGroup",
    "EmergencyFallback",
    "FailoverOrchestrator",
    "WildlifeTaxonomyResolver",
    "get_wildlife_taxonomy_resolver",
]
