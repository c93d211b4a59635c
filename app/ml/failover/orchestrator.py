"""
Failover Orchestrator

Drives one classification attempt across multiple unreliable providers.

Flow:
    candidates (available, by priority)
         |
    try provider i ──confident──> short-circuit
         |  failed -> exclude for cooldown, continue
         v
    >= 2 outcomes -> ensemble vote
    == 1 outcome  -> that outcome as-is
    no outcome / no qualifying group -> emergency fallback
         |
    enrich -> FinalClassification

Providers are attempted strictly one after another so that slower or
more expensive providers are never paid for once an earlier one is
confident. Independent requests may run concurrently; the health
registry and metrics recorder are the only shared state.
"""

import asyncio
import logging
import math
import time
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ConfigurationError,
    FinalClassification,
    ImagePayload,
    ProviderDescriptor,
    ProviderError,
    TAXONOMY_RANKS,
    UNIDENTIFIED_LABEL,
)
from app.ml.failover.emergency_fallback import EmergencyFallback
from app.ml.failover.ensemble_scorer import EnsembleScorer
from app.ml.failover.health_registry import HealthRegistry
from app.ml.failover.metrics import MetricsRecorder

logger = logging.getLogger(__name__)


DEFAULT_PROVIDER_TIMEOUT_SECONDS = 15.0


class FailoverOrchestrator:
    """
    Multi-provider failover with ensemble scoring.

    Usage:
        orchestrator = FailoverOrchestrator(descriptors, providers)
        result = await orchestrator.classify(ImagePayload(data, "tiger.jpg"))
    """

    def __init__(
        self,
        descriptors: Sequence[ProviderDescriptor],
        providers: Dict[str, ClassificationProvider],
        health: Optional[HealthRegistry] = None,
        metrics: Optional[MetricsRecorder] = None,
        scorer: Optional[EnsembleScorer] = None,
        fallback: Optional[EmergencyFallback] = None,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    ):
        """
        Initialize orchestrator.

        Args:
            descriptors: Static configuration for every provider
            providers: Provider instances keyed by descriptor name
            health: Shared circuit breaker state
            metrics: Shared metrics recorder
            scorer: Ensemble scorer (built from descriptor weights if omitted)
            fallback: Last-resort classifier
            provider_timeout: Per-call timeout in seconds

        Raises:
            ConfigurationError: If the provider configuration is invalid
        """
        self._validate(descriptors, providers, provider_timeout)

        self.descriptors: List[ProviderDescriptor] = sorted(descriptors, key=lambda d: d.priority)
        self.providers = dict(providers)
        self.health = health or HealthRegistry()
        self.metrics = metrics or MetricsRecorder()
        self.scorer = scorer or EnsembleScorer(
            provider_weights={d.name: d.weight for d in self.descriptors}
        )
        self.fallback = fallback or EmergencyFallback()
        self.provider_timeout = provider_timeout

    @staticmethod
    def _validate(
        descriptors: Sequence[ProviderDescriptor],
        providers: Dict[str, ClassificationProvider],
        provider_timeout: float,
    ) -> None:
        if not descriptors:
            raise ConfigurationError("At least one provider must be configured")

        seen = set()
        for descriptor in descriptors:
            if not descriptor.name:
                raise ConfigurationError("Provider name must not be empty")
            if descriptor.name in seen:
                raise ConfigurationError(f"Duplicate provider name: {descriptor.name}")
            seen.add(descriptor.name)

            if not 0.0 <= descriptor.min_confidence <= 1.0:
                raise ConfigurationError(
                    f"{descriptor.name}: min_confidence must be within [0, 1], "
                    f"got {descriptor.min_confidence}"
                )
            if not descriptor.weight > 0:
                raise ConfigurationError(f"{descriptor.name}: weight must be positive, got {descriptor.weight}")
            if descriptor.name not in providers:
                raise ConfigurationError(f"No provider instance registered for {descriptor.name}")

        if provider_timeout <= 0:
            raise ConfigurationError("provider_timeout must be positive")

    # === Operator controls ===

    def reset_failed_apis(self) -> None:
        """Make every provider available again immediately."""
        self.health.reset()

    def get_available_apis(self) -> List[str]:
        """Names of currently available providers, in priority order."""
        return self.health.filter_available(d.name for d in self.descriptors)

    def get_failed_apis(self) -> List[str]:
        """Names of currently excluded providers."""
        excluded = self.health.list_excluded()
        return [d.name for d in self.descriptors if d.name in excluded]

    def get_metrics(self) -> Dict[str, Dict]:
        """Metrics summary for every configured provider."""
        return self.metrics.summary(
            health=self.health,
            provider_names=[d.name for d in self.descriptors],
        )

    # === Classification ===

    async def classify(self, image: ImagePayload) -> FinalClassification:
        """
        Classify an image using the failover chain.

        Never raises for a validated image: provider failures are
        recovered locally and total exhaustion ends in the emergency
        fallback.

        Args:
            image: Validated image payload

        Returns:
            FinalClassification
        """
        available = set(self.get_available_apis())
        candidates = [d for d in self.descriptors if d.name in available]
        logger.info(
            f"Starting failover classification; available providers: "
            f"{', '.join(d.name for d in candidates) or 'none'}"
        )

        outcomes: List[ClassificationOutcome] = []
        attempted: List[str] = []
        chosen: Optional[ClassificationOutcome] = None

        for descriptor in candidates:
            attempted.append(descriptor.name)
            outcome = await self._attempt(descriptor, image)
            if outcome is None:
                continue

            outcomes.append(outcome)
            if outcome.confidence >= descriptor.min_confidence:
                logger.info(
                    f"{descriptor.name} met its threshold "
                    f"({outcome.confidence:.1%} >= {descriptor.min_confidence:.0%}); short-circuiting"
                )
                chosen = outcome
                break

        if chosen is None and len(outcomes) > 1:
            logger.info("No provider was confident enough; using weighted ensemble")
            chosen = self.scorer.combine(outcomes)

        if chosen is None and len(outcomes) == 1:
            chosen = outcomes[0]
            logger.info(f"Using single available result: {chosen.label} ({chosen.confidence:.1%})")

        if chosen is None:
            logger.warning("All providers exhausted; using emergency fallback")
            chosen = self.fallback.classify(image)

        result = self._enrich(chosen)
        result.attempted_providers = attempted

        logger.info(f"Final result: {result.label} ({result.confidence:.1%}) via {result.source}")
        return result

    async def _attempt(
        self,
        descriptor: ProviderDescriptor,
        image: ImagePayload,
    ) -> Optional[ClassificationOutcome]:
        """
        Call one provider; on failure record it, exclude it and return None.

        CancelledError is not an Exception and propagates untouched, so a
        cancelled request leaves the provider's health and metrics alone.
        """
        provider = self.providers[descriptor.name]
        logger.debug(f"Trying {descriptor.name} (min confidence: {descriptor.min_confidence})")

        start = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(provider.classify(image), timeout=self.provider_timeout)
            outcome = self._check_outcome(descriptor.name, outcome)
        except asyncio.TimeoutError:
            self._record_failure(descriptor.name, f"timed out after {self.provider_timeout:.1f}s")
            return None
        except ProviderError as e:
            self._record_failure(descriptor.name, e.message)
            return None
        except Exception as e:
            logger.exception(f"Unexpected error from {descriptor.name}: {e}")
            self._record_failure(descriptor.name, str(e))
            return None

        duration_ms = (time.perf_counter() - start) * 1000
        self.metrics.record(descriptor.name, success=True, confidence=outcome.confidence)
        logger.info(
            f"{descriptor.name} result: {outcome.label} "
            f"({outcome.confidence:.1%}) in {duration_ms:.0f}ms"
        )
        return outcome

    def _record_failure(self, name: str, reason: str) -> None:
        logger.warning(f"{name} failed: {reason}")
        self.metrics.record(name, success=False, confidence=0.0)
        self.health.mark_failed(name)

    @staticmethod
    def _check_outcome(name: str, outcome: ClassificationOutcome) -> ClassificationOutcome:
        """Reject malformed outcomes and stamp the provider name as source."""
        if not isinstance(outcome, ClassificationOutcome):
            raise ProviderError(name, f"returned {type(outcome).__name__}, not an outcome")
        if outcome.confidence is None or math.isnan(outcome.confidence):
            raise ProviderError(name, "returned no confidence")

        confidence = min(max(float(outcome.confidence), 0.0), 1.0)
        if confidence != outcome.confidence or outcome.source != name:
            outcome = replace(outcome, confidence=confidence, source=name)
        return outcome

    @staticmethod
    def _enrich(outcome: ClassificationOutcome) -> FinalClassification:
        """Turn the chosen outcome into the caller-facing result."""
        label = (outcome.label or "").strip() or UNIDENTIFIED_LABEL
        confidence = min(max(outcome.confidence, 0.0), 1.0)

        scientific_name = outcome.scientific_name
        if not scientific_name:
            # Placeholder; clearly marked so it is never mistaken for a real binomial
            scientific_name = f"{label} species (inferred)"

        taxonomy = None
        metadata = outcome.metadata or {}
        raw_taxonomy = metadata.get("taxonomy")
        if isinstance(raw_taxonomy, dict):
            taxonomy = {
                rank: str(raw_taxonomy[rank])
                for rank in TAXONOMY_RANKS
                if raw_taxonomy.get(rank)
            } or None

        return FinalClassification(
            label=label,
            confidence=confidence,
            source=outcome.source,
            scientific_name=scientific_name,
            taxonomy=taxonomy,
        )
