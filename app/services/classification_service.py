"""
Classification Orchestration Service

Entry point for wildlife image classification:
1. Input validation (fast rejection, never counted against a provider)
2. Multi-provider failover with ensemble fallback
3. Batch processing of independent images
4. Operator controls and provider metrics

Design Principles:
- Provider failures are recovered inside a request, never surfaced
- Health and metrics state is owned by this service, not by globals
- All components can be injected for testing
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from app.core.config import Settings, get_settings, DEFAULT_PROVIDER_DESCRIPTORS
from app.ml.failover import (
    FailoverOrchestrator,
    FinalClassification,
    HealthRegistry,
    ImagePayload,
    InvalidInputError,
    MetricsRecorder,
)
from app.ml.failover.providers import build_providers
from app.ml.image_validation import ImageValidator

logger = logging.getLogger(__name__)


@dataclass
class BatchItemResult:
    """Outcome for one image of a batch."""
    index: int
    filename: Optional[str] = None
    result: Optional[FinalClassification] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Aggregated batch outcome."""
    items: List[BatchItemResult] = field(default_factory=list)
    total_time_ms: float = 0.0

    @property
    def successful(self) -> List[FinalClassification]:
        return [item.result for item in self.items if item.result is not None]

    def summary(self) -> Dict[str, float]:
        results = self.successful
        return {
            "total_images": len(self.items),
            "classified": len(results),
            "rejected": len(self.items) - len(results),
            "fallback_results": sum(1 for r in results if r.is_fallback),
            "ensemble_results": sum(1 for r in results if r.is_ensemble),
            "average_confidence": (
                sum(r.confidence for r in results) / len(results) if results else 0.0
            ),
            "total_time_ms": self.total_time_ms,
        }


class WildlifeClassificationService:
    """
    Main orchestration service for wildlife classification.

    Usage:
        service = WildlifeClassificationService(orchestrator)
        result = await service.classify_base64(image_b64, filename="tiger.jpg")
    """

    def __init__(
        self,
        orchestrator: FailoverOrchestrator,
        validator: Optional[ImageValidator] = None,
        batch_concurrency: int = 4,
    ):
        """
        Initialize classification service.

        Args:
            orchestrator: Failover orchestrator owning provider state
            validator: Image validator
            batch_concurrency: Maximum images classified concurrently in a batch
        """
        self.orchestrator = orchestrator
        self.validator = validator or ImageValidator()
        self.batch_concurrency = max(1, batch_concurrency)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        descriptors: Sequence = DEFAULT_PROVIDER_DESCRIPTORS,
    ) -> "WildlifeClassificationService":
        """Build the service and its providers from application settings."""
        settings = settings or get_settings()
        active, providers = build_providers(settings, descriptors)

        orchestrator = FailoverOrchestrator(
            descriptors=active,
            providers=providers,
            health=HealthRegistry(cooldown_seconds=settings.provider_cooldown_seconds),
            metrics=MetricsRecorder(),
            provider_timeout=settings.provider_timeout_seconds,
        )
        logger.info(
            f"Classification service ready with providers: "
            f"{', '.join(d.name for d in orchestrator.descriptors)}"
        )
        return cls(
            orchestrator=orchestrator,
            validator=ImageValidator(max_bytes=settings.max_image_bytes),
            batch_concurrency=settings.batch_concurrency,
        )

    async def classify(self, payload: ImagePayload) -> FinalClassification:
        """
        Validate and classify raw image bytes.

        Raises:
            InvalidInputError: If the payload is not an acceptable image
        """
        validated = self.validator.validate(payload)
        return await self.orchestrator.classify(validated)

    async def classify_base64(
        self,
        image_base64: str,
        filename: Optional[str] = None,
    ) -> FinalClassification:
        """Validate and classify a base64-encoded image."""
        payload = self.validator.from_base64(image_base64, filename=filename)
        return await self.orchestrator.classify(payload)

    async def classify_batch(
        self,
        images: Sequence[ImagePayload],
    ) -> BatchResult:
        """
        Classify several independent images concurrently.

        Each image still runs the strictly sequential failover chain;
        invalid images are reported per item without failing the batch.
        """
        start = time.perf_counter()
        semaphore = asyncio.Semaphore(self.batch_concurrency)

        async def run(index: int, payload: ImagePayload) -> BatchItemResult:
            async with semaphore:
                try:
                    result = await self.classify(payload)
                except InvalidInputError as e:
                    logger.warning(f"Batch image {index} rejected: {e}")
                    return BatchItemResult(index=index, filename=payload.filename, error=str(e))
                return BatchItemResult(index=index, filename=payload.filename, result=result)

        items = await asyncio.gather(*(run(i, p) for i, p in enumerate(images)))

        batch = BatchResult(items=list(items), total_time_ms=(time.perf_counter() - start) * 1000)
        logger.info(f"Batch complete: {len(batch.successful)}/{len(images)} images classified")
        return batch

    # === Operator controls ===

    def get_metrics(self) -> Dict[str, Dict]:
        return self.orchestrator.get_metrics()

    def reset_failed_apis(self) -> None:
        self.orchestrator.reset_failed_apis()

    def get_available_apis(self) -> List[str]:
        return self.orchestrator.get_available_apis()

    def get_failed_apis(self) -> List[str]:
        return self.orchestrator.get_failed_apis()

    def get_provider_info(self) -> List[Dict]:
        """Static configuration and status of every configured provider."""
        excluded = set(self.get_failed_apis())
        info = []
        for descriptor in self.orchestrator.descriptors:
            provider = self.orchestrator.providers[descriptor.name]
            info.append({
                **provider.get_provider_info(),
                "priority": descriptor.priority,
                "min_confidence": descriptor.min_confidence,
                "weight": descriptor.weight,
                "status": "excluded" if descriptor.name in excluded else "active",
                "retry_in_seconds": self.orchestrator.health.cooldown_remaining(descriptor.name),
            })
        return info

    async def close(self) -> None:
        """Release provider network resources."""
        for provider in self.orchestrator.providers.values():
            await provider.close()


# Singleton instance
_classification_service: Optional[WildlifeClassificationService] = None


def get_classification_service() -> WildlifeClassificationService:
    """Get or create the classification service singleton."""
    global _classification_service
    if _classification_service is None:
        _classification_service = WildlifeClassificationService.from_settings()
    return _classification_service
