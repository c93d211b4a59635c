"""
Base interfaces and data structures for multi-provider wildlife classification.

Provides:
- ClassificationProvider: Abstract base for all classification providers
- ProviderDescriptor: Static per-provider configuration
- ClassificationOutcome: Normalized result of a single provider call
- FinalClassification: The value returned to callers
- Error taxonomy shared by providers, orchestrator and API
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List


UNIDENTIFIED_LABEL = "unidentified"
ENSEMBLE_SOURCE = "ensemble"
FALLBACK_SOURCE = "emergency-fallback"

# Ranks exposed in the taxonomy payload, in hierarchy order
TAXONOMY_RANKS = ("kingdom", "phylum", "class", "order", "family", "genus", "species")


class WildlifeClassificationError(Exception):
    """Base class for classification errors."""


class ProviderError(WildlifeClassificationError):
    """
    Transient failure of a single provider.

    Covers network, auth, quota and timeout failures. Always recovered
    by the orchestrator and never surfaced to callers.
    """

    def __init__(self, provider_name: str, message: str):
        super().__init__(f"{provider_name}: {message}")
        self.provider_name = provider_name
        self.message = message


class ConfigurationError(WildlifeClassificationError):
    """Invalid provider configuration detected at construction time."""


class InvalidInputError(WildlifeClassificationError):
    """Input is not an acceptable image; raised before any provider is called."""


@dataclass(frozen=True)
class ImagePayload:
    """Opaque image handed to every provider."""
    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Static configuration for one provider.

    Attributes:
        name: Unique provider identifier
        priority: Lower values are tried first
        min_confidence: Threshold in [0, 1] that short-circuits the failover loop
        weight: Relative trust, used only during ensemble voting
    """
    name: str
    priority: int
    min_confidence: float
    weight: float


@dataclass(frozen=True)
class ClassificationOutcome:
    """
    Normalized result of one provider call.

    `metadata` carries the provider's taxonomy payload (if any) and is
    copied verbatim into the final result.
    """
    label: str
    confidence: float
    source: str
    scientific_name: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class FinalClassification:
    """
    Classification returned to callers.

    `confidence` is always within [0, 1] and `label` is never empty.
    `source` names the provider that produced the result, or one of the
    "ensemble" / "emergency-fallback" tags.
    """
    label: str
    confidence: float
    source: str
    scientific_name: Optional[str] = None
    taxonomy: Optional[Dict[str, str]] = None
    attempted_providers: List[str] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.source == FALLBACK_SOURCE

    @property
    def is_ensemble(self) -> bool:
        return self.source == ENSEMBLE_SOURCE


class ClassificationProvider(ABC):
    """
    Abstract base class for classification providers.

    Each concrete provider translates its vendor wire format into a
    ClassificationOutcome. Providers must raise ProviderError on any
    failure and have no side effects beyond the call itself.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier; must match its ProviderDescriptor name."""
        pass

    @abstractmethod
    async def classify(self, image: ImagePayload) -> ClassificationOutcome:
        """
        Classify an image.

        Args:
            image: Image payload to classify

        Returns:
            ClassificationOutcome with label and confidence

        Raises:
            ProviderError: On network, auth, quota or vendor failure
        """
        pass

    async def close(self) -> None:
        """Release any network resources held by the provider."""
        return None

    def get_provider_info(self) -> Dict[str, Any]:
        """Get provider metadata for API responses."""
        return {"name": self.name, "type": type(self).__name__}
