"""
Concrete classification providers.

- GoogleVisionProvider: Google Cloud Vision label detection
- RekognitionProvider: AWS Rekognition label detection
- INaturalistProvider: iNaturalist taxa lookup
- LocalModelProvider: In-process transformers pipeline
"""

import logging
from typing import Dict, List, Sequence, Tuple, TYPE_CHECKING

from app.ml.failover.base import ClassificationProvider, ProviderDescriptor
from app.ml.failover.providers.google_vision import GoogleVisionProvider
from app.ml.failover.providers.rekognition import RekognitionProvider
from app.ml.failover.providers.inaturalist import INaturalistProvider
from app.ml.failover.providers.local_model import LocalModelProvider

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def build_providers(
    settings: "Settings",
    descriptors: Sequence[ProviderDescriptor],
) -> Tuple[List[ProviderDescriptor], Dict[str, ClassificationProvider]]:
    """
    Instantiate the providers named by the descriptors.

    Providers whose credentials are missing (or that are disabled) are
    skipped along with their descriptor.

    Returns:
        (active descriptors, provider instances keyed by name)
    """
    factories = {
        "google-vision": lambda: (
            GoogleVisionProvider(api_key=settings.google_vision_api_key)
            if settings.google_vision_api_key else None
        ),
        "aws-rekognition": lambda: (
            RekognitionProvider(
                access_key_id=settings.aws_access_key_id,
                secret_access_key=settings.aws_secret_access_key,
                region=settings.aws_region,
            )
            if settings.aws_configured else None
        ),
        "inaturalist": lambda: (
            INaturalistProvider(api_base=settings.inaturalist_api_base)
            if settings.enable_inaturalist else None
        ),
        "huggingface": lambda: (
            LocalModelProvider(model_id=settings.huggingface_model_id)
            if settings.enable_local_model else None
        ),
    }

    active: List[ProviderDescriptor] = []
    providers: Dict[str, ClassificationProvider] = {}

    for descriptor in descriptors:
        factory = factories.get(descriptor.name)
        if factory is None:
            logger.warning(f"No provider implementation for {descriptor.name}")
            continue

        provider = factory()
        if provider is None:
            logger.info(f"Provider {descriptor.name} not configured; skipping")
            continue

        active.append(descriptor)
        providers[descriptor.name] = provider
        logger.info(f"Provider {descriptor.name} initialized (priority {descriptor.priority})")

    return active, providers


__all__ = [
    "GoogleVisionProvider",
    "RekognitionProvider",
    "INaturalistProvider",
    "LocalModelProvider",
    "build_providers",
]
