"""
Local neural-network provider (local-inference-style).

Runs a HuggingFace image-classification pipeline in-process.

Model: google/vit-base-patch16-224 (ImageNet-1k, includes common wildlife classes)
Reference: https://huggingface.co/google/vit-base-patch16-224
"""

import asyncio
import io
import logging
from typing import Optional, Callable, Any

from PIL import Image

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ImagePayload,
    ProviderError,
)
from app.ml.failover.taxonomy import WildlifeTaxonomyResolver, get_wildlife_taxonomy_resolver

logger = logging.getLogger(__name__)


class LocalModelProvider(ClassificationProvider):
    """In-process image classification with a transformers pipeline."""

    DEFAULT_MODEL_ID = "google/vit-base-patch16-224"
    MIN_RECOGNIZED_SCORE = 0.3
    NOT_RECOGNIZED_LABEL = "Animal not recognized"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL_ID,
        pipeline: Optional[Callable[..., Any]] = None,
        resolver: Optional[WildlifeTaxonomyResolver] = None,
        provider_name: str = "huggingface",
    ):
        """
        Initialize provider.

        Args:
            model_id: HuggingFace model identifier
            pipeline: Pre-built classification pipeline (loaded lazily if omitted)
            resolver: Wildlife taxonomy table
            provider_name: Name matching the provider descriptor
        """
        self.model_id = model_id
        self._pipeline = pipeline
        self.resolver = resolver or get_wildlife_taxonomy_resolver()
        self._name = provider_name
        self.load_error: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_loaded(self) -> bool:
        return self._pipeline is not None

    def _load_model(self):
        """Lazy load the model pipeline."""
        if self._pipeline is None:
            try:
                from transformers import pipeline
                logger.info(f"Loading local model: {self.model_id}")
                self._pipeline = pipeline(
                    "image-classification",
                    model=self.model_id,
                    device=-1  # CPU
                )
                logger.info("Local model loaded successfully")
            except ImportError as e:
                self.load_error = str(e)
                raise ProviderError(self.name, f"transformers library not installed: {e}")
            except Exception as e:
                self.load_error = str(e)
                logger.error(f"Failed to load local model {self.model_id}: {e}")
                raise ProviderError(self.name, f"Failed to load model: {e}")
        return self._pipeline

    async def classify(self, image: ImagePayload) -> ClassificationOutcome:
        pipe = self._load_model()

        try:
            pil_image = Image.open(io.BytesIO(image.data)).convert("RGB")
        except OSError as e:
            raise ProviderError(self.name, f"Could not decode image: {e}")

        # Run prediction in thread pool to not block
        loop = asyncio.get_running_loop()
        try:
            results = await loop.run_in_executor(None, lambda: pipe(pil_image, top_k=3))
        except Exception as e:
            logger.error(f"Local model prediction error: {e}")
            raise ProviderError(self.name, f"Inference failed: {e}")

        if not results:
            raise ProviderError(self.name, "No predictions returned")

        top = results[0]
        raw_label = top["label"]
        score = float(top["score"])

        if score < self.MIN_RECOGNIZED_SCORE:
            return ClassificationOutcome(
                label=self.NOT_RECOGNIZED_LABEL,
                confidence=score,
                source=self.name,
                metadata={"raw_label": raw_label},
            )

        # ImageNet labels look like "tiger, Panthera tigris"
        label = raw_label.split(",")[0].strip()
        metadata = {
            "raw_label": raw_label,
            "top_3": [{"label": r["label"], "confidence": r["score"]} for r in results[:3]],
        }

        entry = self.resolver.resolve(label)
        scientific_name = None
        if entry is not None:
            scientific_name = entry.scientific_name
            metadata["taxonomy"] = entry.taxonomy()

        return ClassificationOutcome(
            label=label,
            confidence=score,
            source=self.name,
            scientific_name=scientific_name,
            metadata=metadata,
        )

    def get_provider_info(self):
        info = super().get_provider_info()
        info.update({
            "model_id": self.model_id,
            "is_loaded": self.is_loaded,
            "load_error": self.load_error,
        })
        return info
