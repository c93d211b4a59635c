"""
Google Cloud Vision provider (vision-API-style).

Sends the image to the `images:annotate` REST endpoint with label
detection and object localization, then maps wildlife labels onto the
local taxonomy table.

Reference: https://cloud.google.com/vision/docs/reference/rest/v1/images/annotate
"""

import base64
import logging
from typing import Optional, List, Tuple

import httpx

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ImagePayload,
    ProviderError,
)
from app.ml.failover.providers.common import best_wildlife_match, wildlife_candidates
from app.ml.failover.taxonomy import WildlifeTaxonomyResolver, get_wildlife_taxonomy_resolver

logger = logging.getLogger(__name__)


class GoogleVisionProvider(ClassificationProvider):
    """Label detection through the Google Cloud Vision REST API."""

    API_URL = "https://vision.googleapis.com/v1/images:annotate"
    UNCERTAIN_LABEL = "Species uncertain"
    UNCERTAIN_CONFIDENCE = 0.35

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        resolver: Optional[WildlifeTaxonomyResolver] = None,
        provider_name: str = "google-vision",
    ):
        """
        Initialize provider.

        Args:
            api_key: Google Cloud API key
            client: Shared HTTP client (one is created if omitted)
            resolver: Wildlife taxonomy table
            provider_name: Name matching the provider descriptor
        """
        self.api_key = api_key
        self._client = client
        self._owns_client = client is None
        self.resolver = resolver or get_wildlife_taxonomy_resolver()
        self._name = provider_name

    @property
    def name(self) -> str:
        return self._name

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def classify(self, image: ImagePayload) -> ClassificationOutcome:
        if not self.api_key:
            raise ProviderError(self.name, "Google Vision API key not configured")

        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image.data).decode("ascii")},
                    "features": [
                        {"type": "LABEL_DETECTION", "maxResults": 20},
                        {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
                    ],
                }
            ]
        }

        try:
            response = await self.client.post(
                self.API_URL,
                params={"key": self.api_key},
                json=body,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.name, f"Google Vision API error: {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(self.name, f"Google Vision request failed: {e}")

        annotations = (data.get("responses") or [{}])[0]
        if "error" in annotations:
            message = annotations["error"].get("message", "unknown error")
            raise ProviderError(self.name, f"Google Vision API error: {message}")

        labels = self._extract_labels(annotations)
        if not labels:
            raise ProviderError(self.name, "No animals detected in image")

        candidates = wildlife_candidates(labels)
        match = best_wildlife_match(self.name, candidates, self.resolver)
        if match is not None:
            return match

        suggestions = ", ".join(c.label for c in candidates[:3])
        logger.debug(f"No confident wildlife match; suggestions: {suggestions or 'none'}")
        return ClassificationOutcome(
            label=self.UNCERTAIN_LABEL,
            confidence=self.UNCERTAIN_CONFIDENCE,
            source=self.name,
            scientific_name=(
                f"Possible: {suggestions}" if suggestions
                else "Unable to identify with confidence"
            ),
        )

    @staticmethod
    def _extract_labels(annotations: dict) -> List[Tuple[str, float]]:
        labels = [
            (item.get("description", ""), float(item.get("score", 0.0)))
            for item in annotations.get("labelAnnotations") or []
        ]
        labels.extend(
            (item.get("name", ""), float(item.get("score", 0.0)))
            for item in annotations.get("localizedObjectAnnotations") or []
        )
        return labels
