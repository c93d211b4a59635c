"""
iNaturalist provider (taxonomy-lookup-style).

iNaturalist has no public image classification endpoint, so this
provider derives search keywords from the upload's filename, looks the
keywords up in the taxa search API and builds the taxonomy from the
best taxon's ancestry.

Reference: https://api.inaturalist.org/v1/docs/
"""

import logging
from typing import Optional, List, Dict, Any

import httpx

from app.ml.failover.base import (
    ClassificationOutcome,
    ClassificationProvider,
    ImagePayload,
    ProviderError,
    TAXONOMY_RANKS,
)

logger = logging.getLogger(__name__)


class INaturalistProvider(ClassificationProvider):
    """Species lookup against the iNaturalist taxa API."""

    DEFAULT_API_BASE = "https://api.inaturalist.org/v1"

    ANIMAL_KEYWORDS = (
        "tiger", "lion", "elephant", "bear", "wolf", "deer", "eagle", "owl",
        "snake", "crocodile", "turtle", "butterfly", "bee", "leopard", "cheetah",
        "giraffe", "zebra", "rhinoceros", "panda", "penguin", "fox", "bird",
        "mammal", "reptile", "amphibian", "insect", "wildlife",
    )
    GENERIC_KEYWORDS = ("wildlife", "animal")

    BASE_CONFIDENCE = 0.7
    KEYWORD_BONUS = 0.1
    MIN_CONFIDENCE = 0.5
    MAX_CONFIDENCE = 0.95

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        client: Optional[httpx.AsyncClient] = None,
        provider_name: str = "inaturalist",
    ):
        self.api_base = api_base.rstrip("/")
        self._client = client
        self._owns_client = client is None
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

    def extract_keywords(self, filename: Optional[str]) -> List[str]:
        """Animal keywords found in the filename, or generic wildlife terms."""
        lowered = (filename or "").lower()
        found = [keyword for keyword in self.ANIMAL_KEYWORDS if keyword in lowered]
        return found or list(self.GENERIC_KEYWORDS)

    def score(self, keywords: List[str], taxon: Dict[str, Any]) -> float:
        """Deterministic confidence from keyword agreement with the taxon name."""
        taxon_name = (taxon.get("preferred_common_name") or taxon.get("name") or "").lower()
        matching = [
            keyword for keyword in keywords
            if taxon_name and (keyword in taxon_name or taxon_name in keyword)
        ]
        confidence = self.BASE_CONFIDENCE + len(matching) * self.KEYWORD_BONUS
        return min(max(confidence, self.MIN_CONFIDENCE), self.MAX_CONFIDENCE)

    async def classify(self, image: ImagePayload) -> ClassificationOutcome:
        keywords = self.extract_keywords(image.filename)
        taxa = await self._search_species(keywords)
        if not taxa:
            raise ProviderError(self.name, "No species found matching image analysis")

        best = taxa[0]
        confidence = self.score(keywords, best)
        taxonomy = await self._get_taxonomy(best)

        metadata: Dict[str, Any] = {"taxon_id": best.get("id"), "keywords": keywords}
        if taxonomy:
            metadata["taxonomy"] = taxonomy

        label = best.get("preferred_common_name") or best.get("name") or ""
        logger.debug(f"iNaturalist matched {label} for keywords {keywords}")

        return ClassificationOutcome(
            label=label,
            confidence=confidence,
            source=self.name,
            scientific_name=best.get("name"),
            metadata=metadata,
        )

    async def _search_species(self, keywords: List[str]) -> List[Dict[str, Any]]:
        try:
            response = await self.client.get(
                f"{self.api_base}/taxa",
                params={
                    "q": " ".join(keywords),
                    "rank": "species",
                    "is_active": "true",
                    "per_page": 10,
                },
            )
            response.raise_for_status()
            return response.json().get("results") or []
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.name, f"iNaturalist API error: {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(self.name, f"iNaturalist search failed: {e}")

    async def _get_taxonomy(self, taxon: Dict[str, Any]) -> Optional[Dict[str, str]]:
        """Build a rank -> name mapping from the taxon's ancestors."""
        taxon_id = taxon.get("id")
        if taxon_id is None:
            return None

        try:
            response = await self.client.get(f"{self.api_base}/taxa/{taxon_id}")
            response.raise_for_status()
            results = response.json().get("results") or []
        except (httpx.HTTPError, ValueError) as e:
            # Taxonomy is optional; the species guess itself is still valid
            logger.warning(f"iNaturalist taxonomy lookup failed for {taxon_id}: {e}")
            return None

        if not results or not results[0].get("ancestors"):
            return None

        ranks = {
            ancestor["rank"]: ancestor["name"]
            for ancestor in results[0]["ancestors"]
            if ancestor.get("rank") and ancestor.get("name")
        }
        ranks["species"] = results[0].get("name") or taxon.get("name")
        return {rank: ranks[rank] for rank in TAXONOMY_RANKS if ranks.get(rank)}
