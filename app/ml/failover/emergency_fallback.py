"""
Emergency Fallback

Deterministic, offline last-resort classifier used when no provider
produced an outcome. Guesses from the uploaded filename and always
succeeds with a low confidence under the "emergency-fallback" source.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from app.ml.failover.base import ClassificationOutcome, ImagePayload, FALLBACK_SOURCE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackPattern:
    """Filename keyword and the guess it produces."""
    pattern: str
    label: str
    scientific_name: str


class EmergencyFallback:
    """
    Filename keyword matcher.

    Confidence is fixed: MATCH_CONFIDENCE when a keyword is found in the
    filename, UNKNOWN_CONFIDENCE otherwise.
    """

    MATCH_CONFIDENCE = 0.65
    UNKNOWN_CONFIDENCE = 0.45
    UNKNOWN_LABEL = "Unknown Wildlife"
    UNKNOWN_SCIENTIFIC_NAME = "Species identification uncertain"

    PATTERNS: Tuple[FallbackPattern, ...] = (
        FallbackPattern("tiger", "Tiger", "Panthera tigris"),
        FallbackPattern("lion", "Lion", "Panthera leo"),
        FallbackPattern("elephant", "Elephant", "Loxodonta africana"),
        FallbackPattern("bear", "Bear", "Ursus americanus"),
        FallbackPattern("wolf", "Wolf", "Canis lupus"),
        FallbackPattern("eagle", "Eagle", "Haliaeetus leucocephalus"),
        FallbackPattern("deer", "Deer", "Odocoileus virginianus"),
        FallbackPattern("fox", "Fox", "Vulpes vulpes"),
    )

    def classify(self, image: ImagePayload) -> ClassificationOutcome:
        """Produce a placeholder outcome; never raises."""
        filename = (image.filename or "").lower()

        match = self._match(filename)
        if match is not None:
            logger.warning(f"Emergency fallback matched '{match.pattern}' in filename")
            return ClassificationOutcome(
                label=match.label,
                confidence=self.MATCH_CONFIDENCE,
                source=FALLBACK_SOURCE,
                scientific_name=match.scientific_name,
            )

        logger.warning("Emergency fallback could not infer species from filename")
        return ClassificationOutcome(
            label=self.UNKNOWN_LABEL,
            confidence=self.UNKNOWN_CONFIDENCE,
            source=FALLBACK_SOURCE,
            scientific_name=self.UNKNOWN_SCIENTIFIC_NAME,
        )

    def _match(self, filename: str) -> Optional[FallbackPattern]:
        if not filename:
            return None
        for candidate in self.PATTERNS:
            if candidate.pattern in filename:
                return candidate
        return None
