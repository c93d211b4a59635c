"""
Helpers shared by the label-detection providers.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from app.ml.failover.base import ClassificationOutcome
from app.ml.failover.taxonomy import WildlifeTaxonomyResolver, is_wildlife_label


# Minimum label score for a taxonomy-table match to be trusted
TAXONOMY_MATCH_MIN_SCORE = 0.6
# Minimum score for an unmatched label to be reported as unverified
UNVERIFIED_MIN_SCORE = 0.5


@dataclass(frozen=True)
class LabelCandidate:
    """A vendor label with its score in [0, 1]."""
    label: str
    score: float


def wildlife_candidates(labels: List[Tuple[str, float]]) -> List[LabelCandidate]:
    """Keep wildlife labels only, lowercased and sorted by descending score."""
    candidates = [
        LabelCandidate(label=label.lower(), score=score)
        for label, score in labels
        if label and is_wildlife_label(label)
    ]
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def best_wildlife_match(
    provider_name: str,
    candidates: List[LabelCandidate],
    resolver: WildlifeTaxonomyResolver,
) -> Optional[ClassificationOutcome]:
    """
    Pick the best wildlife label.

    Prefers the highest-scoring label found in the taxonomy table;
    otherwise reports the top label as unverified if it scores well
    enough. Returns None when nothing qualifies.
    """
    if not candidates:
        return None

    for candidate in candidates:
        entry = resolver.resolve(candidate.label)
        if entry is not None and candidate.score >= TAXONOMY_MATCH_MIN_SCORE:
            return ClassificationOutcome(
                label=entry.common_name,
                confidence=candidate.score,
                source=provider_name,
                scientific_name=entry.scientific_name,
                metadata={"taxonomy": entry.taxonomy(), "raw_label": candidate.label},
            )

    best = candidates[0]
    if best.score >= UNVERIFIED_MIN_SCORE:
        return ClassificationOutcome(
            label=best.label.capitalize(),
            confidence=best.score,
            source=provider_name,
            scientific_name=f"Unverified {best.label}",
            metadata={"raw_label": best.label},
        )

    return None
