"""
Ensemble Scorer

Combines disagreeing-but-related provider outcomes into one decision.

Algorithm:
1. Normalize each label and attach it to the first existing group whose
   key is similar, otherwise open a new group keyed by that label
2. Score each group as sum(confidence * provider weight)
3. Pick the highest-scoring group (ties go to the group seen first)
4. Use the member with the highest raw confidence as representative
5. Report min(mean confidence * 1.1, 0.95) under the "ensemble" source
"""

import logging
from dataclasses import dataclass, field, replace
from statistics import mean
from typing import Dict, List, Optional

from app.ml.failover.base import ClassificationOutcome, ENSEMBLE_SOURCE
from app.ml.failover.label_normalizer import LabelNormalizer

logger = logging.getLogger(__name__)


@dataclass
class LabelGroup:
    """Outcomes judged to name the same species, with their weighted score."""
    key: str
    members: List[ClassificationOutcome] = field(default_factory=list)
    weighted_score: float = 0.0

    @property
    def confidences(self) -> List[float]:
        return [m.confidence for m in self.members]

    @property
    def representative(self) -> ClassificationOutcome:
        """Member with the single highest raw confidence (first wins ties)."""
        best = self.members[0]
        for member in self.members[1:]:
            if member.confidence > best.confidence:
                best = member
        return best


class EnsembleScorer:
    """
    Weighted voting across provider outcomes.

    Features:
    - Fuzzy label grouping via LabelNormalizer
    - Per-provider trust weights
    - Fixed consensus bonus with a hard cap below single-provider certainty
    """

    CONSENSUS_BONUS = 1.1
    MAX_ENSEMBLE_CONFIDENCE = 0.95
    # Weight applied to outcomes from providers missing in the weight table
    DEFAULT_WEIGHT = 0.1

    def __init__(
        self,
        provider_weights: Dict[str, float],
        normalizer: Optional[LabelNormalizer] = None,
    ):
        """
        Initialize ensemble scorer.

        Args:
            provider_weights: Provider name to ensemble weight
            normalizer: Label normalizer used for grouping
        """
        self.provider_weights = dict(provider_weights)
        self.normalizer = normalizer or LabelNormalizer()

    def weight_for(self, provider_name: str) -> float:
        return self.provider_weights.get(provider_name, self.DEFAULT_WEIGHT)

    def group(self, outcomes: List[ClassificationOutcome]) -> List[LabelGroup]:
        """Cluster outcomes into label groups, preserving first-seen order."""
        groups: List[LabelGroup] = []

        for outcome in outcomes:
            normalized = self.normalizer.normalize(outcome.label)

            target = None
            for existing in groups:
                if self.normalizer.are_similar(normalized, existing.key):
                    target = existing
                    break

            if target is None:
                target = LabelGroup(key=normalized)
                groups.append(target)

            target.members.append(outcome)
            target.weighted_score += outcome.confidence * self.weight_for(outcome.source)

        return groups

    def select_group(self, groups: List[LabelGroup]) -> Optional[LabelGroup]:
        """Highest weighted score wins; a group must score above zero to qualify."""
        winner: Optional[LabelGroup] = None
        for candidate in groups:
            if candidate.weighted_score <= 0:
                continue
            if winner is None or candidate.weighted_score > winner.weighted_score:
                winner = candidate
        return winner

    def combine(self, outcomes: List[ClassificationOutcome]) -> Optional[ClassificationOutcome]:
        """
        Compute the ensemble outcome.

        Args:
            outcomes: Outcomes collected during the failover pass

        Returns:
            Ensemble outcome tagged with the "ensemble" source, or None if
            no group qualifies
        """
        if not outcomes:
            raise ValueError("Ensemble scoring requires at least one outcome")

        logger.info(f"Computing ensemble result from {len(outcomes)} providers")

        groups = self.group(outcomes)
        winner = self.select_group(groups)
        if winner is None:
            logger.warning("No label group qualified for ensemble selection")
            return None

        representative = winner.representative
        confidence = min(
            mean(winner.confidences) * self.CONSENSUS_BONUS,
            self.MAX_ENSEMBLE_CONFIDENCE,
        )

        logger.info(
            f"Ensemble result: {representative.label} ({confidence:.1%}) "
            f"from {len(winner.members)}/{len(outcomes)} outcomes, "
            f"score {winner.weighted_score:.3f}"
        )

        return replace(representative, confidence=confidence, source=ENSEMBLE_SOURCE)
