"""Quality assessment engine — builds assessments from raw sub-scores.

Pure computation. No side effects, no persistence, no audit events.
The service layer handles all of that — this engine only computes.

Design: stateless methods, PolicyResolver for every threshold and message.

Assessment construction:
  - every numeric input is clamped to [0, 1], never rejected
  - uncertainty_score, when not supplied, is the largest weighted
    severity among the uncertainty factors (0.0 with none)

Improvement suggestions:
  one fixed message per dimension below the threshold, in the order
  content → factual → relevance → coherence → completeness → clarity,
  then one message if any uncertainty is critical.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from aegis.models.quality import (
    QualityAssessment,
    QualityTier,
    UncertaintyFactor,
    ValidationLevel,
)
from aegis.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


_DIMENSION_ORDER = (
    "content_quality",
    "factual_accuracy",
    "relevance",
    "coherence",
    "completeness",
    "clarity",
)


class QualityEngine:
    """Builds and interprets QualityAssessments.

    Usage:
        engine = QualityEngine(resolver)
        assessment = engine.assess(
            overall_score=0.85, content_quality=0.9, factual_accuracy=0.82,
            relevance=0.9, coherence=0.88, completeness=0.8, clarity=0.9,
            raw_confidence=0.8, calibrated_confidence=0.78,
        )
        suggestions = engine.improvement_suggestions(assessment)
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver

    # ------------------------------------------------------------------
    # Public: construction
    # ------------------------------------------------------------------

    def assess(
        self,
        overall_score: float,
        content_quality: float,
        factual_accuracy: float,
        relevance: float,
        coherence: float,
        completeness: float,
        clarity: float,
        raw_confidence: float,
        calibrated_confidence: float,
        consensus_score: Optional[float] = None,
        uncertainty_factors: Iterable[UncertaintyFactor] = (),
        uncertainty_score: Optional[float] = None,
        model_contributions: Sequence[str] = (),
        processing_time: float = 0.0,
        validation_level: ValidationLevel = ValidationLevel.STANDARD,
        assessment_utc: Optional[datetime] = None,
    ) -> QualityAssessment:
        """Build an assessment from externally supplied scores.

        Args:
            uncertainty_score: Explicit overall uncertainty. If None it is
                derived from uncertainty_factors.
            assessment_utc: Optional timestamp override for testing.

        Returns:
            QualityAssessment with every score clamped to [0, 1].
        """
        factors = tuple(uncertainty_factors)
        if uncertainty_score is None:
            uncertainty_score = self.derive_uncertainty_score(factors)

        kwargs: dict[str, datetime] = {}
        if assessment_utc is not None:
            kwargs["assessment_utc"] = assessment_utc

        assessment = QualityAssessment(
            overall_score=overall_score,
            content_quality=content_quality,
            factual_accuracy=factual_accuracy,
            relevance=relevance,
            coherence=coherence,
            completeness=completeness,
            clarity=clarity,
            raw_confidence=raw_confidence,
            calibrated_confidence=calibrated_confidence,
            consensus_score=consensus_score,
            uncertainty_factors=factors,
            uncertainty_score=uncertainty_score,
            validation_level=validation_level,
            model_contributions=tuple(model_contributions),
            processing_time=processing_time,
            **kwargs,
        )
        logger.debug("Assessed response: %s", assessment.quality_summary)
        return assessment

    @staticmethod
    def derive_uncertainty_score(factors: Sequence[UncertaintyFactor]) -> float:
        """Largest weighted severity among the factors, 0.0 with none."""
        if not factors:
            return 0.0
        return max(f.weighted_severity for f in factors)

    # ------------------------------------------------------------------
    # Public: interpretation
    # ------------------------------------------------------------------

    def improvement_suggestions(self, assessment: QualityAssessment) -> list[str]:
        """Fixed-order suggestions for every weak dimension."""
        threshold = self._resolver.suggestion_threshold()
        messages = self._resolver.suggestion_messages()

        suggestions: list[str] = []
        for dimension in _DIMENSION_ORDER:
            if getattr(assessment, dimension) < threshold:
                suggestions.append(messages[dimension])

        if assessment.has_critical_uncertainties:
            suggestions.append(messages["critical_uncertainty"])

        return suggestions

    @staticmethod
    def meets_validation_level(assessment: QualityAssessment) -> bool:
        """Calibrated confidence reaches the minimum for its validation level."""
        threshold = assessment.validation_level.minimum_confidence_threshold
        return assessment.calibrated_confidence >= threshold

    # ------------------------------------------------------------------
    # Public: collection analytics
    # ------------------------------------------------------------------

    @staticmethod
    def average_quality_score(assessments: Sequence[QualityAssessment]) -> float:
        if not assessments:
            return 0.0
        return sum(a.overall_score for a in assessments) / len(assessments)

    @staticmethod
    def quality_distribution(
        assessments: Iterable[QualityAssessment],
    ) -> dict[QualityTier, int]:
        """Count of assessments per tier; tiers with none are omitted."""
        distribution: dict[QualityTier, int] = {}
        for a in assessments:
            tier = a.quality_tier
            distribution[tier] = distribution.get(tier, 0) + 1
        return distribution

    @staticmethod
    def filter_by_tier(
        assessments: Iterable[QualityAssessment], tier: QualityTier,
    ) -> list[QualityAssessment]:
        return [a for a in assessments if a.quality_tier == tier]

    @staticmethod
    def high_quality(
        assessments: Iterable[QualityAssessment],
    ) -> list[QualityAssessment]:
        return [a for a in assessments if a.display_quality.is_high_quality]

    @staticmethod
    def needing_attention(
        assessments: Iterable[QualityAssessment],
    ) -> list[QualityAssessment]:
        return [
            a for a in assessments
            if a.has_critical_uncertainties or a.quality_tier == QualityTier.POOR
        ]
