"""Quality comparator — ranks and diffs assessments of candidate responses.

Two independent rules live here and they are deliberately NOT unified:

  compare(a, b)         seven-bucket step function on a.overall - b.overall
  is_better_than(a, b)  weighted composite of overall, factual accuracy,
                        calibrated confidence and certainty

They can disagree: a response with a slightly higher overall score but
much worse factual accuracy compares "equivalent" (or even "better")
while losing is_better_than. Callers pick the rule that matches the
question they are asking; rank() and best() use the composite.
"""

from __future__ import annotations

import logging
from typing import Sequence

from aegis.models.quality import QualityAssessment, QualityComparison
from aegis.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


class QualityComparator:
    """Compares QualityAssessments using policy thresholds and weights."""

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver

    # ------------------------------------------------------------------
    # Step-function comparison
    # ------------------------------------------------------------------

    def compare(self, a: QualityAssessment, b: QualityAssessment) -> QualityComparison:
        """Bucket the overall-score difference a - b.

        Positive side:  >= significant, >= moderate, >= slight
        Negative side:  <= -significant, <= -moderate, <= -slight
        Everything strictly inside (-slight, slight) is EQUIVALENT, so
        compare(b, a) is always compare(a, b).inverse().

        The difference is taken in plain float arithmetic with no rounding,
        so a nominal boundary pair can land one bucket inward: 0.95 - 0.65
        evaluates to 0.29999999999999993 and compares MODERATELY_BETTER.
        """
        significant, moderate, slight = self._resolver.comparison_thresholds()
        diff = a.overall_score - b.overall_score

        if diff >= significant:
            return QualityComparison.SIGNIFICANTLY_BETTER
        if diff >= moderate:
            return QualityComparison.MODERATELY_BETTER
        if diff >= slight:
            return QualityComparison.SLIGHTLY_BETTER
        if diff <= -significant:
            return QualityComparison.SIGNIFICANTLY_WORSE
        if diff <= -moderate:
            return QualityComparison.MODERATELY_WORSE
        if diff <= -slight:
            return QualityComparison.SLIGHTLY_WORSE
        return QualityComparison.EQUIVALENT

    # ------------------------------------------------------------------
    # Composite rule
    # ------------------------------------------------------------------

    def composite_score(self, assessment: QualityAssessment) -> float:
        """w_o*overall + w_f*factual + w_c*calibrated + w_u*(1 - uncertainty)."""
        w_o, w_f, w_c, w_u = self._resolver.composite_weights()
        return (
            assessment.overall_score * w_o
            + assessment.factual_accuracy * w_f
            + assessment.calibrated_confidence * w_c
            + (1.0 - assessment.uncertainty_score) * w_u
        )

    def is_better_than(self, a: QualityAssessment, b: QualityAssessment) -> bool:
        """Strictly greater composite. Irreflexive."""
        return self.composite_score(a) > self.composite_score(b)

    # ------------------------------------------------------------------
    # Ensemble helpers
    # ------------------------------------------------------------------

    def rank(self, candidates: Sequence[QualityAssessment]) -> list[QualityAssessment]:
        """Candidates ordered by composite score, best first.

        Stable: candidates with equal composites keep their input order.
        """
        return sorted(candidates, key=self.composite_score, reverse=True)

    def best(self, candidates: Sequence[QualityAssessment]) -> QualityAssessment:
        """The top-ranked candidate.

        Raises:
            ValueError: If there are no candidates.
        """
        if not candidates:
            raise ValueError("Cannot select best response from zero candidates")
        ranked = self.rank(candidates)
        logger.debug(
            "Selected best of %d candidates (composite %.3f)",
            len(candidates), self.composite_score(ranked[0]),
        )
        return ranked[0]
