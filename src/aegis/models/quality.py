"""Response quality models — the assessment attached to every generated answer.

A QualityAssessment is built once per generated response (or once per
ensemble round) and never mutated afterwards. All numeric inputs are
clamped into [0, 1] on construction; nothing in this module raises for an
out-of-range score.

Invariant: "meets professional standards" iff
    overall >= 0.8 AND factual >= 0.8 AND uncertainty <= 0.3
    AND no uncertainty factor is critical.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from aegis.models.score import ScoreValue, clamp, optional_score


# ---------------------------------------------------------------------------
# Uncertainty catalog
# ---------------------------------------------------------------------------

class UncertaintyType(str, enum.Enum):
    """Kinds of reasons to distrust part of a response.

    The severity weight of each kind is fixed; a contradiction is worth
    three times a hedging phrase.
    """
    LINGUISTIC_MARKER = "linguistic_marker"
    CONTRADICTION = "contradiction"
    INSUFFICIENT_CONTEXT = "insufficient_context"
    FACTUAL_UNCERTAINTY = "factual_uncertainty"
    TEMPORAL_INCONSISTENCY = "temporal_inconsistency"
    SOURCE_RELIABILITY = "source_reliability"
    MODEL_LIMITATION = "model_limitation"
    CROSS_REFERENCE_FAILURE = "cross_reference_failure"

    @property
    def severity_weight(self) -> float:
        return UNCERTAINTY_SEVERITY_WEIGHTS[self.value]

    @property
    def display_name(self) -> str:
        return UNCERTAINTY_DISPLAY_NAMES[self.value]


UNCERTAINTY_SEVERITY_WEIGHTS: dict[str, float] = {
    "linguistic_marker": 0.3,
    "contradiction": 0.9,
    "insufficient_context": 0.6,
    "factual_uncertainty": 0.8,
    "temporal_inconsistency": 0.7,
    "source_reliability": 0.8,
    "model_limitation": 0.5,
    "cross_reference_failure": 0.7,
}

UNCERTAINTY_DISPLAY_NAMES: dict[str, str] = {
    "linguistic_marker": "Linguistic Uncertainty",
    "contradiction": "Internal Contradiction",
    "insufficient_context": "Insufficient Context",
    "factual_uncertainty": "Factual Uncertainty",
    "temporal_inconsistency": "Temporal Inconsistency",
    "source_reliability": "Source Reliability",
    "model_limitation": "Model Limitation",
    "cross_reference_failure": "Cross-Reference Failure",
}

CRITICAL_WEIGHTED_SEVERITY = 0.7


@dataclass(frozen=True)
class UncertaintyFactor:
    """A single detected uncertainty in a response.

    severity and confidence are clamped; location is a free-form pointer
    into the response (sentence index, quoted span) when the detector
    knows it.
    """
    kind: UncertaintyType
    description: str
    severity: float
    location: Optional[str] = None
    confidence: float = 0.8

    def __post_init__(self) -> None:
        object.__setattr__(self, "severity", ScoreValue(self.severity))
        object.__setattr__(self, "confidence", ScoreValue(self.confidence))

    @property
    def weighted_severity(self) -> float:
        return self.severity * self.kind.severity_weight

    @property
    def is_critical(self) -> bool:
        return self.weighted_severity > CRITICAL_WEIGHTED_SEVERITY


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class QualityTier(str, enum.Enum):
    """Display tier for an overall score. Bands partition [0, 1]."""
    POOR = "poor"
    ACCEPTABLE = "acceptable"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"

    @property
    def minimum_score(self) -> float:
        return _TIER_MINIMUMS[self.value]

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self.value)

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def color(self) -> str:
        return _TIER_COLORS[self.value]

    @classmethod
    def for_score(cls, score: float) -> QualityTier:
        """Highest tier whose minimum the clamped score reaches."""
        s = ScoreValue(score)
        for name in reversed(_TIER_ORDER):
            if s >= _TIER_MINIMUMS[name]:
                return cls(name)
        return cls.POOR


_TIER_ORDER = ("poor", "acceptable", "fair", "good", "excellent")
_TIER_MINIMUMS = {
    "poor": 0.0,
    "acceptable": 0.6,
    "fair": 0.7,
    "good": 0.8,
    "excellent": 0.9,
}
_TIER_COLORS = {
    "poor": "red",
    "acceptable": "yellow",
    "fair": "orange",
    "good": "blue",
    "excellent": "green",
}


class QualityComparison(str, enum.Enum):
    """Seven-bucket result of comparing two overall scores."""
    SIGNIFICANTLY_BETTER = "significantly_better"
    MODERATELY_BETTER = "moderately_better"
    SLIGHTLY_BETTER = "slightly_better"
    EQUIVALENT = "equivalent"
    SLIGHTLY_WORSE = "slightly_worse"
    MODERATELY_WORSE = "moderately_worse"
    SIGNIFICANTLY_WORSE = "significantly_worse"

    @property
    def score_delta(self) -> float:
        return _COMPARISON_DELTAS[self.value]

    @property
    def display_name(self) -> str:
        if self is QualityComparison.EQUIVALENT:
            return "Equivalent Quality"
        return self.value.replace("_", " ").title()

    def inverse(self) -> QualityComparison:
        """The bucket seen from the other side of the comparison."""
        return QualityComparison(_COMPARISON_INVERSE[self.value])


_COMPARISON_DELTAS = {
    "significantly_better": 0.3,
    "moderately_better": 0.2,
    "slightly_better": 0.1,
    "equivalent": 0.0,
    "slightly_worse": -0.1,
    "moderately_worse": -0.2,
    "significantly_worse": -0.3,
}
_COMPARISON_INVERSE = {
    "significantly_better": "significantly_worse",
    "moderately_better": "moderately_worse",
    "slightly_better": "slightly_worse",
    "equivalent": "equivalent",
    "slightly_worse": "slightly_better",
    "moderately_worse": "moderately_better",
    "significantly_worse": "significantly_better",
}


class ValidationLevel(str, enum.Enum):
    """How thoroughly a response was validated before assessment."""
    BASIC = "basic"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"
    RESEARCH_GRADE = "research_grade"

    @property
    def minimum_confidence_threshold(self) -> float:
        return {
            "basic": 0.5,
            "standard": 0.7,
            "comprehensive": 0.8,
            "research_grade": 0.9,
        }[self.value]

    @property
    def description(self) -> str:
        return {
            "basic": "Quick format and length checks",
            "standard": "Content quality and coherence validation",
            "comprehensive": "Full quality assessment with uncertainty detection",
            "research_grade": "Academic-level validation with fact-checking",
        }[self.value]


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DisplayQuality:
    """Badge-ready projection of an assessment for the UI."""
    tier: QualityTier
    score: float
    confidence: float
    uncertainty_count: int
    critical_issues: int

    @property
    def display_text(self) -> str:
        score_text = f"{self.score * 100:.0f}%"
        if self.critical_issues > 0:
            return f"{self.tier.display_name} {score_text} ({self.critical_issues} critical)"
        if self.uncertainty_count > 0:
            return (
                f"{self.tier.display_name} {score_text} "
                f"({self.uncertainty_count} uncertainties)"
            )
        return (
            f"{self.tier.display_name} {score_text} "
            f"(Confidence: {self.confidence * 100:.0f}%)"
        )

    @property
    def short_display_text(self) -> str:
        return f"{self.tier.display_name} {self.score * 100:.0f}%"

    @property
    def is_high_quality(self) -> bool:
        return self.tier in (QualityTier.EXCELLENT, QualityTier.GOOD)

    @property
    def needs_attention(self) -> bool:
        return self.critical_issues > 0 or self.tier == QualityTier.POOR


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------

_SCORE_FIELDS = (
    "overall_score",
    "content_quality",
    "factual_accuracy",
    "relevance",
    "coherence",
    "completeness",
    "clarity",
    "raw_confidence",
    "calibrated_confidence",
    "uncertainty_score",
)


@dataclass(frozen=True)
class QualityAssessment:
    """Multi-dimensional quality assessment of one generated response.

    The seven dimensions are supplied by the inference subsystem; this
    record only normalizes and derives from them. consensus_score is
    present only for ensemble rounds.
    """
    overall_score: float
    content_quality: float
    factual_accuracy: float
    relevance: float
    coherence: float
    completeness: float
    clarity: float
    raw_confidence: float
    calibrated_confidence: float
    consensus_score: Optional[float] = None
    uncertainty_factors: tuple[UncertaintyFactor, ...] = ()
    uncertainty_score: float = 0.0
    assessment_utc: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    validation_level: ValidationLevel = ValidationLevel.STANDARD
    model_contributions: tuple[str, ...] = ()
    processing_time: float = 0.0

    def __post_init__(self) -> None:
        for name in _SCORE_FIELDS:
            object.__setattr__(self, name, ScoreValue(getattr(self, name)))
        object.__setattr__(self, "consensus_score", optional_score(self.consensus_score))
        object.__setattr__(self, "uncertainty_factors", tuple(self.uncertainty_factors))
        # Ordered, de-duplicated model ids.
        object.__setattr__(
            self, "model_contributions",
            tuple(dict.fromkeys(self.model_contributions)),
        )
        object.__setattr__(
            self, "processing_time", clamp(self.processing_time, 0.0, float("inf")),
        )

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def has_critical_uncertainties(self) -> bool:
        return any(f.is_critical for f in self.uncertainty_factors)

    @property
    def critical_uncertainty_count(self) -> int:
        return sum(1 for f in self.uncertainty_factors if f.is_critical)

    @property
    def meets_professional_standards(self) -> bool:
        return (
            self.overall_score >= 0.8
            and self.factual_accuracy >= 0.8
            and self.uncertainty_score <= 0.3
            and not self.has_critical_uncertainties
        )

    @property
    def quality_tier(self) -> QualityTier:
        return QualityTier.for_score(self.overall_score)

    @property
    def display_quality(self) -> DisplayQuality:
        return DisplayQuality(
            tier=self.quality_tier,
            score=self.overall_score,
            confidence=self.calibrated_confidence,
            uncertainty_count=len(self.uncertainty_factors),
            critical_issues=self.critical_uncertainty_count,
        )

    @property
    def detailed_breakdown(self) -> dict[str, float]:
        return {
            "Overall Score": self.overall_score,
            "Content Quality": self.content_quality,
            "Factual Accuracy": self.factual_accuracy,
            "Relevance": self.relevance,
            "Coherence": self.coherence,
            "Completeness": self.completeness,
            "Clarity": self.clarity,
            "Calibrated Confidence": self.calibrated_confidence,
            "Uncertainty Score": self.uncertainty_score,
        }

    @property
    def quality_summary(self) -> str:
        """One-line summary for logs."""
        if self.uncertainty_factors:
            uncertainty_text = f"{len(self.uncertainty_factors)} uncertainties"
        else:
            uncertainty_text = "No uncertainties"
        parts = [
            f"Quality: {self.overall_score * 100:.1f}%",
            f"Confidence: {self.calibrated_confidence * 100:.1f}%",
            uncertainty_text,
        ]
        if self.consensus_score is not None:
            parts.append(f"Consensus: {self.consensus_score * 100:.1f}%")
        return " | ".join(parts)

    @property
    def analytics_data(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "overall_score": float(self.overall_score),
            "content_quality": float(self.content_quality),
            "factual_accuracy": float(self.factual_accuracy),
            "relevance": float(self.relevance),
            "coherence": float(self.coherence),
            "completeness": float(self.completeness),
            "clarity": float(self.clarity),
            "calibrated_confidence": float(self.calibrated_confidence),
            "uncertainty_score": float(self.uncertainty_score),
            "uncertainty_count": len(self.uncertainty_factors),
            "critical_uncertainties": self.critical_uncertainty_count,
            "quality_tier": self.quality_tier.value,
            "meets_professional_standards": self.meets_professional_standards,
            "validation_level": self.validation_level.value,
            "processing_time": self.processing_time,
            "model_count": len(self.model_contributions),
        }
        if self.consensus_score is not None:
            data["consensus_score"] = float(self.consensus_score)
        return data

    # ------------------------------------------------------------------
    # Builders (return new assessments)
    # ------------------------------------------------------------------

    def with_uncertainties(
        self,
        factors: Iterable[UncertaintyFactor],
        uncertainty_score: Optional[float] = None,
    ) -> QualityAssessment:
        """Return a copy with additional uncertainty factors appended."""
        combined = self.uncertainty_factors + tuple(factors)
        score = self.uncertainty_score if uncertainty_score is None else uncertainty_score
        return replace(self, uncertainty_factors=combined, uncertainty_score=score)

    def with_consensus(
        self, consensus_score: float, models: Sequence[str] = (),
    ) -> QualityAssessment:
        """Return a copy carrying an ensemble consensus score."""
        return replace(
            self,
            consensus_score=consensus_score,
            model_contributions=self.model_contributions + tuple(models),
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def basic(cls, overall_score: float, confidence: float) -> QualityAssessment:
        """Uniform assessment where every dimension equals the overall score."""
        return cls(
            overall_score=overall_score,
            content_quality=overall_score,
            factual_accuracy=overall_score,
            relevance=overall_score,
            coherence=overall_score,
            completeness=overall_score,
            clarity=overall_score,
            raw_confidence=confidence,
            calibrated_confidence=confidence,
            validation_level=ValidationLevel.BASIC,
        )

    @classmethod
    def placeholder(cls) -> QualityAssessment:
        return replace(
            cls.basic(0.7, 0.7), model_contributions=("Placeholder",),
        )

    @classmethod
    def excellent(
        cls, confidence: float = 0.95, models: Sequence[str] = (),
    ) -> QualityAssessment:
        return replace(
            cls.basic(0.95, confidence),
            validation_level=ValidationLevel.COMPREHENSIVE,
            model_contributions=tuple(models),
        )


# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResponseProvenance:
    """Where a response came from and which checks it went through."""
    primary_model: str
    ensemble_models: tuple[str, ...] = ()
    validation_engine: str = "DefaultValidator"
    generation_utc: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    validation_duration: float = 0.0
    quality_checks_passed: bool = False
    fact_checking_performed: bool = False
    confidence_calibrated: bool = False
    ensemble_strategy: Optional[str] = None
    consensus_score: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ensemble_models", tuple(self.ensemble_models))
        object.__setattr__(self, "consensus_score", optional_score(self.consensus_score))

    @property
    def indicates_high_quality(self) -> bool:
        return (
            self.quality_checks_passed
            and self.fact_checking_performed
            and self.confidence_calibrated
            and len(self.ensemble_models) > 1
        )

    @property
    def generation_summary(self) -> str:
        components: list[str] = []
        if len(self.ensemble_models) > 1:
            components.append(f"{len(self.ensemble_models)}-model ensemble")
        else:
            components.append(f"Single model ({self.primary_model})")
        if self.ensemble_strategy:
            components.append(self.ensemble_strategy)
        if self.quality_checks_passed:
            components.append("quality validated")
        if self.fact_checking_performed:
            components.append("fact-checked")
        return ", ".join(components)
