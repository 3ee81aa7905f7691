"""Compliance models — running privacy metrics and the reports built from them.

PrivacyMetrics is the only mutable record in Aegis. It is owned by the
ComplianceAggregator, which serializes every update; callers only ever see
frozen snapshots.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from aegis.models.privacy import (
    DataProcessingEntry,
    DataProcessingMode,
    EncryptionStatus,
    PrivacyAuditEntry,
    PrivacyLevel,
)
from aegis.models.score import clamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComplianceGrade(str, enum.Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @property
    def display_name(self) -> str:
        if self is ComplianceGrade.POOR:
            return "Needs Improvement"
        return self.value.capitalize()

    @classmethod
    def for_score(
        cls, score: float, bands: tuple[float, float, float],
    ) -> ComplianceGrade:
        """Classify a compliance score.

        bands is (excellent_min, good_min, fair_min), highest first.
        """
        excellent_min, good_min, fair_min = bands
        if score >= excellent_min:
            return cls.EXCELLENT
        if score >= good_min:
            return cls.GOOD
        if score >= fair_min:
            return cls.FAIR
        return cls.POOR


@dataclass
class PrivacyMetrics:
    """Running counters over every privacy operation seen this session.

    average_processing_time is a streaming mean, updated in place:
        avg' = (avg * (n - 1) + x) / n      (n after increment)
    It is never recomputed from history. Times are clamped to >= 0 first,
    NaN counting as 0.
    """
    total_processed: int = 0
    maximum_count: int = 0
    high_count: int = 0
    moderate_count: int = 0
    minimum_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    average_processing_time: float = 0.0
    last_updated: datetime = field(default_factory=_utcnow)

    def record_operation(
        self,
        privacy_level: PrivacyLevel,
        processing_time: float,
        success: bool,
    ) -> None:
        processing_time = clamp(processing_time, 0.0, float("inf"))
        self.total_processed += 1
        if privacy_level == PrivacyLevel.MAXIMUM:
            self.maximum_count += 1
        elif privacy_level == PrivacyLevel.HIGH:
            self.high_count += 1
        elif privacy_level == PrivacyLevel.MODERATE:
            self.moderate_count += 1
        else:
            self.minimum_count += 1

        if success:
            self.success_count += 1
        else:
            self.failure_count += 1

        n = self.total_processed
        self.average_processing_time = (
            self.average_processing_time * (n - 1) + processing_time
        ) / n
        self.last_updated = _utcnow()

    def count_for(self, level: PrivacyLevel) -> int:
        return {
            PrivacyLevel.MAXIMUM: self.maximum_count,
            PrivacyLevel.HIGH: self.high_count,
            PrivacyLevel.MODERATE: self.moderate_count,
            PrivacyLevel.MINIMUM: self.minimum_count,
        }[level]

    @property
    def privacy_distribution(self) -> dict[PrivacyLevel, float]:
        """Share of traffic per level; empty when nothing was processed."""
        total = self.total_processed
        if total <= 0:
            return {}
        return {level: self.count_for(level) / total for level in PrivacyLevel}

    @property
    def average_privacy_level(self) -> PrivacyLevel:
        dist = self.privacy_distribution
        if dist.get(PrivacyLevel.MAXIMUM, 0.0) > 0.5:
            return PrivacyLevel.MAXIMUM
        if dist.get(PrivacyLevel.HIGH, 0.0) > 0.3:
            return PrivacyLevel.HIGH
        if dist.get(PrivacyLevel.MODERATE, 0.0) > 0.2:
            return PrivacyLevel.MODERATE
        return PrivacyLevel.MINIMUM

    @property
    def success_rate(self) -> float:
        if self.total_processed <= 0:
            return 1.0
        return self.success_count / self.total_processed

    def snapshot(self) -> PrivacyMetrics:
        """Detached copy safe to hand out."""
        return PrivacyMetrics(
            total_processed=self.total_processed,
            maximum_count=self.maximum_count,
            high_count=self.high_count,
            moderate_count=self.moderate_count,
            minimum_count=self.minimum_count,
            success_count=self.success_count,
            failure_count=self.failure_count,
            average_processing_time=self.average_processing_time,
            last_updated=self.last_updated,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "by_level": {
                level.value: self.count_for(level) for level in PrivacyLevel
            },
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "average_processing_time": self.average_processing_time,
            "average_privacy_level": self.average_privacy_level.value,
            "last_updated": self.last_updated.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }


@dataclass(frozen=True)
class PrivacyReport:
    """Compliance snapshot for the dashboard.

    compliance_score = mean(audit_success_rate, processing_success_rate,
    encryption_score). Empty windows count as fully successful.
    """
    current_privacy_level: PrivacyLevel
    encryption_status: EncryptionStatus
    data_processing_mode: DataProcessingMode
    metrics: PrivacyMetrics
    recent_audits: tuple[PrivacyAuditEntry, ...]
    recent_processing: tuple[DataProcessingEntry, ...]
    audit_success_rate: float
    processing_success_rate: float
    encryption_score: float
    compliance_score: float
    compliance_grade: ComplianceGrade
    generated_utc: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_privacy_level": self.current_privacy_level.value,
            "encryption_status": self.encryption_status.value,
            "data_processing_mode": self.data_processing_mode.value,
            "metrics": self.metrics.to_dict(),
            "recent_audit_count": len(self.recent_audits),
            "recent_processing_count": len(self.recent_processing),
            "audit_success_rate": self.audit_success_rate,
            "processing_success_rate": self.processing_success_rate,
            "encryption_score": self.encryption_score,
            "compliance_score": self.compliance_score,
            "compliance_grade": self.compliance_grade.value,
            "generated_utc": self.generated_utc.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }


@dataclass(frozen=True)
class PrivacyComplianceResult:
    """Result of a compliance validation pass."""
    overall_compliance: bool
    encryption_compliance: bool
    memory_management_compliance: bool
    data_governance_compliance: bool
    recommended_actions: tuple[str, ...] = ()
    last_validated: datetime = field(default_factory=_utcnow)

    @property
    def compliance_percentage(self) -> float:
        components: Sequence[bool] = (
            self.encryption_compliance,
            self.memory_management_compliance,
            self.data_governance_compliance,
        )
        return sum(1 for c in components if c) / len(components)
