"""Privacy data models — levels, risks, validations, audit and processing records.

Aegis decides how strongly a message must be protected; it never performs
the encryption or the secure wipe itself. These models carry the decision
inputs (detected risks, validation), the decision outputs (level, mode)
and the after-the-fact record of what the external subsystems did
(audit entries, processing entries, deletion and wipe results).

Ordered enums (PrivacyLevel, PIILevel, RiskSeverity) compare by rank so
that max() over them picks the most protective / most severe member.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from aegis.models.score import ScoreValue, clamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class _OrderedStrEnum(str, enum.Enum):
    """String enum ordered by declaration order, not by string value.

    A plain string operand is converted to a member first, so
    PrivacyLevel.HIGH < "maximum" compares by rank. Members of a different
    enum raise TypeError instead of falling back to string ordering.
    """

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def _rank_of(self, other: object) -> int:
        if type(other) is type(self):
            return other.rank  # type: ignore[attr-defined]
        if isinstance(other, str) and not isinstance(other, enum.Enum):
            return type(self)(other).rank
        raise TypeError(
            f"Cannot order {type(self).__name__} against {type(other).__name__}"
        )

    def __lt__(self, other: object) -> bool:
        return self.rank < self._rank_of(other)

    def __le__(self, other: object) -> bool:
        return self.rank <= self._rank_of(other)

    def __gt__(self, other: object) -> bool:
        return self.rank > self._rank_of(other)

    def __ge__(self, other: object) -> bool:
        return self.rank >= self._rank_of(other)


# ---------------------------------------------------------------------------
# Levels and modes
# ---------------------------------------------------------------------------

class PrivacyLevel(_OrderedStrEnum):
    """Required protection strength, minimum → maximum."""
    MINIMUM = "minimum"
    MODERATE = "moderate"
    HIGH = "high"
    MAXIMUM = "maximum"

    @property
    def security_level(self) -> int:
        return self.rank + 1

    @property
    def requires_encryption(self) -> bool:
        return self is not PrivacyLevel.MINIMUM

    @property
    def requires_memory_poisoning(self) -> bool:
        """Signal to the secure-wipe subsystem to sanitize memory."""
        return self in (PrivacyLevel.HIGH, PrivacyLevel.MAXIMUM)

    @property
    def description(self) -> str:
        return {
            "minimum": "Basic privacy with standard protections",
            "moderate": "Enhanced privacy with encryption",
            "high": "Strong privacy with advanced protections",
            "maximum": "Zero-knowledge privacy with mathematical guarantees",
        }[self.value]


class DataProcessingMode(_OrderedStrEnum):
    """How a message is processed; one mode per privacy level."""
    LOCAL_ONLY = "local_only"
    LOCAL_WITH_VALIDATION = "local_with_validation"
    ENCRYPTED_LOCAL = "encrypted_local"
    ZERO_KNOWLEDGE = "zero_knowledge"

    @property
    def security_level(self) -> int:
        return self.rank + 1


class EncryptionStatus(str, enum.Enum):
    """Encryption subsystem lifecycle.

    INACTIVE → ACTIVE → EMERGENCY_WIPED
    EMERGENCY_WIPED is terminal for the session.
    """
    INACTIVE = "inactive"
    ACTIVE = "active"
    EMERGENCY_WIPED = "emergency_wiped"

    @property
    def is_secure(self) -> bool:
        return self is EncryptionStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self is EncryptionStatus.EMERGENCY_WIPED


class PIILevel(_OrderedStrEnum):
    """How much personally identifiable information a message carries."""
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"

    @property
    def description(self) -> str:
        return {
            "none": "No PII detected",
            "minimal": "Minimal PII requiring basic protection",
            "moderate": "Moderate PII requiring enhanced protection",
            "aggressive": "Sensitive PII requiring maximum protection",
        }[self.value]


# ---------------------------------------------------------------------------
# Risks
# ---------------------------------------------------------------------------

class RiskType(str, enum.Enum):
    PII_EXPOSURE = "pii_exposure"
    DATA_LEAKAGE = "data_leakage"
    INSUFFICIENT_ENCRYPTION = "insufficient_encryption"
    MEMORY_RESIDUE = "memory_residue"
    CROSS_CONTAMINATION = "cross_contamination"


class RiskSeverity(_OrderedStrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def priority(self) -> int:
        return self.rank + 1


@dataclass(frozen=True)
class PrivacyRisk:
    """A risk signal reported by the external content scanner."""
    risk_type: RiskType
    severity: RiskSeverity
    description: str
    mitigation: str
    detected_at: datetime = field(default_factory=_utcnow)
    risk_id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class PrivacyValidation:
    """Privacy assessment of a single message.

    overall_risk is the single highest severity among detected_risks.
    One critical risk dominates any number of low ones.
    """
    sensitivity_level: float
    pii_level: PIILevel
    requires_encryption: bool
    detected_risks: tuple[PrivacyRisk, ...] = ()
    message_id: Optional[str] = None
    validation_utc: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sensitivity_level", ScoreValue(self.sensitivity_level))
        object.__setattr__(self, "detected_risks", tuple(self.detected_risks))

    @property
    def overall_risk(self) -> RiskSeverity:
        if not self.detected_risks:
            return RiskSeverity.LOW
        return max(r.severity for r in self.detected_risks)

    def risks_of(self, risk_type: RiskType) -> list[PrivacyRisk]:
        return [r for r in self.detected_risks if r.risk_type == risk_type]


# ---------------------------------------------------------------------------
# Audit & processing records
# ---------------------------------------------------------------------------

class PrivacyAuditOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


@dataclass(frozen=True)
class AuditMetrics:
    """Optional measurements attached to an audit entry."""
    operation_count: int
    total_processing_time: float
    memory_usage: int
    encryption_strength: str
    validations_passed: int
    validations_failed: int


@dataclass(frozen=True)
class PrivacyAuditEntry:
    """One audited privacy operation. Append-only once recorded."""
    message_id: str
    privacy_level: PrivacyLevel
    operations: tuple[str, ...]
    outcome: PrivacyAuditOutcome
    timestamp: datetime = field(default_factory=_utcnow)
    processing_metrics: Optional[AuditMetrics] = None
    entry_id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        object.__setattr__(self, "operations", tuple(self.operations))

    @property
    def is_successful(self) -> bool:
        return self.outcome == PrivacyAuditOutcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "message_id": self.message_id,
            "privacy_level": self.privacy_level.value,
            "operations": list(self.operations),
            "outcome": self.outcome.value,
        }
        if self.processing_metrics is not None:
            m = self.processing_metrics
            data["processing_metrics"] = {
                "operation_count": m.operation_count,
                "total_processing_time": m.total_processing_time,
                "memory_usage": m.memory_usage,
                "encryption_strength": m.encryption_strength,
                "validations_passed": m.validations_passed,
                "validations_failed": m.validations_failed,
            }
        return data


class ProcessingEfficiency(str, enum.Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ProcessingGrade(str, enum.Enum):
    """Latency grade of a single privacy-processing pass."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def for_processing_time(cls, seconds: float) -> ProcessingGrade:
        if seconds < 0.1:
            return cls.EXCELLENT
        if seconds < 0.5:
            return cls.GOOD
        if seconds < 1.0:
            return cls.FAIR
        return cls.POOR


@dataclass(frozen=True)
class DataProcessingEntry:
    """One external processing pass (encrypt, sanitize, ...) and its outcome."""
    operation: str
    data_size: int
    processing_time: float
    privacy_level: PrivacyLevel
    success: bool
    timestamp: datetime = field(default_factory=_utcnow)
    entry_id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "processing_time", clamp(self.processing_time, 0.0, float("inf")),
        )

    @property
    def bytes_per_second(self) -> float:
        if self.processing_time <= 0.0:
            return float("inf") if self.data_size > 0 else 0.0
        return self.data_size / self.processing_time

    @property
    def efficiency(self) -> ProcessingEfficiency:
        rate = self.bytes_per_second
        if rate >= 10000:
            return ProcessingEfficiency.EXCELLENT
        if rate >= 5000:
            return ProcessingEfficiency.GOOD
        if rate >= 1000:
            return ProcessingEfficiency.FAIR
        return ProcessingEfficiency.POOR

    @property
    def processing_grade(self) -> ProcessingGrade:
        return ProcessingGrade.for_processing_time(self.processing_time)


# ---------------------------------------------------------------------------
# Data governance
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DataDeletionResult:
    """Outcome of a batch deletion request."""
    requested_deletions: int
    successful_deletions: int
    failed_deletions: int
    deletion_details: dict[str, bool]
    completed_at: datetime = field(default_factory=_utcnow)

    @property
    def success_rate(self) -> float:
        if self.requested_deletions <= 0:
            return 0.0
        return self.successful_deletions / self.requested_deletions

    @property
    def is_fully_successful(self) -> bool:
        return self.failed_deletions == 0


@dataclass(frozen=True)
class EmergencyWipeResult:
    """Per-component outcome of an emergency wipe."""
    wipe_details: dict[str, bool]
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def components_wiped(self) -> int:
        return len(self.wipe_details)

    @property
    def successful_wipes(self) -> int:
        return sum(1 for ok in self.wipe_details.values() if ok)

    @property
    def failed_wipes(self) -> int:
        return sum(1 for ok in self.wipe_details.values() if not ok)

    @property
    def fully_successful(self) -> bool:
        return self.failed_wipes == 0
