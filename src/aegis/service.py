"""Aegis service — unified facade for the quality and privacy engines.

This is the primary interface for the surrounding chat application.
It wires the subsystems together once, at construction:
- Quality assessment (build, interpret, compare, rank candidate responses)
- Privacy risk validation and protection-level decisions
- Compliance bookkeeping (metrics, audit trail, processing log, reports)
- Encryption status lifecycle (activate, emergency wipe)

Every engine receives the same PolicyResolver; there are no module-level
singletons. State-changing operations return a ServiceResult. Privacy
operations are always audited: if the audit cannot be written the
operation reports failure rather than proceeding silently.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from aegis.compliance.aggregator import ComplianceAggregator
from aegis.models.compliance import PrivacyComplianceResult, PrivacyMetrics, PrivacyReport
from aegis.models.privacy import (
    DataDeletionResult,
    DataProcessingMode,
    EncryptionStatus,
    PrivacyAuditEntry,
    PrivacyAuditOutcome,
    PrivacyLevel,
    PrivacyRisk,
)
from aegis.models.quality import QualityAssessment, QualityComparison
from aegis.persistence.audit_log import AuditLog
from aegis.policy.resolver import PolicyResolver
from aegis.privacy.detector import PrivacyRiskDetector
from aegis.privacy.level_policy import PrivacyLevelPolicy
from aegis.quality.comparator import QualityComparator
from aegis.quality.engine import QualityEngine

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE_ID = "system"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class AegisService:
    """Quality and privacy engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = AegisService(resolver, audit_log=AuditLog(path))
        service.activate()

        # Responses
        quality = service.assess_response(overall_score=0.86, ...)
        result = service.select_best_response([q1, q2, q3])

        # Messages
        result = service.assess_message("msg-1", risks, sensitivity=0.4)
        decision = result.data["decision"]
        # ... external encryption runs with decision.level ...
        service.record_processing_outcome("msg-1", decision.level,
                                          "encryption", 2048, 0.05, True)

        report = service.privacy_report()
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        audit_log: Optional[AuditLog] = None,
        privacy_level: PrivacyLevel = PrivacyLevel.MAXIMUM,
    ) -> None:
        self._resolver = resolver
        self._quality_engine = QualityEngine(resolver)
        self._comparator = QualityComparator(resolver)
        self._detector = PrivacyRiskDetector(resolver)
        self._level_policy = PrivacyLevelPolicy(resolver)
        self._aggregator = ComplianceAggregator(resolver, audit_log=audit_log)
        self._session_lock = threading.Lock()
        self._privacy_level = privacy_level
        self._processing_mode = self._level_policy.processing_mode(privacy_level)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def privacy_level(self) -> PrivacyLevel:
        return self._session()[0]

    @property
    def processing_mode(self) -> DataProcessingMode:
        return self._session()[1]

    def _session(self) -> tuple[PrivacyLevel, DataProcessingMode]:
        """Current (level, mode), read together."""
        with self._session_lock:
            return self._privacy_level, self._processing_mode

    @property
    def encryption_status(self) -> EncryptionStatus:
        return self._aggregator.encryption_status

    @property
    def quality_engine(self) -> QualityEngine:
        return self._quality_engine

    @property
    def comparator(self) -> QualityComparator:
        return self._comparator

    # ------------------------------------------------------------------
    # Response quality
    # ------------------------------------------------------------------

    def assess_response(self, **scores: Any) -> QualityAssessment:
        """Build a QualityAssessment. Accepts QualityEngine.assess arguments."""
        return self._quality_engine.assess(**scores)

    def improvement_suggestions(self, assessment: QualityAssessment) -> list[str]:
        return self._quality_engine.improvement_suggestions(assessment)

    def compare_responses(
        self, a: QualityAssessment, b: QualityAssessment,
    ) -> QualityComparison:
        return self._comparator.compare(a, b)

    def select_best_response(
        self, candidates: Sequence[QualityAssessment],
    ) -> ServiceResult:
        """Pick the best candidate of an ensemble round.

        data["best"] is the winner, data["ranking"] all candidates best
        first, data["comparisons"] each runner-up compared to the winner.
        """
        if not candidates:
            return ServiceResult(success=False, errors=["No candidate responses"])

        ranking = self._comparator.rank(candidates)
        best = ranking[0]
        comparisons = [self._comparator.compare(best, other) for other in ranking[1:]]
        return ServiceResult(
            success=True,
            data={
                "best": best,
                "ranking": ranking,
                "comparisons": comparisons,
                "meets_professional_standards": best.meets_professional_standards,
            },
        )

    # ------------------------------------------------------------------
    # Message privacy
    # ------------------------------------------------------------------

    def assess_message(
        self,
        message_id: str,
        risks: Iterable[PrivacyRisk] = (),
        sensitivity: Optional[float] = None,
    ) -> ServiceResult:
        """Validate a message and decide its required protection."""
        if not message_id:
            return ServiceResult(success=False, errors=["message_id must not be empty"])

        validation = self._detector.validate(message_id, risks, sensitivity=sensitivity)
        decision = self._level_policy.decide(validation)
        return ServiceResult(
            success=True,
            data={
                "validation": validation,
                "decision": decision,
                "overall_risk": validation.overall_risk,
            },
        )

    def record_processing_outcome(
        self,
        message_id: str,
        privacy_level: PrivacyLevel,
        operation: str,
        data_size: int,
        processing_time: float,
        success: bool,
        operations: Optional[Sequence[str]] = None,
    ) -> ServiceResult:
        """Record what the external encryption subsystem did for a message.

        The audit entry is the commit point: it is written first, and the
        running metrics and processing log are only updated once it is
        durable. A failed audit write leaves all bookkeeping unchanged.
        """
        if not message_id:
            return ServiceResult(success=False, errors=["message_id must not be empty"])

        err, audit = self._record_audit(
            message_id,
            privacy_level,
            operations or (operation,),
            PrivacyAuditOutcome.SUCCESS if success else PrivacyAuditOutcome.FAILURE,
        )
        if err:
            return ServiceResult(success=False, errors=[err])

        metrics = self._aggregator.record_operation(privacy_level, processing_time, success)
        entry = self._aggregator.record_processing(
            operation=operation,
            data_size=data_size,
            processing_time=processing_time,
            privacy_level=privacy_level,
            success=success,
        )
        return ServiceResult(
            success=True,
            data={
                "metrics": metrics,
                "processing_entry": entry,
                "audit_entry": audit,
                "processing_grade": entry.processing_grade,
            },
        )

    def set_privacy_level(self, level: PrivacyLevel) -> ServiceResult:
        """Change the session privacy level and its processing mode.

        The change is audited first; level and mode are then swapped
        together, so readers never see a level paired with another
        level's mode.
        """
        mode = self._level_policy.processing_mode(level)
        err, _ = self._record_audit(
            SYSTEM_MESSAGE_ID, level, ("privacy_level_change",),
            PrivacyAuditOutcome.SUCCESS,
        )
        if err:
            return ServiceResult(success=False, errors=[err])

        with self._session_lock:
            previous = self._privacy_level
            self._privacy_level = level
            self._processing_mode = mode
        logger.info("Privacy level changed: %s -> %s", previous.value, level.value)
        return ServiceResult(
            success=True,
            data={"previous": previous, "level": level, "mode": mode},
        )

    def request_data_deletion(
        self, deletion_details: Mapping[str, bool],
    ) -> DataDeletionResult:
        """Audit the outcomes of externally executed deletions."""
        return self._aggregator.record_deletions(deletion_details, self.privacy_level)

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    def metrics(self) -> PrivacyMetrics:
        return self._aggregator.metrics()

    def privacy_report(self) -> PrivacyReport:
        level, mode = self._session()
        return self._aggregator.generate_report(level, mode)

    def validate_compliance(
        self,
        encryption_compliant: bool,
        memory_compliant: bool,
        overall_compliant: bool,
    ) -> PrivacyComplianceResult:
        return self._aggregator.validate_compliance(
            encryption_compliant, memory_compliant, overall_compliant,
        )

    # ------------------------------------------------------------------
    # Encryption lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> ServiceResult:
        try:
            status = self._aggregator.activate()
        except ValueError as exc:
            return ServiceResult(success=False, errors=[str(exc)])
        return ServiceResult(success=True, data={"status": status})

    def emergency_wipe(
        self, component_results: Optional[Mapping[str, bool]] = None,
    ) -> ServiceResult:
        result = self._aggregator.emergency_wipe(component_results)
        errors = [
            f"Component failed to wipe: {name}"
            for name, ok in result.wipe_details.items() if not ok
        ]
        return ServiceResult(
            success=result.fully_successful,
            errors=errors,
            data={"wipe": result, "status": self._aggregator.encryption_status},
        )

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _record_audit(
        self,
        message_id: str,
        privacy_level: PrivacyLevel,
        operations: Sequence[str],
        outcome: PrivacyAuditOutcome,
    ) -> tuple[Optional[str], Optional[PrivacyAuditEntry]]:
        """Record an audit entry. Returns (error string or None, entry)."""
        try:
            entry = self._aggregator.record_audit(
                message_id=message_id,
                privacy_level=privacy_level,
                operations=operations,
                outcome=outcome,
            )
        except (ValueError, OSError) as exc:
            logger.error("Audit write failed for %s: %s", message_id, exc)
            return f"Audit log failure: {exc}", None
        return None, entry
