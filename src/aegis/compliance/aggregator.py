"""Compliance aggregator — the single serialized point for privacy bookkeeping.

Everything else in Aegis is an immutable value computed by a pure
function. The aggregator owns the bookkeeping state: running
PrivacyMetrics, the bounded audit trail, the bounded processing log and
the encryption status. Every read and write of that state happens under
one lock, so concurrent record_operation calls from in-flight requests
can never lose an update. The durable AuditLog is written before the lock
is taken; no file I/O happens while it is held.

Compliance score:
  mean(audit success rate, processing success rate, encryption score)
  over the most recent report window; an empty window counts as 1.0.

Encryption status lifecycle:
  INACTIVE → ACTIVE → EMERGENCY_WIPED (terminal)
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Iterable, Mapping, Optional

from aegis.models.compliance import (
    ComplianceGrade,
    PrivacyComplianceResult,
    PrivacyMetrics,
    PrivacyReport,
)
from aegis.models.privacy import (
    AuditMetrics,
    DataDeletionResult,
    DataProcessingEntry,
    DataProcessingMode,
    EmergencyWipeResult,
    EncryptionStatus,
    PrivacyAuditEntry,
    PrivacyAuditOutcome,
    PrivacyLevel,
)
from aegis.persistence.audit_log import AuditLog
from aegis.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


def success_rate(outcomes: Iterable[bool]) -> float:
    """Share of True values; 1.0 for an empty window."""
    total = 0
    passed = 0
    for ok in outcomes:
        total += 1
        if ok:
            passed += 1
    if total == 0:
        return 1.0
    return passed / total


class ComplianceAggregator:
    """Thread-safe accumulator of privacy metrics, audits and processing.

    Usage:
        aggregator = ComplianceAggregator(resolver, audit_log=AuditLog(path))
        aggregator.activate()
        aggregator.record_operation(PrivacyLevel.HIGH, 0.12, success=True)
        aggregator.record_audit("msg-1", PrivacyLevel.HIGH, ["encryption"],
                                PrivacyAuditOutcome.SUCCESS)
        report = aggregator.generate_report(PrivacyLevel.HIGH,
                                            DataProcessingMode.ENCRYPTED_LOCAL)
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        audit_log: Optional[AuditLog] = None,
    ) -> None:
        self._resolver = resolver
        self._audit_log = audit_log
        self._lock = threading.Lock()
        self._metrics = PrivacyMetrics()
        self._audits: list[PrivacyAuditEntry] = []
        self._processing: list[DataProcessingEntry] = []
        self._status = EncryptionStatus.INACTIVE

    # ------------------------------------------------------------------
    # Encryption status lifecycle
    # ------------------------------------------------------------------

    @property
    def encryption_status(self) -> EncryptionStatus:
        with self._lock:
            return self._status

    def activate(self) -> EncryptionStatus:
        """INACTIVE → ACTIVE. Activating an active session is a no-op.

        Raises:
            ValueError: If the session was emergency-wiped.
        """
        with self._lock:
            if self._status.is_terminal:
                raise ValueError(
                    "Encryption cannot be reactivated after an emergency wipe"
                )
            if self._status != EncryptionStatus.ACTIVE:
                self._status = EncryptionStatus.ACTIVE
                logger.info("Encryption status: active")
            return self._status

    def emergency_wipe(
        self, component_results: Optional[Mapping[str, bool]] = None,
    ) -> EmergencyWipeResult:
        """Clear every in-memory record and enter EMERGENCY_WIPED.

        component_results carries the outcomes of the external wipe steps
        (key destruction, memory poisoning). The aggregator adds its own
        processing_logs and system_reset steps, which always succeed.
        The durable AuditLog is not touched.
        """
        details: dict[str, bool] = dict(component_results or {})
        with self._lock:
            self._audits.clear()
            self._processing.clear()
            details["processing_logs"] = True
            self._metrics = PrivacyMetrics()
            details["system_reset"] = True
            self._status = EncryptionStatus.EMERGENCY_WIPED

        result = EmergencyWipeResult(wipe_details=details)
        logger.warning(
            "Emergency privacy wipe: %d/%d components wiped",
            result.successful_wipes, result.components_wiped,
        )
        return result

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_operation(
        self,
        privacy_level: PrivacyLevel,
        processing_time: float,
        success: bool,
    ) -> PrivacyMetrics:
        """Count one operation and fold its time into the streaming mean.

        Returns a snapshot of the metrics after the update.
        """
        with self._lock:
            self._metrics.record_operation(privacy_level, processing_time, success)
            snapshot = self._metrics.snapshot()
        if not success:
            logger.warning(
                "Privacy operation failed at level %s (%.3fs)",
                privacy_level.value, processing_time,
            )
        return snapshot

    def record_audit(
        self,
        message_id: str,
        privacy_level: PrivacyLevel,
        operations: Iterable[str],
        outcome: PrivacyAuditOutcome,
        processing_metrics: Optional[AuditMetrics] = None,
        timestamp: Optional[datetime] = None,
    ) -> PrivacyAuditEntry:
        """Write an audit entry to the durable log, then to the trail.

        The durable write is the commit point and happens outside the
        lock. If it raises, the trail is left untouched.

        Raises:
            ValueError: If the durable log rejects the entry.
            OSError: If the durable log file cannot be written.
        """
        kwargs: dict[str, datetime] = {}
        if timestamp is not None:
            kwargs["timestamp"] = timestamp
        entry = PrivacyAuditEntry(
            message_id=message_id,
            privacy_level=privacy_level,
            operations=tuple(operations),
            outcome=outcome,
            processing_metrics=processing_metrics,
            **kwargs,
        )
        if self._audit_log is not None:
            self._audit_log.append(entry)
        with self._lock:
            self._audits.append(entry)
            self._trim(self._audits)
        logger.debug(
            "Audit %s: message=%s level=%s outcome=%s",
            entry.entry_id, message_id, privacy_level.value, outcome.value,
        )
        return entry

    def record_processing(
        self,
        operation: str,
        data_size: int,
        processing_time: float,
        privacy_level: PrivacyLevel,
        success: bool,
        timestamp: Optional[datetime] = None,
    ) -> DataProcessingEntry:
        """Append an external processing outcome to the processing log."""
        kwargs: dict[str, datetime] = {}
        if timestamp is not None:
            kwargs["timestamp"] = timestamp
        entry = DataProcessingEntry(
            operation=operation,
            data_size=data_size,
            processing_time=processing_time,
            privacy_level=privacy_level,
            success=success,
            **kwargs,
        )
        with self._lock:
            self._processing.append(entry)
            self._trim(self._processing)
        return entry

    def record_deletions(
        self,
        deletion_details: Mapping[str, bool],
        privacy_level: PrivacyLevel,
    ) -> DataDeletionResult:
        """Audit a batch of externally executed deletions, one entry each."""
        for message_id, ok in deletion_details.items():
            self.record_audit(
                message_id=message_id,
                privacy_level=privacy_level,
                operations=("data_deletion", "memory_poisoning", "deletion_validation"),
                outcome=PrivacyAuditOutcome.SUCCESS if ok else PrivacyAuditOutcome.FAILURE,
            )
        successful = sum(1 for ok in deletion_details.values() if ok)
        return DataDeletionResult(
            requested_deletions=len(deletion_details),
            successful_deletions=successful,
            failed_deletions=len(deletion_details) - successful,
            deletion_details=dict(deletion_details),
        )

    def _trim(self, trail: list) -> None:
        """Drop the oldest entries once the trail exceeds its cap. Caller holds the lock."""
        cap, trim = self._resolver.audit_trail_limits()
        if len(trail) > cap:
            del trail[:trim]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def metrics(self) -> PrivacyMetrics:
        with self._lock:
            return self._metrics.snapshot()

    def recent_audits(self, limit: Optional[int] = None) -> list[PrivacyAuditEntry]:
        n = self._resolver.report_window() if limit is None else limit
        with self._lock:
            return list(self._audits[-n:]) if n > 0 else []

    def recent_processing(self, limit: Optional[int] = None) -> list[DataProcessingEntry]:
        n = self._resolver.report_window() if limit is None else limit
        with self._lock:
            return list(self._processing[-n:]) if n > 0 else []

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def compliance_score(
        self,
        audit_success_rate: float,
        processing_success_rate: float,
        encryption_score: float,
    ) -> float:
        return (audit_success_rate + processing_success_rate + encryption_score) / 3.0

    def grade(self, compliance_score: float) -> ComplianceGrade:
        return ComplianceGrade.for_score(
            compliance_score, self._resolver.compliance_grade_bands(),
        )

    def generate_report(
        self,
        current_level: PrivacyLevel,
        processing_mode: DataProcessingMode,
    ) -> PrivacyReport:
        """Snapshot the recent window into a PrivacyReport."""
        window = self._resolver.report_window()
        with self._lock:
            audits = tuple(self._audits[-window:])
            processing = tuple(self._processing[-window:])
            metrics = self._metrics.snapshot()
            status = self._status

        audit_rate = success_rate(a.is_successful for a in audits)
        processing_rate = success_rate(p.success for p in processing)
        encryption_score = self._resolver.encryption_score(status)
        score = self.compliance_score(audit_rate, processing_rate, encryption_score)

        report = PrivacyReport(
            current_privacy_level=current_level,
            encryption_status=status,
            data_processing_mode=processing_mode,
            metrics=metrics,
            recent_audits=audits,
            recent_processing=processing,
            audit_success_rate=audit_rate,
            processing_success_rate=processing_rate,
            encryption_score=encryption_score,
            compliance_score=score,
            compliance_grade=self.grade(score),
        )
        logger.debug(
            "Privacy report: score=%.3f grade=%s", score, report.compliance_grade.value,
        )
        return report

    def validate_compliance(
        self,
        encryption_compliant: bool,
        memory_compliant: bool,
        overall_compliant: bool,
    ) -> PrivacyComplianceResult:
        """Combine external subsystem checks with local data governance.

        Data governance holds when at least one audit is on record and
        encryption is active.
        """
        with self._lock:
            governance = bool(self._audits) and self._status.is_secure

        messages = self._resolver.compliance_recommendations()
        actions: list[str] = []
        if not encryption_compliant:
            actions.append(messages["encryption"])
        if not memory_compliant:
            actions.append(messages["memory"])
        if not overall_compliant:
            actions.append(messages["overall"])
        if not governance:
            actions.append(messages["data_governance"])

        return PrivacyComplianceResult(
            overall_compliance=overall_compliant,
            encryption_compliance=encryption_compliant,
            memory_management_compliance=memory_compliant,
            data_governance_compliance=governance,
            recommended_actions=tuple(actions),
        )
