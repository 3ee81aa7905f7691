"""Tests for the compliance aggregator — proves metrics, trails, reports
and the encryption lifecycle stay consistent, including under concurrency.
"""

import math
import threading

import pytest
from pathlib import Path

from aegis.compliance.aggregator import ComplianceAggregator, success_rate
from aegis.models.compliance import (
    ComplianceGrade,
    PrivacyComplianceResult,
    PrivacyMetrics,
)
from aegis.models.privacy import (
    DataProcessingEntry,
    DataProcessingMode,
    EncryptionStatus,
    PrivacyAuditEntry,
    PrivacyAuditOutcome,
    PrivacyLevel,
    ProcessingEfficiency,
    ProcessingGrade,
)
from aegis.persistence.audit_log import AuditLog, AuditRecord
from aegis.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def aggregator(resolver: PolicyResolver) -> ComplianceAggregator:
    return ComplianceAggregator(resolver)


def _audit(
    aggregator: ComplianceAggregator,
    outcome: PrivacyAuditOutcome = PrivacyAuditOutcome.SUCCESS,
    message_id: str = "msg-1",
) -> None:
    aggregator.record_audit(message_id, PrivacyLevel.HIGH, ["encryption"], outcome)


def _process(aggregator: ComplianceAggregator, success: bool = True) -> None:
    aggregator.record_processing("encryption", 2048, 0.05, PrivacyLevel.HIGH, success)


class _RejectingLog(AuditLog):
    """Durable sink whose every write fails."""

    def append(self, entry: PrivacyAuditEntry) -> AuditRecord:
        raise ValueError("audit sink unavailable")


# =====================================================================
# Metrics
# =====================================================================


class TestMetrics:
    def test_streaming_mean(self, aggregator: ComplianceAggregator) -> None:
        for t in (2.0, 4.0, 6.0):
            aggregator.record_operation(PrivacyLevel.HIGH, t, success=True)
        m = aggregator.metrics()
        assert m.total_processed == 3
        assert m.average_processing_time == pytest.approx(4.0)

    def test_counters_add_up(self, aggregator: ComplianceAggregator) -> None:
        aggregator.record_operation(PrivacyLevel.MAXIMUM, 0.1, success=True)
        aggregator.record_operation(PrivacyLevel.MINIMUM, 0.1, success=False)
        aggregator.record_operation(PrivacyLevel.MODERATE, 0.1, success=True)
        m = aggregator.metrics()
        assert m.success_count + m.failure_count == m.total_processed
        assert sum(m.count_for(level) for level in PrivacyLevel) == m.total_processed
        assert m.success_rate == pytest.approx(2 / 3)

    def test_bad_processing_times_are_cleaned(self, aggregator: ComplianceAggregator) -> None:
        for t in (2.0, float("nan"), 4.0):
            aggregator.record_operation(PrivacyLevel.HIGH, t, success=True)
        m = aggregator.metrics()
        assert not math.isnan(m.average_processing_time)
        assert m.average_processing_time == pytest.approx(2.0)

    def test_negative_processing_time_counts_as_zero(self, aggregator: ComplianceAggregator) -> None:
        aggregator.record_operation(PrivacyLevel.HIGH, 4.0, success=True)
        aggregator.record_operation(PrivacyLevel.HIGH, -10.0, success=True)
        assert aggregator.metrics().average_processing_time == pytest.approx(2.0)

    def test_snapshot_is_detached(self, aggregator: ComplianceAggregator) -> None:
        snapshot = aggregator.record_operation(PrivacyLevel.HIGH, 0.2, success=True)
        aggregator.record_operation(PrivacyLevel.HIGH, 0.2, success=True)
        assert snapshot.total_processed == 1
        assert aggregator.metrics().total_processed == 2

    def test_empty_metrics(self) -> None:
        m = PrivacyMetrics()
        assert m.privacy_distribution == {}
        assert m.average_privacy_level == PrivacyLevel.MINIMUM
        assert m.success_rate == 1.0

    @pytest.mark.parametrize("counts, expected", [
        ({PrivacyLevel.MAXIMUM: 6, PrivacyLevel.MINIMUM: 4}, PrivacyLevel.MAXIMUM),
        ({PrivacyLevel.MAXIMUM: 5, PrivacyLevel.HIGH: 4, PrivacyLevel.MINIMUM: 1}, PrivacyLevel.HIGH),
        ({PrivacyLevel.MODERATE: 3, PrivacyLevel.MINIMUM: 7}, PrivacyLevel.MODERATE),
        (
            {PrivacyLevel.MAXIMUM: 5, PrivacyLevel.HIGH: 3, PrivacyLevel.MODERATE: 2},
            PrivacyLevel.MINIMUM,
        ),
    ])
    def test_average_privacy_level(
        self, counts: dict, expected: PrivacyLevel,
    ) -> None:
        m = PrivacyMetrics()
        for level, n in counts.items():
            for _ in range(n):
                m.record_operation(level, 0.1, success=True)
        assert m.average_privacy_level == expected

    def test_distribution_sums_to_one(self) -> None:
        m = PrivacyMetrics()
        for level in (PrivacyLevel.HIGH, PrivacyLevel.HIGH, PrivacyLevel.MINIMUM):
            m.record_operation(level, 0.1, success=True)
        assert sum(m.privacy_distribution.values()) == pytest.approx(1.0)

    def test_concurrent_updates_are_not_lost(self, aggregator: ComplianceAggregator) -> None:
        per_thread = 250
        levels = list(PrivacyLevel)

        def worker(level: PrivacyLevel) -> None:
            for i in range(per_thread):
                aggregator.record_operation(level, 0.01, success=i % 5 != 0)

        threads = [threading.Thread(target=worker, args=(levels[i % 4],)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        m = aggregator.metrics()
        assert m.total_processed == 8 * per_thread
        assert m.success_count + m.failure_count == m.total_processed
        assert m.failure_count == 8 * (per_thread // 5)
        for level in PrivacyLevel:
            assert m.count_for(level) == 2 * per_thread
        assert m.average_processing_time == pytest.approx(0.01)


# =====================================================================
# Trails
# =====================================================================


class TestTrails:
    def test_audit_trail_is_capped(self, aggregator: ComplianceAggregator) -> None:
        for i in range(1001):
            _audit(aggregator, message_id=f"msg-{i}")
        trail = aggregator.recent_audits(limit=5000)
        assert len(trail) == 901
        assert trail[0].message_id == "msg-100"
        assert trail[-1].message_id == "msg-1000"

    def test_processing_log_is_capped(self, aggregator: ComplianceAggregator) -> None:
        for _ in range(1001):
            _process(aggregator)
        assert len(aggregator.recent_processing(limit=5000)) == 901

    def test_recent_window_defaults_to_report_window(
        self, aggregator: ComplianceAggregator,
    ) -> None:
        for i in range(150):
            _audit(aggregator, message_id=f"msg-{i}")
        recent = aggregator.recent_audits()
        assert len(recent) == 100
        assert recent[-1].message_id == "msg-149"

    def test_zero_limit(self, aggregator: ComplianceAggregator) -> None:
        _audit(aggregator)
        assert aggregator.recent_audits(limit=0) == []

    def test_audits_written_to_durable_log(self, resolver: PolicyResolver) -> None:
        log = AuditLog()
        aggregator = ComplianceAggregator(resolver, audit_log=log)
        _audit(aggregator)
        _audit(aggregator, PrivacyAuditOutcome.FAILURE)
        assert log.count == 2
        assert len(log.records(outcome=PrivacyAuditOutcome.FAILURE)) == 1

    def test_failed_durable_write_leaves_trail_untouched(self, resolver: PolicyResolver) -> None:
        aggregator = ComplianceAggregator(resolver, audit_log=_RejectingLog())
        with pytest.raises(ValueError, match="unavailable"):
            _audit(aggregator)
        assert aggregator.recent_audits() == []

    def test_unwritable_audit_file_leaves_trail_untouched(
        self, resolver: PolicyResolver, tmp_path: Path,
    ) -> None:
        log = AuditLog(storage_path=tmp_path / "missing" / "audit.jsonl")
        aggregator = ComplianceAggregator(resolver, audit_log=log)
        with pytest.raises(OSError):
            _audit(aggregator)
        assert aggregator.recent_audits() == []
        assert log.count == 0

    def test_record_deletions(self, aggregator: ComplianceAggregator) -> None:
        result = aggregator.record_deletions(
            {"msg-1": True, "msg-2": False, "msg-3": True}, PrivacyLevel.MAXIMUM,
        )
        assert result.requested_deletions == 3
        assert result.successful_deletions == 2
        assert result.failed_deletions == 1
        assert result.success_rate == pytest.approx(2 / 3)
        assert not result.is_fully_successful

        audits = aggregator.recent_audits()
        assert [a.message_id for a in audits] == ["msg-1", "msg-2", "msg-3"]
        assert audits[1].outcome == PrivacyAuditOutcome.FAILURE
        assert audits[0].operations == (
            "data_deletion", "memory_poisoning", "deletion_validation",
        )

    def test_empty_deletion_request(self, aggregator: ComplianceAggregator) -> None:
        result = aggregator.record_deletions({}, PrivacyLevel.HIGH)
        assert result.success_rate == 0.0
        assert result.is_fully_successful


class TestProcessingEntry:
    @pytest.mark.parametrize("seconds, grade", [
        (0.05, ProcessingGrade.EXCELLENT),
        (0.1, ProcessingGrade.GOOD),
        (0.49, ProcessingGrade.GOOD),
        (0.5, ProcessingGrade.FAIR),
        (1.0, ProcessingGrade.POOR),
    ])
    def test_processing_grade(self, seconds: float, grade: ProcessingGrade) -> None:
        assert ProcessingGrade.for_processing_time(seconds) == grade

    def test_throughput(self) -> None:
        entry = DataProcessingEntry("encryption", 20000, 2.0, PrivacyLevel.HIGH, True)
        assert entry.bytes_per_second == 10000
        assert entry.efficiency == ProcessingEfficiency.EXCELLENT

    def test_zero_time(self) -> None:
        assert DataProcessingEntry("x", 100, 0.0, PrivacyLevel.HIGH, True).bytes_per_second == float("inf")
        assert DataProcessingEntry("x", 0, 0.0, PrivacyLevel.HIGH, True).bytes_per_second == 0.0

    def test_processing_time_clamped(self) -> None:
        assert DataProcessingEntry("x", 100, -1.0, PrivacyLevel.HIGH, True).processing_time == 0.0
        assert DataProcessingEntry("x", 100, float("nan"), PrivacyLevel.HIGH, True).processing_time == 0.0


# =====================================================================
# Reports
# =====================================================================


class TestReports:
    def test_success_rate_helper(self) -> None:
        assert success_rate([]) == 1.0
        assert success_rate([True, False, True, True]) == 0.75

    def test_score_is_mean_of_three(self, aggregator: ComplianceAggregator) -> None:
        score = aggregator.compliance_score(1.0, 0.8, 1.0)
        assert score == pytest.approx(0.9333, abs=1e-4)
        assert aggregator.grade(score) == ComplianceGrade.EXCELLENT

    @pytest.mark.parametrize("score, grade", [
        (1.0, ComplianceGrade.EXCELLENT),
        (0.9, ComplianceGrade.EXCELLENT),
        (0.89, ComplianceGrade.GOOD),
        (0.8, ComplianceGrade.GOOD),
        (0.79, ComplianceGrade.FAIR),
        (0.7, ComplianceGrade.FAIR),
        (0.69, ComplianceGrade.POOR),
        (0.0, ComplianceGrade.POOR),
    ])
    def test_grade_bands(
        self, aggregator: ComplianceAggregator, score: float, grade: ComplianceGrade,
    ) -> None:
        assert aggregator.grade(score) == grade

    def test_poor_display_name(self) -> None:
        assert ComplianceGrade.POOR.display_name == "Needs Improvement"
        assert ComplianceGrade.GOOD.display_name == "Good"

    def test_report_from_recorded_activity(self, aggregator: ComplianceAggregator) -> None:
        aggregator.activate()
        for _ in range(3):
            _audit(aggregator)
        for ok in (True, True, True, True, False):
            _process(aggregator, success=ok)

        report = aggregator.generate_report(
            PrivacyLevel.HIGH, DataProcessingMode.ENCRYPTED_LOCAL,
        )
        assert report.audit_success_rate == 1.0
        assert report.processing_success_rate == pytest.approx(0.8)
        assert report.encryption_score == 1.0
        assert report.compliance_score == pytest.approx(0.9333, abs=1e-4)
        assert report.compliance_grade == ComplianceGrade.EXCELLENT
        assert len(report.recent_audits) == 3
        assert len(report.recent_processing) == 5

    def test_empty_inactive_report(self, aggregator: ComplianceAggregator) -> None:
        report = aggregator.generate_report(PrivacyLevel.MAXIMUM, DataProcessingMode.ZERO_KNOWLEDGE)
        assert report.encryption_status == EncryptionStatus.INACTIVE
        assert report.encryption_score == 0.5
        assert report.compliance_score == pytest.approx(2.5 / 3)
        assert report.compliance_grade == ComplianceGrade.GOOD

    def test_report_to_dict(self, aggregator: ComplianceAggregator) -> None:
        aggregator.record_operation(PrivacyLevel.HIGH, 0.1, success=True)
        data = aggregator.generate_report(
            PrivacyLevel.HIGH, DataProcessingMode.ENCRYPTED_LOCAL,
        ).to_dict()
        assert data["current_privacy_level"] == "high"
        assert data["metrics"]["by_level"]["high"] == 1
        assert data["compliance_grade"] in {g.value for g in ComplianceGrade}


class TestValidateCompliance:
    def test_all_compliant(self, aggregator: ComplianceAggregator) -> None:
        aggregator.activate()
        _audit(aggregator)
        result = aggregator.validate_compliance(True, True, True)
        assert result.data_governance_compliance
        assert result.recommended_actions == ()
        assert result.compliance_percentage == 1.0

    def test_recommendations_in_order(self, aggregator: ComplianceAggregator) -> None:
        result = aggregator.validate_compliance(False, False, False)
        assert result.recommended_actions == (
            "Review encryption key management",
            "Increase memory sanitization frequency",
            "Conduct comprehensive privacy audit",
            "Activate encryption and record privacy audits",
        )
        assert result.compliance_percentage == 0.0

    def test_governance_needs_active_encryption(self, aggregator: ComplianceAggregator) -> None:
        _audit(aggregator)
        result = aggregator.validate_compliance(True, True, True)
        assert not result.data_governance_compliance
        assert result.compliance_percentage == pytest.approx(2 / 3)

    def test_percentage_ignores_overall_flag(self) -> None:
        result = PrivacyComplianceResult(
            overall_compliance=False,
            encryption_compliance=True,
            memory_management_compliance=True,
            data_governance_compliance=True,
        )
        assert result.compliance_percentage == 1.0


# =====================================================================
# Encryption lifecycle
# =====================================================================


class TestLifecycle:
    def test_starts_inactive(self, aggregator: ComplianceAggregator) -> None:
        assert aggregator.encryption_status == EncryptionStatus.INACTIVE

    def test_activate_is_idempotent(self, aggregator: ComplianceAggregator) -> None:
        assert aggregator.activate() == EncryptionStatus.ACTIVE
        assert aggregator.activate() == EncryptionStatus.ACTIVE

    def test_emergency_wipe_clears_state(self, resolver: PolicyResolver) -> None:
        log = AuditLog()
        aggregator = ComplianceAggregator(resolver, audit_log=log)
        aggregator.activate()
        aggregator.record_operation(PrivacyLevel.HIGH, 0.1, success=True)
        _audit(aggregator)
        _process(aggregator)

        result = aggregator.emergency_wipe({"encryption_keys": True, "memory": False})

        assert aggregator.encryption_status == EncryptionStatus.EMERGENCY_WIPED
        assert aggregator.recent_audits() == []
        assert aggregator.recent_processing() == []
        assert aggregator.metrics().total_processed == 0
        assert log.count == 1
        assert set(result.wipe_details) == {
            "encryption_keys", "memory", "processing_logs", "system_reset",
        }
        assert result.components_wiped == 4
        assert result.failed_wipes == 1
        assert not result.fully_successful

    def test_wipe_is_terminal(self, aggregator: ComplianceAggregator) -> None:
        aggregator.emergency_wipe()
        with pytest.raises(ValueError, match="emergency wipe"):
            aggregator.activate()

    def test_wiped_report_grades_poor(self, aggregator: ComplianceAggregator) -> None:
        aggregator.emergency_wipe()
        report = aggregator.generate_report(PrivacyLevel.MAXIMUM, DataProcessingMode.ZERO_KNOWLEDGE)
        assert report.encryption_score == 0.0
        assert report.compliance_grade == ComplianceGrade.POOR
