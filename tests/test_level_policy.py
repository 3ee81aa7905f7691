"""Tests for the privacy level policy — sensitivity bands, PII floors,
the encryption bump and the one-to-one processing modes.
"""

import pytest
from pathlib import Path

from aegis.models.privacy import (
    DataProcessingMode,
    PIILevel,
    PrivacyLevel,
    PrivacyValidation,
    RiskSeverity,
)
from aegis.policy.resolver import PolicyResolver
from aegis.privacy.level_policy import PrivacyLevelPolicy


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def policy(resolver: PolicyResolver) -> PrivacyLevelPolicy:
    return PrivacyLevelPolicy(resolver)


def _validation(
    sensitivity: float = 0.0,
    pii: PIILevel = PIILevel.NONE,
    encrypt: bool = False,
) -> PrivacyValidation:
    return PrivacyValidation(
        sensitivity_level=sensitivity,
        pii_level=pii,
        requires_encryption=encrypt,
        message_id="msg-1",
    )


class TestSensitivityBands:
    @pytest.mark.parametrize("sensitivity, expected", [
        (0.0, PrivacyLevel.MINIMUM),
        (0.29, PrivacyLevel.MINIMUM),
        (0.3, PrivacyLevel.MODERATE),
        (0.59, PrivacyLevel.MODERATE),
        (0.6, PrivacyLevel.HIGH),
        (0.79, PrivacyLevel.HIGH),
        (0.8, PrivacyLevel.MAXIMUM),
        (1.0, PrivacyLevel.MAXIMUM),
    ])
    def test_bands(
        self, policy: PrivacyLevelPolicy, sensitivity: float, expected: PrivacyLevel,
    ) -> None:
        assert policy.level_for_sensitivity(sensitivity) == expected

    def test_monotonic(self, policy: PrivacyLevelPolicy) -> None:
        levels = [policy.level_for_sensitivity(i / 100) for i in range(101)]
        assert levels == sorted(levels)


class TestRequiredLevel:
    @pytest.mark.parametrize("pii, expected", [
        (PIILevel.NONE, PrivacyLevel.MINIMUM),
        (PIILevel.MINIMAL, PrivacyLevel.MODERATE),
        (PIILevel.MODERATE, PrivacyLevel.HIGH),
        (PIILevel.AGGRESSIVE, PrivacyLevel.MAXIMUM),
    ])
    def test_pii_floor(
        self, policy: PrivacyLevelPolicy, pii: PIILevel, expected: PrivacyLevel,
    ) -> None:
        assert policy.required_level(_validation(pii=pii)) == expected

    def test_sensitivity_beats_lower_pii_floor(self, policy: PrivacyLevelPolicy) -> None:
        v = _validation(sensitivity=0.85, pii=PIILevel.MINIMAL, encrypt=True)
        assert policy.required_level(v) == PrivacyLevel.MAXIMUM

    def test_pii_floor_beats_lower_sensitivity(self, policy: PrivacyLevelPolicy) -> None:
        v = _validation(sensitivity=0.35, pii=PIILevel.MODERATE, encrypt=True)
        assert policy.required_level(v) == PrivacyLevel.HIGH

    def test_encryption_requirement_lifts_minimum(self, policy: PrivacyLevelPolicy) -> None:
        v = _validation(sensitivity=0.1, encrypt=True)
        assert policy.required_level(v) == PrivacyLevel.MODERATE

    def test_encryption_requirement_does_not_lower(self, policy: PrivacyLevelPolicy) -> None:
        v = _validation(sensitivity=0.7, encrypt=True)
        assert policy.required_level(v) == PrivacyLevel.HIGH


class TestDecision:
    @pytest.mark.parametrize("level, mode", [
        (PrivacyLevel.MINIMUM, DataProcessingMode.LOCAL_ONLY),
        (PrivacyLevel.MODERATE, DataProcessingMode.LOCAL_WITH_VALIDATION),
        (PrivacyLevel.HIGH, DataProcessingMode.ENCRYPTED_LOCAL),
        (PrivacyLevel.MAXIMUM, DataProcessingMode.ZERO_KNOWLEDGE),
    ])
    def test_processing_mode_one_to_one(
        self, policy: PrivacyLevelPolicy, level: PrivacyLevel, mode: DataProcessingMode,
    ) -> None:
        assert policy.processing_mode(level) == mode
        assert level.security_level == mode.security_level

    def test_decide_minimum(self, policy: PrivacyLevelPolicy) -> None:
        d = policy.decide(_validation())
        assert d.level == PrivacyLevel.MINIMUM
        assert d.mode == DataProcessingMode.LOCAL_ONLY
        assert not d.requires_encryption
        assert not d.requires_memory_poisoning

    def test_decide_high_poisons_memory(self, policy: PrivacyLevelPolicy) -> None:
        d = policy.decide(_validation(sensitivity=0.65, encrypt=True))
        assert d.level == PrivacyLevel.HIGH
        assert d.mode == DataProcessingMode.ENCRYPTED_LOCAL
        assert d.requires_encryption
        assert d.requires_memory_poisoning

    def test_decide_moderate_encrypts_without_poisoning(self, policy: PrivacyLevelPolicy) -> None:
        d = policy.decide(_validation(pii=PIILevel.MINIMAL, encrypt=True))
        assert d.level == PrivacyLevel.MODERATE
        assert d.requires_encryption
        assert not d.requires_memory_poisoning


class TestOrderedEnums:
    def test_privacy_levels_ordered(self) -> None:
        assert PrivacyLevel.MINIMUM < PrivacyLevel.MODERATE < PrivacyLevel.HIGH < PrivacyLevel.MAXIMUM
        assert max(PrivacyLevel.HIGH, PrivacyLevel.MODERATE) == PrivacyLevel.HIGH

    def test_order_is_declaration_not_alphabetical(self) -> None:
        # "high" < "maximum" < "minimum" < "moderate" as strings
        assert PrivacyLevel.MINIMUM < PrivacyLevel.HIGH

    def test_security_levels(self) -> None:
        assert [lvl.security_level for lvl in PrivacyLevel] == [1, 2, 3, 4]

    def test_plain_string_compared_by_rank(self) -> None:
        assert PrivacyLevel.HIGH < "maximum"
        assert PrivacyLevel.MINIMUM < "high"
        assert "maximum" > PrivacyLevel.HIGH
        assert RiskSeverity.CRITICAL >= "high"

    def test_unknown_string_rejected(self) -> None:
        with pytest.raises(ValueError):
            PrivacyLevel.HIGH < "extreme"

    def test_other_enum_rejected(self) -> None:
        with pytest.raises(TypeError):
            PrivacyLevel.HIGH < PIILevel.AGGRESSIVE
        with pytest.raises(TypeError):
            PrivacyLevel.HIGH < 3
