"""Privacy level policy — decides the required protection for a validation.

Pure lookup, no state:
  level = max(level from sensitivity band, floor from PII level)
  raised to at least MODERATE whenever the validation requires encryption,
  because MINIMUM is the only level that does not encrypt.

The decided level then fixes the processing mode one-to-one and the
memory-poisoning signal for the external secure-wipe subsystem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aegis.models.privacy import (
    DataProcessingMode,
    PrivacyLevel,
    PrivacyValidation,
)
from aegis.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrivacyDecision:
    """What the encryption subsystem must apply to one message."""
    level: PrivacyLevel
    mode: DataProcessingMode
    requires_encryption: bool
    requires_memory_poisoning: bool


class PrivacyLevelPolicy:
    """Maps PrivacyValidations to PrivacyLevels and processing modes."""

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver

    def level_for_sensitivity(self, sensitivity: float) -> PrivacyLevel:
        for minimum, level in self._resolver.sensitivity_bands():
            if sensitivity >= minimum:
                return level
        return PrivacyLevel.MINIMUM

    def required_level(self, validation: PrivacyValidation) -> PrivacyLevel:
        level = max(
            self.level_for_sensitivity(validation.sensitivity_level),
            self._resolver.pii_floor(validation.pii_level),
        )
        if validation.requires_encryption and not level.requires_encryption:
            level = PrivacyLevel.MODERATE
        return level

    def processing_mode(self, level: PrivacyLevel) -> DataProcessingMode:
        return self._resolver.processing_mode(level)

    def decide(self, validation: PrivacyValidation) -> PrivacyDecision:
        level = self.required_level(validation)
        decision = PrivacyDecision(
            level=level,
            mode=self.processing_mode(level),
            requires_encryption=level.requires_encryption,
            requires_memory_poisoning=level.requires_memory_poisoning,
        )
        logger.debug(
            "Privacy decision for %s: level=%s mode=%s",
            validation.message_id, decision.level.value, decision.mode.value,
        )
        return decision
