"""Privacy risk detector — turns scanner signals into a PrivacyValidation.

Pure computation: the PII / content scanner that finds the risks lives
outside Aegis. This engine only interprets what it reports.

Severity escalation:
  - overall risk is the MAX severity across detected risks, never a sum
    or an average; one critical risk dominates any number of low ones
  - sensitivity is raised to the floor implied by the overall risk
  - PII level follows the worst pii_exposure risk
  - encryption is required when sensitivity, PII level or overall risk
    reaches its policy threshold
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from aegis.models.privacy import (
    PIILevel,
    PrivacyRisk,
    PrivacyValidation,
    RiskSeverity,
    RiskType,
)
from aegis.models.score import ScoreValue
from aegis.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


class PrivacyRiskDetector:
    """Builds PrivacyValidations from detected risk signals.

    Usage:
        detector = PrivacyRiskDetector(resolver)
        validation = detector.validate("msg-1", risks, sensitivity=0.2)
        validation.overall_risk  # → RiskSeverity.CRITICAL if any is critical
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver

    def validate(
        self,
        message_id: Optional[str],
        risks: Iterable[PrivacyRisk],
        sensitivity: Optional[float] = None,
        validation_utc: Optional[datetime] = None,
    ) -> PrivacyValidation:
        """Assess a message from its detected risks.

        Args:
            message_id: Identifier of the message being validated.
            risks: Signals from the external scanner, in detection order.
            sensitivity: Scanner-supplied baseline sensitivity. If None,
                only the risk-implied floor is used.
            validation_utc: Optional timestamp override for testing.
        """
        detected = tuple(risks)
        overall = self.overall_risk(detected)

        baseline = 0.0 if sensitivity is None else float(ScoreValue(sensitivity))
        effective_sensitivity = max(baseline, self._resolver.sensitivity_floor(overall))

        pii_level = self._pii_level(detected)
        requires_encryption = self._requires_encryption(
            effective_sensitivity, pii_level, overall,
        )

        kwargs: dict[str, datetime] = {}
        if validation_utc is not None:
            kwargs["validation_utc"] = validation_utc

        validation = PrivacyValidation(
            sensitivity_level=effective_sensitivity,
            pii_level=pii_level,
            requires_encryption=requires_encryption,
            detected_risks=detected,
            message_id=message_id,
            **kwargs,
        )
        logger.debug(
            "Validated message %s: %d risks, overall=%s, sensitivity=%.2f, pii=%s",
            message_id, len(detected), overall.value,
            effective_sensitivity, pii_level.value,
        )
        return validation

    @staticmethod
    def overall_risk(risks: Iterable[PrivacyRisk]) -> RiskSeverity:
        """Highest severity among risks; LOW when there are none."""
        return max((r.severity for r in risks), default=RiskSeverity.LOW)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _pii_level(self, risks: tuple[PrivacyRisk, ...]) -> PIILevel:
        exposures = [r.severity for r in risks if r.risk_type == RiskType.PII_EXPOSURE]
        if not exposures:
            return PIILevel.NONE
        return self._resolver.pii_level_for_exposure(max(exposures))

    def _requires_encryption(
        self,
        sensitivity: float,
        pii_level: PIILevel,
        overall: RiskSeverity,
    ) -> bool:
        threshold, min_pii, min_risk = self._resolver.encryption_triggers()
        return (
            sensitivity >= threshold
            or pii_level >= min_pii
            or overall >= min_risk
        )
