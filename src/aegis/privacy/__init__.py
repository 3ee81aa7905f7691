"""Privacy module — risk detection and protection-level policy."""

from aegis.privacy.detector import PrivacyRiskDetector
from aegis.privacy.level_policy import PrivacyDecision, PrivacyLevelPolicy

__all__ = ["PrivacyDecision", "PrivacyLevelPolicy", "PrivacyRiskDetector"]
