"""Policy resolver — loads quality_params.json and privacy_policy.json
and exposes every threshold, weight and band as a typed method call.

No magic. No defaults. If a value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from aegis.models.privacy import (
    DataProcessingMode,
    EncryptionStatus,
    PIILevel,
    PrivacyLevel,
    RiskSeverity,
)


_SUGGESTION_KEYS = (
    "content_quality",
    "factual_accuracy",
    "relevance",
    "coherence",
    "completeness",
    "clarity",
    "critical_uncertainty",
)


class PolicyResolver:
    """Loads and resolves all quality and privacy policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        weights = resolver.composite_weights()
        level = resolver.pii_floor(PIILevel.MODERATE)
    """

    def __init__(self, quality: dict[str, Any], privacy: dict[str, Any]) -> None:
        self._quality = quality
        self._privacy = privacy
        self._validate_versions()
        self._validate_weights()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        quality = _load_json(config_dir / "quality_params.json")
        privacy = _load_json(config_dir / "privacy_policy.json")
        return cls(quality, privacy)

    def _validate_versions(self) -> None:
        if "version" not in self._quality:
            raise ValueError("quality_params.json missing version")
        if "version" not in self._privacy:
            raise ValueError("privacy_policy.json missing version")

    def _validate_weights(self) -> None:
        total = sum(self.composite_weights())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(
                f"composite_weights must sum to 1.0, got {total:.6f}"
            )
        significant, moderate, slight = self.comparison_thresholds()
        if not (significant > moderate > slight > 0.0):
            raise ValueError(
                "comparison thresholds must be strictly decreasing and positive"
            )

    # ------------------------------------------------------------------
    # Quality comparison
    # ------------------------------------------------------------------

    def comparison_thresholds(self) -> tuple[float, float, float]:
        """Return (significant, moderate, slight) overall-score deltas."""
        c = self._quality["comparison"]
        return c["significant_delta"], c["moderate_delta"], c["slight_delta"]

    def composite_weights(self) -> tuple[float, float, float, float]:
        """Return (w_overall, w_factual, w_confidence, w_certainty)."""
        w = self._quality["composite_weights"]
        return (
            w["overall"],
            w["factual_accuracy"],
            w["calibrated_confidence"],
            w["certainty"],
        )

    # ------------------------------------------------------------------
    # Improvement suggestions
    # ------------------------------------------------------------------

    def suggestion_threshold(self) -> float:
        """Dimensions strictly below this value produce a suggestion."""
        return self._quality["suggestions"]["dimension_threshold"]

    def suggestion_messages(self) -> dict[str, str]:
        """Return the fixed suggestion text for each dimension."""
        messages = self._quality["suggestions"]["messages"]
        missing = [k for k in _SUGGESTION_KEYS if k not in messages]
        if missing:
            raise ValueError(f"suggestion messages missing: {', '.join(missing)}")
        return {k: messages[k] for k in _SUGGESTION_KEYS}

    # ------------------------------------------------------------------
    # Risk detection
    # ------------------------------------------------------------------

    def sensitivity_floor(self, severity: RiskSeverity) -> float:
        """Minimum sensitivity implied by the highest detected risk."""
        floors = self._privacy["risk_detection"]["sensitivity_floor_by_risk"]
        value = floors.get(severity.value)
        if value is None:
            raise ValueError(f"No sensitivity floor for risk: {severity.value}")
        return value

    def pii_level_for_exposure(self, severity: RiskSeverity) -> PIILevel:
        """PII level implied by a pii_exposure risk of this severity."""
        mapping = self._privacy["risk_detection"]["pii_level_by_exposure_severity"]
        level = mapping.get(severity.value)
        if level is None:
            raise ValueError(f"No PII level for exposure severity: {severity.value}")
        return PIILevel(level)

    def encryption_triggers(self) -> tuple[float, PIILevel, RiskSeverity]:
        """Return (sensitivity_threshold, min_pii_level, min_risk_severity)."""
        rd = self._privacy["risk_detection"]
        return (
            rd["encryption_sensitivity_threshold"],
            PIILevel(rd["encryption_min_pii_level"]),
            RiskSeverity(rd["encryption_min_risk_severity"]),
        )

    # ------------------------------------------------------------------
    # Privacy level policy
    # ------------------------------------------------------------------

    def sensitivity_bands(self) -> list[tuple[float, PrivacyLevel]]:
        """Return (minimum sensitivity, level) pairs, highest band first."""
        bands = self._privacy["level_policy"]["sensitivity_bands"]
        pairs = [(float(v), PrivacyLevel(k)) for k, v in bands.items()]
        return sorted(pairs, key=lambda p: p[0], reverse=True)

    def pii_floor(self, pii_level: PIILevel) -> PrivacyLevel:
        """Lowest privacy level allowed for a PII level."""
        floors = self._privacy["level_policy"]["pii_floor"]
        level = floors.get(pii_level.value)
        if level is None:
            raise ValueError(f"No privacy floor for PII level: {pii_level.value}")
        return PrivacyLevel(level)

    def processing_mode(self, level: PrivacyLevel) -> DataProcessingMode:
        modes = self._privacy["level_policy"]["processing_modes"]
        mode = modes.get(level.value)
        if mode is None:
            raise ValueError(f"No processing mode for level: {level.value}")
        return DataProcessingMode(mode)

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    def compliance_grade_bands(self) -> tuple[float, float, float]:
        """Return (excellent_min, good_min, fair_min)."""
        g = self._privacy["compliance"]["grade_bands"]
        return g["excellent"], g["good"], g["fair"]

    def encryption_score(self, status: EncryptionStatus) -> float:
        scores = self._privacy["compliance"]["encryption_scores"]
        value = scores.get(status.value)
        if value is None:
            raise ValueError(f"No encryption score for status: {status.value}")
        return value

    def audit_trail_limits(self) -> tuple[int, int]:
        """Return (cap, trim): when the trail exceeds cap, drop the oldest trim."""
        c = self._privacy["compliance"]
        return c["audit_trail_cap"], c["audit_trail_trim"]

    def report_window(self) -> int:
        """Number of most recent audit / processing entries in a report."""
        return self._privacy["compliance"]["report_window"]

    def compliance_recommendations(self) -> dict[str, str]:
        return dict(self._privacy["compliance"]["recommendations"])


def _load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file or raise with clear path."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
