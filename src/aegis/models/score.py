"""Score primitive — the clamped [0, 1] scalar behind every metric.

Every quality dimension, confidence value and sensitivity level in Aegis
is a ScoreValue. Construction never fails for numeric input: out-of-range
values are clamped, NaN collapses to 0.0. Within range the value is kept
exactly, so ScoreValue(x) == x for 0.0 <= x <= 1.0.
"""

from __future__ import annotations

import math
from typing import Optional, SupportsFloat


def clamp(value: SupportsFloat, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp a value to [lo, hi]. NaN maps to lo."""
    v = float(value)
    if math.isnan(v):
        return lo
    return max(lo, min(hi, v))


class ScoreValue(float):
    """A float guaranteed to lie in the closed interval [0.0, 1.0]."""

    __slots__ = ()

    MIN = 0.0
    MAX = 1.0

    def __new__(cls, value: SupportsFloat = 0.0) -> ScoreValue:
        return super().__new__(cls, clamp(value, cls.MIN, cls.MAX))

    def __repr__(self) -> str:
        return f"ScoreValue({float(self)!r})"

    def complement(self) -> ScoreValue:
        """Return 1 - self (e.g. certainty from uncertainty)."""
        return ScoreValue(1.0 - float(self))

    def as_percent(self) -> float:
        return float(self) * 100.0


def optional_score(value: Optional[SupportsFloat]) -> Optional[ScoreValue]:
    """Clamp an optional input, keeping None as None."""
    if value is None:
        return None
    return ScoreValue(value)
