"""Quality module — assessment construction and comparison."""

from aegis.quality.comparator import QualityComparator
from aegis.quality.engine import QualityEngine

__all__ = ["QualityComparator", "QualityEngine"]
