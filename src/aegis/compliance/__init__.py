"""Compliance module — serialized metrics, audit trail and reports."""

from aegis.compliance.aggregator import ComplianceAggregator

__all__ = ["ComplianceAggregator"]
