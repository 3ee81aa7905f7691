"""Persistence layer — append-only audit log."""

from aegis.persistence.audit_log import AuditLog, AuditRecord

__all__ = ["AuditLog", "AuditRecord"]
