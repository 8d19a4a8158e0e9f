"""Audit logging package."""

from bizledger.audit.logger import AUDIT_KEY, AuditLogger

__all__ = ["AUDIT_KEY", "AuditLogger"]
