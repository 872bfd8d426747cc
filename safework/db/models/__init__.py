"""Database models for SafeWork."""

from safework.db.models.document import Document
from safework.db.models.audit import AuditLog, AuditSeverity

__all__ = [
    "Document",
    "AuditLog",
    "AuditSeverity",
]
