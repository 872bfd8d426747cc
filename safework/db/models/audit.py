"""Audit log model for SafeWork.

Entries are append-only; nothing in the application updates or deletes them.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy import Column, String, DateTime, JSON

from safework.db.base import Base


class AuditSeverity(str, Enum):
    """Severity levels for audit log entries."""
    INFO = "info"         # Standard operations
    WARNING = "warning"   # Safety-relevant outcomes (stop-work, rejections)
    CRITICAL = "critical" # Security-relevant events


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Immutable audit log entry."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    org_id = Column(String(128), nullable=False, index=True)
    subject_id = Column(String(128), nullable=False, index=True)
    actor_id = Column(String(128), nullable=True, index=True)

    action = Column(String(100), nullable=False, index=True)
    payload = Column(JSON, nullable=True)

    severity = Column(String(20), nullable=False, default="info", index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} on {self.subject_id} by {self.actor_id}>"

    @classmethod
    def create_entry(
        cls,
        org_id: str,
        subject_id: str,
        action: str,
        *,
        actor_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        severity: AuditSeverity = AuditSeverity.INFO,
    ) -> "AuditLog":
        """
        Factory method to create a new audit log entry.

        Args:
            org_id: Organization ID
            subject_id: ID of the TRA or LMRA session acted on
            action: Action performed (e.g., 'tra.submit', 'approval.decision')
            actor_id: ID of the user performing the action
            payload: Action details, already redacted
            severity: Log severity level
        """
        return cls(
            org_id=org_id,
            subject_id=subject_id,
            actor_id=actor_id,
            action=action,
            payload=payload,
            severity=severity.value if isinstance(severity, AuditSeverity) else severity,
        )
