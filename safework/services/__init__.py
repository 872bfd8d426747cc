"""Collaborator services for SafeWork: audit recording and event dispatch."""

from safework.services.audit import (
    AuditRecorder,
    SQLAlchemyAuditRecorder,
    LoggingAuditRecorder,
    InMemoryAuditRecorder,
    record_safely,
)
from safework.services.events import EventDispatcher, EventRecorder

__all__ = [
    "AuditRecorder",
    "SQLAlchemyAuditRecorder",
    "LoggingAuditRecorder",
    "InMemoryAuditRecorder",
    "record_safely",
    "EventDispatcher",
    "EventRecorder",
]
