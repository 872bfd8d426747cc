"""Result of a single state transition.

Engine functions are pure: they take the current document and the actor and
return a ``Transition`` holding the new document, the audit entry to record
and the events to emit once the new document is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

# Stands in for signature data in audit payloads
REDACTED = "[redacted]"


class EventType(str, Enum):
    """Events consumed by the external webhook/notification dispatcher."""

    TRA_SUBMITTED = "tra.submitted"
    TRA_APPROVED = "tra.approved"
    TRA_REJECTED = "tra.rejected"
    LMRA_COMPLETED = "lmra.completed"
    LMRA_STOP_WORK = "lmra.stop_work"


@dataclass(frozen=True)
class DomainEvent:
    event_type: EventType
    organization_id: str
    subject_id: str
    actor_id: str
    occurred_at: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type.value,
            "organizationId": self.organization_id,
            "subjectId": self.subject_id,
            "actorId": self.actor_id,
            "occurredAt": self.occurred_at.isoformat(),
            "data": self.data,
        }


@dataclass(frozen=True)
class AuditEntry:
    organization_id: str
    subject_id: str
    actor_id: str
    action: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Transition(Generic[T]):
    """New document state plus its side effects."""

    document: T
    audit: Optional[AuditEntry] = None
    events: List[DomainEvent] = field(default_factory=list)
