"""In-process event dispatch for workflow and field-session transitions.

Handlers are the hook for the external webhook/notification dispatcher. The
services emit each event once, after the transition is persisted. Handler
failures are logged and never fail the transition.
"""

import logging
from typing import Callable, Dict, List, Optional

from safework.core.transition import DomainEvent, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Routes domain events to subscribed handlers."""

    def __init__(self):
        self._handlers: Dict[Optional[EventType], List[EventHandler]] = {}

    def subscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        """
        Register a handler.

        Args:
            handler: Function called with each matching event
            event_type: Event to listen for; None subscribes to every event
        """
        self._handlers.setdefault(event_type, []).append(handler)

    def emit(self, event: DomainEvent) -> int:
        """
        Deliver an event to its handlers.

        Returns:
            Number of handlers that ran without error
        """
        delivered = 0
        handlers = self._handlers.get(event.event_type, []) + self._handlers.get(None, [])
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Event handler %r failed for %s on %s",
                    handler, event.event_type.value, event.subject_id,
                )
        return delivered

    def emit_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            if event.event_type == EventType.LMRA_STOP_WORK:
                logger.warning(
                    "Stop-work raised on LMRA session %s by %s", event.subject_id, event.actor_id
                )
            self.emit(event)


class EventRecorder:
    """Handler that keeps every event it receives."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [e.event_type.value for e in self.events]
