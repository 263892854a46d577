from rental_repairs.core.events.domain_events import (
    BaseDomainEvent,
    EventCategory,
    EventSeverity,
)
from rental_repairs.core.events.event_bus import EventBus

__all__ = ["BaseDomainEvent", "EventCategory", "EventSeverity", "EventBus"]
