import json
import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class EventCategory(Enum):
    """Event category for domain events"""
    REQUEST = "request"
    WORKER = "worker"
    SCHEDULING = "scheduling"
    SYSTEM = "system"


class EventSeverity(Enum):
    """Severity level for events"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class BaseDomainEvent:
    """Base domain event class"""

    # Metadata fields
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Optional[str] = None
    event_category: EventCategory = EventCategory.SYSTEM
    event_severity: EventSeverity = EventSeverity.INFO
    timestamp: float = field(default_factory=time.time)
    version: str = "1.0"
    correlation_id: Optional[str] = None

    # Data fields
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.event_type is None:
            self.event_type = self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        event_dict = asdict(self)
        event_dict['event_category'] = self.event_category.value
        event_dict['event_severity'] = self.event_severity.value
        return event_dict

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


# Request events
@dataclass
class RequestCreated(BaseDomainEvent):
    """Event when a maintenance request is drafted"""
    event_category: EventCategory = EventCategory.REQUEST
    entity_type: str = "request"


@dataclass
class RequestSubmitted(BaseDomainEvent):
    """Event when a tenant submits a request"""
    event_category: EventCategory = EventCategory.REQUEST
    entity_type: str = "request"


@dataclass
class RequestScheduled(BaseDomainEvent):
    """Event when a worker and date are booked for a request"""
    event_category: EventCategory = EventCategory.SCHEDULING
    entity_type: str = "request"


@dataclass
class RequestWorkCompleted(BaseDomainEvent):
    """Event when the worker reports an outcome (Done or Failed)"""
    event_category: EventCategory = EventCategory.REQUEST
    entity_type: str = "request"


@dataclass
class RequestDeclined(BaseDomainEvent):
    event_category: EventCategory = EventCategory.REQUEST
    entity_type: str = "request"


@dataclass
class RequestClosed(BaseDomainEvent):
    event_category: EventCategory = EventCategory.REQUEST
    entity_type: str = "request"


@dataclass
class RequestStatusChanged(BaseDomainEvent):
    """Audit record of any status transition"""
    event_category: EventCategory = EventCategory.REQUEST
    entity_type: str = "request"


@dataclass
class RequestReleasedByEmergencyOverride(BaseDomainEvent):
    """Event when an emergency booking revokes this request's assignment"""
    event_category: EventCategory = EventCategory.SCHEDULING
    event_severity: EventSeverity = EventSeverity.WARNING
    entity_type: str = "request"


# Worker events
@dataclass
class WorkerAssigned(BaseDomainEvent):
    event_category: EventCategory = EventCategory.WORKER
    entity_type: str = "worker"


@dataclass
class WorkerAssignmentCompleted(BaseDomainEvent):
    event_category: EventCategory = EventCategory.WORKER
    entity_type: str = "worker"


@dataclass
class WorkerAssignmentCancelled(BaseDomainEvent):
    event_category: EventCategory = EventCategory.WORKER
    event_severity: EventSeverity = EventSeverity.WARNING
    entity_type: str = "worker"


@dataclass
class WorkerActivated(BaseDomainEvent):
    event_category: EventCategory = EventCategory.WORKER
    entity_type: str = "worker"


@dataclass
class WorkerDeactivated(BaseDomainEvent):
    event_category: EventCategory = EventCategory.WORKER
    event_severity: EventSeverity = EventSeverity.WARNING
    entity_type: str = "worker"


@dataclass
class WorkerSpecializationChanged(BaseDomainEvent):
    event_category: EventCategory = EventCategory.WORKER
    entity_type: str = "worker"
