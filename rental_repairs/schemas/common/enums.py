"""
Closed value sets shared across the engine.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict

__all__ = [
    "RequestStatus",
    "StatusCategory",
    "Urgency",
    "UserRole",
    "RequestAction",
    "WorkerSpecialization",
    "EscalationLevel",
]


class RequestStatus(str, Enum):
    """Maintenance request lifecycle states."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    SCHEDULED = "Scheduled"
    DONE = "Done"
    FAILED = "Failed"
    DECLINED = "Declined"
    CLOSED = "Closed"

    @classmethod
    def parse(cls, value: str) -> "RequestStatus":
        """Case-insensitive lookup by value or member name."""
        if isinstance(value, cls):
            return value
        text = (value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text or member.name.lower() == text:
                return member
        raise ValueError(f"Invalid request status: {value!r}")


class StatusCategory(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Urgency(str, Enum):
    """Request urgency, ordered Low < Normal < High < Critical < Emergency."""

    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    CRITICAL = "Critical"
    EMERGENCY = "Emergency"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]

    @property
    def is_emergency(self) -> bool:
        return self in (Urgency.CRITICAL, Urgency.EMERGENCY)

    @property
    def expected_resolution_hours(self) -> int:
        return _RESOLUTION_HOURS[self]

    def __lt__(self, other):
        if isinstance(other, Urgency):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, Urgency):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, Urgency):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, Urgency):
            return self.rank >= other.rank
        return NotImplemented

    @classmethod
    def parse(cls, value: str) -> "Urgency":
        if isinstance(value, cls):
            return value
        text = (value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Invalid urgency level: {value!r}")


_URGENCY_RANK: Dict[Urgency, int] = {
    Urgency.LOW: 0,
    Urgency.NORMAL: 1,
    Urgency.HIGH: 2,
    Urgency.CRITICAL: 3,
    Urgency.EMERGENCY: 4,
}

_RESOLUTION_HOURS: Dict[Urgency, int] = {
    Urgency.EMERGENCY: 2,
    Urgency.CRITICAL: 4,
    Urgency.HIGH: 24,
    Urgency.NORMAL: 72,
    Urgency.LOW: 168,
}


class UserRole(str, Enum):
    TENANT = "Tenant"
    PROPERTY_SUPERINTENDENT = "PropertySuperintendent"
    WORKER = "Worker"
    SYSTEM_ADMIN = "SystemAdmin"

    @classmethod
    def parse(cls, value: str) -> "UserRole":
        """Accepts the role strings supplied by the authorization source."""
        if isinstance(value, cls):
            return value
        text = (value or "").strip().replace(" ", "").replace("_", "").lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown role: {value!r}")


class RequestAction(str, Enum):
    EDIT = "Edit"
    SUBMIT = "Submit"
    CANCEL = "Cancel"
    ASSIGN_WORKER = "AssignWorker"
    SCHEDULE = "Schedule"
    RESCHEDULE = "Reschedule"
    DECLINE = "Decline"
    COMPLETE_WORK = "CompleteWork"
    REPORT_ISSUE = "ReportIssue"
    CLOSE = "Close"


class WorkerSpecialization(str, Enum):
    GENERAL_MAINTENANCE = "General Maintenance"
    PLUMBING = "Plumbing"
    ELECTRICAL = "Electrical"
    HVAC = "HVAC"
    CARPENTRY = "Carpentry"
    PAINTING = "Painting"
    LOCKSMITH = "Locksmith"
    APPLIANCE_REPAIR = "Appliance Repair"

    @property
    def description(self) -> str:
        return _SPECIALIZATION_DESCRIPTIONS[self]


_SPECIALIZATION_DESCRIPTIONS: Dict[WorkerSpecialization, str] = {
    WorkerSpecialization.GENERAL_MAINTENANCE: "General repairs and upkeep",
    WorkerSpecialization.PLUMBING: "Pipes, fixtures, drains and water systems",
    WorkerSpecialization.ELECTRICAL: "Wiring, outlets, lighting and breakers",
    WorkerSpecialization.HVAC: "Heating, ventilation and air conditioning",
    WorkerSpecialization.CARPENTRY: "Woodwork, cabinets, shelving and trim",
    WorkerSpecialization.PAINTING: "Interior and exterior painting",
    WorkerSpecialization.LOCKSMITH: "Locks, keys and entry security",
    WorkerSpecialization.APPLIANCE_REPAIR: "Kitchen and laundry appliances",
}


class EscalationLevel(str, Enum):
    NONE = "None"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
