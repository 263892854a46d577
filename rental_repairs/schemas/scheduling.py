"""
Scheduling snapshots and resolver decisions.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from rental_repairs.core.exceptions import (
    EmergencyOverrideConflict,
    SchedulingConflict,
    SpecializationMismatch,
    UnitConflict,
    WorkerUnitLimit,
)
from rental_repairs.schemas.common.base import FrozenSchema
from rental_repairs.utils.date_utils import to_utc

__all__ = [
    "ConflictType",
    "ExistingBooking",
    "SchedulingTarget",
    "CancelledBooking",
    "SchedulingDecision",
    "EmergencyOverrideResult",
    "SchedulingOutcome",
]

EMERGENCY_CANCELLATION_REASON = "Cancelled due to emergency request override"


class ConflictType(str, Enum):
    NONE = "None"
    SPECIALIZATION_MISMATCH = "SpecializationMismatch"
    UNIT_CONFLICT = "UnitConflict"
    WORKER_UNIT_LIMIT = "WorkerUnitLimit"
    EMERGENCY_CONFLICT = "EmergencyConflict"


class ExistingBooking(FrozenSchema):
    """Who is booked on a unit for a day, joined from requests and workers."""

    request_id: str = Field(..., description="Request holding the booking")
    property_code: str
    unit_number: str
    worker_email: str
    worker_specialization: Optional[str] = None
    work_order_number: Optional[str] = None
    scheduled_date: datetime
    is_active: bool = True
    is_emergency: bool = False

    @field_validator("worker_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("scheduled_date")
    @classmethod
    def utc_date(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def day(self) -> date:
        return self.scheduled_date.date()


class SchedulingTarget(FrozenSchema):
    """Proposed booking checked by the resolver."""

    request_id: str
    property_code: str
    unit_number: str
    scheduled_date: datetime
    worker_email: str
    worker_specialization: Optional[str] = None
    required_specialization: Optional[str] = None
    is_emergency: bool = False

    @field_validator("worker_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("scheduled_date")
    @classmethod
    def utc_date(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def day(self) -> date:
        return self.scheduled_date.date()


class CancelledBooking(FrozenSchema):
    """Audit record for a booking revoked by an emergency."""

    request_id: str
    worker_email: str
    work_order_number: Optional[str] = None
    original_date: datetime
    reason: str = EMERGENCY_CANCELLATION_REASON

    @classmethod
    def from_booking(cls, booking: ExistingBooking, reason: str = EMERGENCY_CANCELLATION_REASON) -> "CancelledBooking":
        return cls(
            request_id=booking.request_id,
            worker_email=booking.worker_email,
            work_order_number=booking.work_order_number,
            original_date=booking.scheduled_date,
            reason=reason,
        )


class SchedulingDecision(FrozenSchema):
    """
    Resolver output: accept, reject, or accept with a cancellation plan.

    ``requests_to_cancel`` is only populated on the emergency path.
    ``emergency_conflicts`` lists emergency bookings that still block
    the slot; a decision carrying them must not be committed.
    """

    is_valid: bool
    conflict_type: ConflictType = ConflictType.NONE
    message: str = ""
    conflicting_bookings: List[ExistingBooking] = Field(default_factory=list)
    requests_to_cancel: List[ExistingBooking] = Field(default_factory=list)
    emergency_conflicts: List[ExistingBooking] = Field(default_factory=list)

    @property
    def has_emergency_conflicts(self) -> bool:
        return bool(self.emergency_conflicts)

    @property
    def requires_override(self) -> bool:
        return bool(self.requests_to_cancel)

    @property
    def can_commit(self) -> bool:
        return self.is_valid and not self.has_emergency_conflicts

    @property
    def cancelled_request_ids(self) -> List[str]:
        return [b.request_id for b in self.requests_to_cancel]

    def to_exception(self) -> Optional[SchedulingConflict]:
        if self.conflict_type == ConflictType.SPECIALIZATION_MISMATCH:
            return SpecializationMismatch(self.message, self.conflicting_bookings)
        if self.conflict_type == ConflictType.UNIT_CONFLICT:
            return UnitConflict(self.message, self.conflicting_bookings)
        if self.conflict_type == ConflictType.WORKER_UNIT_LIMIT:
            return WorkerUnitLimit(self.message, self.conflicting_bookings)
        if self.has_emergency_conflicts:
            return EmergencyOverrideConflict(self.message, self.emergency_conflicts)
        return None

    def raise_if_rejected(self) -> None:
        error = self.to_exception()
        if error is not None:
            raise error


class EmergencyOverrideResult(FrozenSchema):
    """Cancellations carried out for one emergency booking."""

    cancelled_request_ids: List[str] = Field(default_factory=list)
    cancelled_bookings: List[CancelledBooking] = Field(default_factory=list)
    reason: str = ""

    @property
    def cancelled_count(self) -> int:
        return len(self.cancelled_bookings)


class SchedulingOutcome(FrozenSchema):
    """What a committed scheduling call did."""

    request_id: str
    worker_email: str
    work_order_number: str
    scheduled_date: datetime
    is_emergency: bool = False
    emergency_override: Optional[EmergencyOverrideResult] = None

    @property
    def cancelled_request_ids(self) -> List[str]:
        if self.emergency_override is None:
            return []
        return list(self.emergency_override.cancelled_request_ids)
