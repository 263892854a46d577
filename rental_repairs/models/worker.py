"""
Worker aggregate: a service technician and the bookings it owns.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Set, Union

from rental_repairs.config.settings import SchedulingSettings, get_settings
from rental_repairs.core.events.domain_events import (
    BaseDomainEvent,
    WorkerActivated,
    WorkerDeactivated,
    WorkerSpecializationChanged,
)
from rental_repairs.core.exceptions import DomainError, MissingRequiredData
from rental_repairs.models.assignment import Assignment
from rental_repairs.models.availability import WorkerAvailabilityTracker
from rental_repairs.schemas.common.enums import WorkerSpecialization
from rental_repairs.services.scheduling.specialization import parse_specialization
from rental_repairs.utils.date_utils import Clock, DateLike, format_date, now_utc

logger = logging.getLogger(__name__)

__all__ = ["Worker", "normalize_email"]


def normalize_email(value: Optional[str], field_name: str = "email") -> str:
    text = (value or "").strip().lower()
    if not text:
        raise MissingRequiredData([field_name])
    if "@" not in text:
        raise DomainError(f"Invalid {field_name}: {value!r}", details={"field": field_name})
    return text


class Worker:
    """
    Service technician.

    Created active. An inactive worker has no availability and cannot take
    new assignments; existing bookings are kept for history.
    """

    def __init__(
        self,
        email: str,
        first_name: str,
        last_name: str,
        specialization: Union[WorkerSpecialization, str, None] = None,
        phone: Optional[str] = None,
        *,
        worker_id: Optional[str] = None,
        settings: Optional[SchedulingSettings] = None,
        clock: Clock = now_utc,
    ):
        if not (first_name or "").strip() or not (last_name or "").strip():
            raise MissingRequiredData(["first_name", "last_name"])

        self.worker_id = worker_id or str(uuid.uuid4())
        self.email = normalize_email(email)
        self.first_name = first_name.strip()
        self.last_name = last_name.strip()
        self.phone = phone
        self.is_active = True
        self.notes: Optional[str] = None
        self.specialization = self._coerce_specialization(specialization)
        self._clock = clock
        self._events: List[BaseDomainEvent] = []
        self.availability = WorkerAvailabilityTracker(
            self,
            settings or get_settings().scheduling,
            clock,
        )

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"Worker({self.email!r}, {self.specialization.value!r}, {state})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @staticmethod
    def _coerce_specialization(value: Union[WorkerSpecialization, str, None]) -> WorkerSpecialization:
        parsed = parse_specialization(value)
        if parsed is None:
            raise DomainError(f"Unknown specialization: {value!r}", details={"specialization": value})
        return parsed

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def add_note(self, note: str) -> None:
        text = (note or "").strip()
        if not text:
            return
        entry = f"{format_date(self._clock().date())}: {text}"
        self.notes = f"{self.notes}\n{entry}" if self.notes else entry

    def activate(self, reason: Optional[str] = None) -> None:
        if self.is_active:
            return
        self.is_active = True
        self.add_note(f"Activated{': ' + reason.strip() if reason and reason.strip() else ''}")
        self._record_event(WorkerActivated(entity_id=self.email, data={"reason": reason}))

    def deactivate(self, reason: str) -> None:
        if not (reason or "").strip():
            raise MissingRequiredData(["reason"], "A reason is required to deactivate a worker")
        if not self.is_active:
            return
        self.is_active = False
        self.add_note(f"Deactivated: {reason.strip()}")
        self._record_event(WorkerDeactivated(entity_id=self.email, data={"reason": reason}))
        logger.info(f"Worker {self.email} deactivated")

    def set_specialization(self, specialization: Union[WorkerSpecialization, str]) -> None:
        new_value = self._coerce_specialization(specialization)
        if new_value == self.specialization:
            return
        previous = self.specialization
        self.specialization = new_value
        self._record_event(WorkerSpecializationChanged(
            entity_id=self.email,
            data={"previous": previous.value, "current": new_value.value},
        ))

    # ------------------------------------------------------------------
    # Bookings (delegated to the tracker)
    # ------------------------------------------------------------------

    @property
    def assignments(self) -> List[Assignment]:
        return self.availability.assignments

    @property
    def active_assignment_count(self) -> int:
        return len(self.availability.active_assignments())

    def assign(self, work_order_number: str, scheduled_at: DateLike,
               notes: Optional[str] = None, emergency: bool = False) -> Assignment:
        return self.availability.assign(work_order_number, scheduled_at, notes, emergency)

    def complete(self, work_order_number: str, successful: bool, notes: Optional[str] = None) -> Assignment:
        return self.availability.complete(work_order_number, successful, notes)

    def cancel_assignment(self, work_order_number: str, reason: str) -> Assignment:
        return self.availability.cancel(work_order_number, reason)

    def is_available(self, when: DateLike, duration: Optional[timedelta] = None) -> bool:
        return self.availability.is_available(when, duration)

    def booked_dates(self, range_start: DateLike, range_end: DateLike, emergency: bool = False) -> Set[date]:
        return self.availability.booked_dates(range_start, range_end, emergency)

    def partially_booked_dates(self, range_start: DateLike, range_end: DateLike) -> Set[date]:
        return self.availability.partially_booked_dates(range_start, range_end)

    def availability_score(self, when: DateLike, emergency: bool = False) -> int:
        return self.availability.availability_score(when, emergency)

    def next_fully_available_date(self, from_date: Optional[DateLike] = None,
                                  horizon_days: Optional[int] = None) -> Optional[date]:
        return self.availability.next_fully_available_date(from_date, horizon_days)

    def upcoming_workload(self, from_date: Optional[DateLike] = None, days_ahead: Optional[int] = None) -> int:
        return self.availability.upcoming_workload(from_date, days_ahead)

    def ranking_score(self, from_date: Optional[DateLike] = None) -> int:
        return self.availability.ranking_score(from_date)

    # ------------------------------------------------------------------
    # Events and snapshots
    # ------------------------------------------------------------------

    def _record_event(self, event: BaseDomainEvent) -> None:
        self._events.append(event)

    @property
    def pending_events(self) -> List[BaseDomainEvent]:
        return list(self._events)

    def pull_events(self) -> List[BaseDomainEvent]:
        events, self._events = self._events, []
        return events

    def snapshot(self) -> Dict[str, Any]:
        return {
            "is_active": self.is_active,
            "notes": self.notes,
            "specialization": self.specialization,
            "events": list(self._events),
            "assignments": self.availability.snapshot(),
        }

    def restore(self, state: Dict[str, Any]) -> None:
        self.is_active = state["is_active"]
        self.notes = state["notes"]
        self.specialization = state["specialization"]
        self._events = list(state["events"])
        self.availability.restore(state["assignments"])
