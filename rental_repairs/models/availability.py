"""
Worker availability tracking.

The tracker indexes a worker's assignments by work-order number and
answers capacity, booking and ranking queries over calendar days (UTC).
Only active (non-completed) assignments occupy capacity.
"""

from __future__ import annotations

import logging
import sys
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from rental_repairs.config.settings import SchedulingSettings
from rental_repairs.core.events.domain_events import (
    WorkerAssigned,
    WorkerAssignmentCancelled,
    WorkerAssignmentCompleted,
)
from rental_repairs.core.exceptions import AssignmentNotFound, InvalidAssignment
from rental_repairs.models.assignment import Assignment, normalize_work_order_number
from rental_repairs.utils.date_utils import (
    Clock,
    DateLike,
    as_calendar_day,
    daterange,
    format_date,
    now_utc,
    start_of_day,
    to_utc,
)

if TYPE_CHECKING:
    from rental_repairs.models.worker import Worker

logger = logging.getLogger(__name__)

__all__ = ["WorkerAvailabilityTracker", "FULL_AVAILABILITY"]

FULL_AVAILABILITY = 2
PARTIAL_AVAILABILITY = 1
NO_AVAILABILITY = 0


class WorkerAvailabilityTracker:
    """Booking ledger and availability queries for a single worker."""

    def __init__(
        self,
        owner: "Worker",
        settings: SchedulingSettings,
        clock: Clock = now_utc,
    ):
        self._owner = owner
        self._settings = settings
        self._clock = clock
        self._assignments: Dict[str, Assignment] = {}

    # ------------------------------------------------------------------
    # Ledger access
    # ------------------------------------------------------------------

    @property
    def assignments(self) -> List[Assignment]:
        return list(self._assignments.values())

    def active_assignments(self) -> List[Assignment]:
        return [a for a in self._assignments.values() if a.is_active]

    def get(self, work_order_number: str) -> Optional[Assignment]:
        return self._assignments.get((work_order_number or "").strip().upper())

    def active_on(self, day: DateLike) -> List[Assignment]:
        target = as_calendar_day(day)
        return [a for a in self._assignments.values() if a.is_active and a.day == target]

    def active_count_on(self, day: DateLike) -> int:
        return len(self.active_on(day))

    def _today(self) -> date:
        return self._clock().date()

    def _is_past(self, day: date) -> bool:
        return day < self._today()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_available(self, when: DateLike, duration: Optional[timedelta] = None) -> bool:
        if not self._owner.is_active:
            return False

        day = as_calendar_day(when)
        if self._is_past(day):
            return False

        same_day = self.active_on(day)
        if len(same_day) >= self._settings.DAILY_CAPACITY:
            return False

        if duration is not None:
            start = to_utc(when) if isinstance(when, datetime) else start_of_day(day)
            window = self._settings.ASSIGNMENT_WINDOW_HOURS
            end = start + max(duration, timedelta(hours=window))
            if any(a.overlaps(start, end, window) for a in same_day):
                return False

        return True

    def booked_dates(self, range_start: DateLike, range_end: DateLike, emergency: bool = False) -> Set[date]:
        """Days in range whose active bookings reach the applicable cap."""
        if not self._owner.is_active:
            return set()

        cap = self._daily_cap(emergency)
        return {
            day
            for day in daterange(as_calendar_day(range_start), as_calendar_day(range_end))
            if self.active_count_on(day) >= cap
        }

    def partially_booked_dates(self, range_start: DateLike, range_end: DateLike) -> Set[date]:
        if not self._owner.is_active:
            return set()

        return {
            day
            for day in daterange(as_calendar_day(range_start), as_calendar_day(range_end))
            if self.active_count_on(day) == 1
        }

    def availability_score(self, when: DateLike, emergency: bool = False) -> int:
        """2 for an empty day, 1 while under the cap, 0 when full or unusable."""
        if not self._owner.is_active:
            return NO_AVAILABILITY

        day = as_calendar_day(when)
        if self._is_past(day):
            return NO_AVAILABILITY

        count = self.active_count_on(day)
        if count == 0:
            return FULL_AVAILABILITY
        if count < self._daily_cap(emergency):
            return PARTIAL_AVAILABILITY
        return NO_AVAILABILITY

    def next_fully_available_date(
        self,
        from_date: Optional[DateLike] = None,
        horizon_days: Optional[int] = None,
    ) -> Optional[date]:
        """
        First empty day in [start, start + horizon], where start is
        ``from_date`` clamped to today. The horizon is counted from the
        clamped start.
        """
        if not self._owner.is_active:
            return None

        today = self._today()
        start = max(as_calendar_day(from_date), today) if from_date is not None else today
        horizon = self._settings.AVAILABILITY_HORIZON_DAYS if horizon_days is None else horizon_days

        for day in daterange(start, start + timedelta(days=horizon)):
            if self.availability_score(day) == FULL_AVAILABILITY:
                return day
        return None

    def upcoming_workload(self, from_date: Optional[DateLike] = None, days_ahead: Optional[int] = None) -> int:
        """Active assignments scheduled in [from, from + days_ahead]."""
        start = as_calendar_day(from_date) if from_date is not None else self._today()
        days = self._settings.WORKLOAD_WINDOW_DAYS if days_ahead is None else days_ahead
        end = start + timedelta(days=days)
        return sum(1 for a in self.active_assignments() if start <= a.day <= end)

    def ranking_score(self, from_date: Optional[DateLike] = None) -> int:
        """Lower is better. Days until next free day dominate, workload breaks ties."""
        if not self._owner.is_active:
            return sys.maxsize

        start = as_calendar_day(from_date) if from_date is not None else self._today()
        next_free = self.next_fully_available_date(start)
        if next_free is None:
            days_until = self._settings.UNAVAILABLE_DAYS_PENALTY
        else:
            days_until = (next_free - start).days

        workload = self.upcoming_workload(start, self._settings.RANKING_WORKLOAD_DAYS)
        return days_until * 100 + workload

    def _daily_cap(self, emergency: bool) -> int:
        if emergency:
            return self._settings.EMERGENCY_DAILY_CAPACITY
        return self._settings.DAILY_CAPACITY

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def assign(
        self,
        work_order_number: str,
        scheduled_at: DateLike,
        notes: Optional[str] = None,
        emergency: bool = False,
    ) -> Assignment:
        if not (work_order_number or "").strip():
            raise InvalidAssignment("Work order number is required")
        work_order = normalize_work_order_number(work_order_number)

        if not self._owner.is_active:
            raise InvalidAssignment(
                f"Cannot assign work to inactive worker {self._owner.email}",
                {"worker_email": self._owner.email},
            )

        if not isinstance(scheduled_at, datetime):
            scheduled_at = start_of_day(as_calendar_day(scheduled_at))
        scheduled_at = to_utc(scheduled_at)
        now = self._clock()
        if scheduled_at <= now:
            raise InvalidAssignment(
                "Scheduled date must be in the future",
                {"scheduled_at": scheduled_at.isoformat()},
            )

        if work_order in self._assignments:
            raise InvalidAssignment(
                f"Work order {work_order} is already assigned to {self._owner.email}",
                {"work_order_number": work_order},
            )

        same_day = self.active_on(scheduled_at)
        cap = self._daily_cap(emergency)
        if len(same_day) >= cap:
            raise InvalidAssignment(
                f"Worker {self._owner.email} already has {len(same_day)} assignments on "
                f"{format_date(scheduled_at.date())} (limit {cap})",
                {"date": format_date(scheduled_at.date()), "limit": cap},
            )

        window = self._settings.ASSIGNMENT_WINDOW_HOURS
        end = scheduled_at + timedelta(hours=window)
        for existing in same_day:
            if existing.overlaps(scheduled_at, end, window):
                raise InvalidAssignment(
                    f"Time conflict with work order {existing.work_order_number} "
                    f"scheduled at {existing.scheduled_at:%Y-%m-%d %H:%M}",
                    {
                        "conflicting_work_order": existing.work_order_number,
                        "conflicting_time": existing.scheduled_at.isoformat(),
                    },
                )

        assignment = Assignment.create(work_order, scheduled_at, now, notes, is_emergency=emergency)
        self._assignments[work_order] = assignment

        self._owner._record_event(WorkerAssigned(
            entity_id=self._owner.email,
            data={
                "work_order_number": work_order,
                "scheduled_at": scheduled_at.isoformat(),
                "emergency": emergency,
            },
        ))
        logger.debug(f"Assigned {work_order} to {self._owner.email} at {scheduled_at.isoformat()}")
        return assignment

    def complete(self, work_order_number: str, successful: bool, notes: Optional[str] = None) -> Assignment:
        current = self._require_active(work_order_number)

        completed = current.complete(successful, self._clock(), notes)
        self._assignments[completed.work_order_number] = completed

        self._owner._record_event(WorkerAssignmentCompleted(
            entity_id=self._owner.email,
            data={
                "work_order_number": completed.work_order_number,
                "successful": successful,
            },
        ))
        return completed

    def cancel(self, work_order_number: str, reason: str) -> Assignment:
        """Release an active booking so it stops occupying capacity."""
        current = self._require_active(work_order_number)

        cancelled = current.cancel(reason, self._clock())
        self._assignments[cancelled.work_order_number] = cancelled

        self._owner._record_event(WorkerAssignmentCancelled(
            entity_id=self._owner.email,
            data={
                "work_order_number": cancelled.work_order_number,
                "scheduled_at": cancelled.scheduled_at.isoformat(),
                "reason": reason,
            },
        ))
        return cancelled

    def _require_active(self, work_order_number: str) -> Assignment:
        current = self.get(work_order_number)
        if current is None or not current.is_active:
            raise AssignmentNotFound(work_order_number)
        return current

    # ------------------------------------------------------------------
    # Snapshot support for units of work
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Assignment]:
        return dict(self._assignments)

    def restore(self, snapshot: Dict[str, Assignment]) -> None:
        self._assignments = dict(snapshot)
