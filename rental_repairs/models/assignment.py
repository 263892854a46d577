"""
Work assignment value object owned by a worker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional

from rental_repairs.core.exceptions import InvalidAssignment
from rental_repairs.utils.date_utils import as_calendar_day, to_utc

__all__ = ["Assignment", "normalize_work_order_number"]

WORK_ORDER_PATTERN = re.compile(r"^[A-Z0-9\-]{3,20}$")
MAX_NOTES_LENGTH = 500
MAX_COMPLETION_NOTES_LENGTH = 1000


def normalize_work_order_number(value: Optional[str]) -> str:
    """Upper-case and validate a work-order number."""
    text = (value or "").strip().upper()
    if not text:
        raise InvalidAssignment("Work order number is required")
    if not WORK_ORDER_PATTERN.match(text):
        raise InvalidAssignment(
            f"Invalid work order number '{value}': expected 3-20 letters, digits or hyphens",
            {"work_order_number": value},
        )
    return text


def _clean_notes(value: Optional[str], limit: int, label: str) -> Optional[str]:
    text = (value or "").strip()
    if not text:
        return None
    if len(text) > limit:
        raise InvalidAssignment(f"{label} cannot exceed {limit} characters")
    return text


@dataclass(frozen=True)
class Assignment:
    """
    One booking in a worker's schedule.

    Instances are immutable; completion and cancellation return a new copy
    that the owning tracker stores under the same work-order number.
    """

    work_order_number: str
    scheduled_at: datetime
    assigned_at: datetime
    notes: Optional[str] = None
    is_emergency: bool = False
    is_completed: bool = False
    completed_successfully: Optional[bool] = None
    completion_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled: bool = False

    @classmethod
    def create(
        cls,
        work_order_number: str,
        scheduled_at: datetime,
        assigned_at: datetime,
        notes: Optional[str] = None,
        is_emergency: bool = False,
    ) -> "Assignment":
        return cls(
            work_order_number=normalize_work_order_number(work_order_number),
            scheduled_at=to_utc(scheduled_at),
            assigned_at=to_utc(assigned_at),
            notes=_clean_notes(notes, MAX_NOTES_LENGTH, "Assignment notes"),
            is_emergency=is_emergency,
        )

    @property
    def is_active(self) -> bool:
        return not self.is_completed

    @property
    def day(self) -> date:
        return as_calendar_day(self.scheduled_at)

    def window_end(self, window_hours: int) -> datetime:
        return self.scheduled_at + timedelta(hours=window_hours)

    def overlaps(self, start: datetime, end: datetime, window_hours: int) -> bool:
        """Half-open overlap of [start, end) with this booking's window."""
        start = to_utc(start)
        end = to_utc(end)
        return start < self.window_end(window_hours) and self.scheduled_at < end

    def complete(self, successful: bool, completed_at: datetime, notes: Optional[str] = None) -> "Assignment":
        if self.is_completed:
            raise InvalidAssignment(f"Work order {self.work_order_number} is already completed")
        return replace(
            self,
            is_completed=True,
            completed_successfully=successful,
            completion_notes=_clean_notes(notes, MAX_COMPLETION_NOTES_LENGTH, "Completion notes"),
            completed_at=to_utc(completed_at),
        )

    def cancel(self, reason: str, cancelled_at: datetime) -> "Assignment":
        cancelled = self.complete(False, cancelled_at, reason)
        return replace(cancelled, cancelled=True)
