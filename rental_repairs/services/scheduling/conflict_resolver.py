"""
Unit-level scheduling conflict resolution.

The resolver is pure: it reads a snapshot of the unit's active bookings
for one day and returns a decision. On the emergency path the decision
carries the bookings to revoke; applying them is left to the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from rental_repairs.config.settings import SchedulingSettings, get_settings
from rental_repairs.core.logging import get_logger
from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.models.worker import Worker
from rental_repairs.schemas.scheduling import (
    EMERGENCY_CANCELLATION_REASON,
    CancelledBooking,
    ConflictType,
    EmergencyOverrideResult,
    ExistingBooking,
    SchedulingDecision,
    SchedulingTarget,
)
from rental_repairs.services.scheduling.specialization import SpecializationMatcher
from rental_repairs.utils.date_utils import format_date, to_utc

logger = get_logger(__name__)

__all__ = ["SchedulingConflictResolver"]


class SchedulingConflictResolver:
    """
    Decides whether a (unit, day, worker) booking may proceed.

    Rules, first match wins:
    1. specialization mismatch rejects, emergency or not
    2. another worker holds the unit: reject, or on emergency revoke the
       incumbents' non-emergency bookings
    3. the worker already has the daily limit of bookings on the unit:
       reject, or on emergency revoke the non-emergency ones
    4. otherwise accept
    """

    def __init__(
        self,
        matcher: Optional[SpecializationMatcher] = None,
        settings: Optional[SchedulingSettings] = None,
    ):
        self.matcher = matcher or SpecializationMatcher()
        self.settings = settings or get_settings().scheduling

    @staticmethod
    def build_target(request: MaintenanceRequest, worker: Worker, scheduled_at: datetime) -> SchedulingTarget:
        return SchedulingTarget(
            request_id=request.request_id,
            property_code=request.property_code,
            unit_number=request.unit_number,
            scheduled_date=to_utc(scheduled_at),
            worker_email=worker.email,
            worker_specialization=worker.specialization.value,
            required_specialization=request.required_specialization.value,
            is_emergency=request.is_emergency,
        )

    def _relevant(self, target: SchedulingTarget, existing: Iterable[ExistingBooking]) -> List[ExistingBooking]:
        return [
            b for b in existing
            if b.is_active
            and b.day == target.day
            and b.property_code.lower() == target.property_code.lower()
            and b.unit_number.lower() == target.unit_number.lower()
            and b.request_id != target.request_id
        ]

    def resolve(self, target: SchedulingTarget, existing: Iterable[ExistingBooking]) -> SchedulingDecision:
        bookings = self._relevant(target, existing)
        day_text = format_date(target.day)

        if not self.matcher.matches_for_scheduling(target.worker_specialization, target.required_specialization):
            return SchedulingDecision(
                is_valid=False,
                conflict_type=ConflictType.SPECIALIZATION_MISMATCH,
                message=(
                    f"Worker {target.worker_email} ({target.worker_specialization or 'no specialization'}) "
                    f"cannot handle {target.required_specialization} work"
                ),
            )

        to_cancel: List[ExistingBooking] = []
        residual: List[ExistingBooking] = []

        incumbents = [b for b in bookings if b.worker_email != target.worker_email]
        if incumbents:
            if not target.is_emergency:
                return SchedulingDecision(
                    is_valid=False,
                    conflict_type=ConflictType.UNIT_CONFLICT,
                    message=(
                        f"Unit {target.unit_number} at {target.property_code} is already assigned to "
                        f"{incumbents[0].worker_email} on {day_text}"
                    ),
                    conflicting_bookings=incumbents,
                )
            to_cancel.extend(b for b in incumbents if not b.is_emergency)
            residual.extend(b for b in incumbents if b.is_emergency)

        own = [b for b in bookings if b.worker_email == target.worker_email]
        cap = self.settings.DAILY_CAPACITY
        if len(own) >= cap:
            if not target.is_emergency:
                return SchedulingDecision(
                    is_valid=False,
                    conflict_type=ConflictType.WORKER_UNIT_LIMIT,
                    message=(
                        f"Worker {target.worker_email} already has {len(own)} bookings for unit "
                        f"{target.unit_number} on {day_text} (limit {cap})"
                    ),
                    conflicting_bookings=own,
                )
            to_cancel.extend(b for b in own if not b.is_emergency)
            own_emergency = [b for b in own if b.is_emergency]
            if len(own_emergency) >= cap:
                residual.extend(own_emergency)

        if residual:
            logger.warning(
                f"Emergency booking for {target.request_id} blocked by {len(residual)} emergency bookings",
                extra={"request_id": target.request_id, "unit_number": target.unit_number},
            )
            return SchedulingDecision(
                is_valid=False,
                conflict_type=ConflictType.EMERGENCY_CONFLICT,
                message=(
                    f"Unit {target.unit_number} at {target.property_code} on {day_text} is held by "
                    f"emergency work that cannot be overridden"
                ),
                conflicting_bookings=residual,
                requests_to_cancel=to_cancel,
                emergency_conflicts=residual,
            )

        message = "Booking accepted"
        if to_cancel:
            message = f"Booking accepted; {len(to_cancel)} non-emergency booking(s) will be cancelled"
        return SchedulingDecision(is_valid=True, message=message, requests_to_cancel=to_cancel)

    def apply_emergency_override(
        self,
        decision: SchedulingDecision,
        reason: str = EMERGENCY_CANCELLATION_REASON,
    ) -> EmergencyOverrideResult:
        """
        Turn an accepted decision's cancellation plan into audit records.

        Each record names a request that must go back to Submitted. Nothing
        is mutated here.
        """
        if not decision.can_commit:
            raise ValueError("Cannot apply an override plan from a blocked decision")
        text = (reason or "").strip() or EMERGENCY_CANCELLATION_REASON

        cancelled = [CancelledBooking.from_booking(b, text) for b in decision.requests_to_cancel]
        return EmergencyOverrideResult(
            cancelled_request_ids=[c.request_id for c in cancelled],
            cancelled_bookings=cancelled,
            reason=text,
        )
