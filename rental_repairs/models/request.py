"""
Maintenance request aggregate.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from rental_repairs.core.events.domain_events import (
    BaseDomainEvent,
    RequestClosed,
    RequestCreated,
    RequestDeclined,
    RequestReleasedByEmergencyOverride,
    RequestScheduled,
    RequestStatusChanged,
    RequestSubmitted,
    RequestWorkCompleted,
)
from rental_repairs.core.exceptions import DomainError, InvalidStatusTransition, MissingRequiredData
from rental_repairs.models.assignment import normalize_work_order_number
from rental_repairs.models.worker import normalize_email
from rental_repairs.schemas.common.enums import RequestStatus, Urgency, WorkerSpecialization
from rental_repairs.services.scheduling.specialization import infer_required_specialization
from rental_repairs.services.workflow.status_policy import StatusTransitionPolicy, status_policy
from rental_repairs.utils.date_utils import Clock, format_date, now_utc, to_utc

logger = logging.getLogger(__name__)

__all__ = ["MaintenanceRequest", "generate_request_code"]

MAX_CODE_LENGTH = 50
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000

OVERRIDE_COMPLETION_PREFIX = "Work cancelled due to emergency override"
OVERRIDE_CLOSURE_PREFIX = "Emergency override cancelled assignment"


def generate_request_code(property_code: str, unit_number: str, sequence: int) -> str:
    """Human-readable request code, e.g. ``SUNSET-101-0007``."""
    prop = (property_code or "").strip().upper()
    unit = (unit_number or "").strip().upper()
    if not prop or not unit:
        raise MissingRequiredData(["property_code", "unit_number"])
    if sequence < 1:
        raise DomainError("Request sequence must be positive")
    code = f"{prop}-{unit}-{sequence:04d}"
    if len(code) > MAX_CODE_LENGTH:
        raise DomainError(f"Request code cannot exceed {MAX_CODE_LENGTH} characters")
    return code


def _require_text(value: Optional[str], field_name: str, limit: int) -> str:
    text = (value or "").strip()
    if not text:
        raise MissingRequiredData([field_name])
    if len(text) > limit:
        raise DomainError(f"{field_name} cannot exceed {limit} characters", details={"field": field_name})
    return text


class MaintenanceRequest:
    """
    A tenant's maintenance ticket for one property unit.

    Scheduling fields (date, worker, work order) are set and cleared
    together. Status changes go through the transition table; the
    emergency release is the single path back from Scheduled to Submitted.
    """

    def __init__(
        self,
        code: str,
        title: str,
        description: str,
        property_code: str,
        unit_number: str,
        urgency: Union[Urgency, str] = Urgency.NORMAL,
        *,
        tenant_name: Optional[str] = None,
        tenant_email: Optional[str] = None,
        property_name: Optional[str] = None,
        superintendent_name: Optional[str] = None,
        superintendent_email: Optional[str] = None,
        preferred_contact_time: Optional[str] = None,
        request_id: Optional[str] = None,
        policy: Optional[StatusTransitionPolicy] = None,
        clock: Clock = now_utc,
    ):
        self.request_id = request_id or str(uuid.uuid4())
        self.code = _require_text(code, "code", MAX_CODE_LENGTH)
        self.title = _require_text(title, "title", MAX_TITLE_LENGTH)
        self.description = _require_text(description, "description", MAX_DESCRIPTION_LENGTH)
        self.property_code = _require_text(property_code, "property_code", MAX_CODE_LENGTH)
        self.unit_number = _require_text(unit_number, "unit_number", MAX_CODE_LENGTH)
        self.urgency = Urgency.parse(urgency)
        self.status = RequestStatus.DRAFT

        self.tenant_name = tenant_name
        self.tenant_email = normalize_email(tenant_email, "tenant_email") if tenant_email else None
        self.property_name = property_name
        self.superintendent_name = superintendent_name
        self.superintendent_email = (
            normalize_email(superintendent_email, "superintendent_email") if superintendent_email else None
        )
        self.preferred_contact_time = preferred_contact_time

        self.assigned_worker_email: Optional[str] = None
        self.assigned_worker_name: Optional[str] = None
        self.work_order_number: Optional[str] = None
        self.scheduled_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None
        self.completed_successfully: Optional[bool] = None
        self.completion_notes: Optional[str] = None
        self.closure_notes: Optional[str] = None
        self.submitted_at: Optional[datetime] = None

        self._policy = policy or status_policy
        self._clock = clock
        self.created_at = clock()
        self.transition_history: List[Any] = []
        self._events: List[BaseDomainEvent] = []

        self._record_event(RequestCreated(
            entity_id=self.request_id,
            data={"code": self.code, "urgency": self.urgency.value},
        ))

    def __repr__(self) -> str:
        return f"MaintenanceRequest({self.code!r}, {self.status.value})"

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_emergency(self) -> bool:
        return self.urgency.is_emergency

    @property
    def required_specialization(self) -> WorkerSpecialization:
        return infer_required_specialization(self.title, self.description)

    @property
    def has_assignment(self) -> bool:
        return self.assigned_worker_email is not None

    @property
    def is_active(self) -> bool:
        return self._policy.is_active(self.status)

    @property
    def is_completed(self) -> bool:
        return self._policy.is_completed(self.status)

    @property
    def is_final(self) -> bool:
        return self._policy.is_final(self.status)

    @property
    def status_display_name(self) -> str:
        return self._policy.display_name(self.status)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def update_details(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        urgency: Union[Urgency, str, None] = None,
        preferred_contact_time: Optional[str] = None,
    ) -> None:
        if not self._policy.can_edit(self.status):
            raise DomainError(
                f"Request {self.code} cannot be edited in status {self.status.value}",
                details={"status": self.status.value},
            )
        if title is not None:
            self.title = _require_text(title, "title", MAX_TITLE_LENGTH)
        if description is not None:
            self.description = _require_text(description, "description", MAX_DESCRIPTION_LENGTH)
        if urgency is not None:
            self.urgency = Urgency.parse(urgency)
        if preferred_contact_time is not None:
            self.preferred_contact_time = preferred_contact_time.strip() or None

    def submit(self) -> None:
        self._ensure_transition(RequestStatus.SUBMITTED)
        missing = [name for name in ("title", "description") if not getattr(self, name)]
        if missing:
            raise MissingRequiredData(missing)

        self.status = RequestStatus.SUBMITTED
        self.submitted_at = self._clock()
        self._record_event(RequestSubmitted(
            entity_id=self.request_id,
            data={"code": self.code, "urgency": self.urgency.value, "emergency": self.is_emergency},
        ))

    def schedule(
        self,
        scheduled_at: Optional[datetime],
        worker_email: Optional[str],
        work_order_number: Optional[str],
        worker_name: Optional[str] = None,
    ) -> None:
        self._ensure_transition(RequestStatus.SCHEDULED)

        missing = [
            name for name, value in (
                ("scheduled_date", scheduled_at),
                ("worker_email", (worker_email or "").strip()),
                ("work_order_number", (work_order_number or "").strip()),
            ) if not value
        ]
        if missing:
            raise MissingRequiredData(missing)

        scheduled_at = to_utc(scheduled_at)
        if scheduled_at <= self._clock():
            raise DomainError(
                "Scheduled date must be in the future",
                details={"scheduled_at": scheduled_at.isoformat()},
            )

        self.assigned_worker_email = normalize_email(worker_email, "worker_email")
        self.assigned_worker_name = (worker_name or "").strip() or None
        self.work_order_number = normalize_work_order_number(work_order_number)
        self.scheduled_at = scheduled_at
        # A reschedule after failure starts a fresh attempt
        self.completed_at = None
        self.completed_successfully = None
        self.status = RequestStatus.SCHEDULED

        self._record_event(RequestScheduled(
            entity_id=self.request_id,
            data={
                "worker_email": self.assigned_worker_email,
                "work_order_number": self.work_order_number,
                "scheduled_at": scheduled_at.isoformat(),
                "property_code": self.property_code,
                "unit_number": self.unit_number,
            },
        ))

    def report_work_completed(self, successful: bool, notes: Optional[str] = None) -> None:
        target = RequestStatus.DONE if successful else RequestStatus.FAILED
        self._ensure_transition(target)

        self.status = target
        self.completed_at = self._clock()
        self.completed_successfully = successful
        self.completion_notes = (notes or "").strip() or None

        self._record_event(RequestWorkCompleted(
            entity_id=self.request_id,
            data={
                "successful": successful,
                "work_order_number": self.work_order_number,
                "worker_email": self.assigned_worker_email,
            },
        ))

    def decline(self, reason: str) -> None:
        self._ensure_transition(RequestStatus.DECLINED)
        if not (reason or "").strip():
            raise MissingRequiredData(["reason"], "A reason is required to decline a request")

        self.status = RequestStatus.DECLINED
        self.closure_notes = reason.strip()
        self._record_event(RequestDeclined(entity_id=self.request_id, data={"reason": self.closure_notes}))

    def close(self, notes: Optional[str] = None) -> None:
        self._ensure_transition(RequestStatus.CLOSED)

        text = (notes or "").strip()
        if text:
            self.closure_notes = f"{self.closure_notes}\n{text}" if self.closure_notes else text
        self.status = RequestStatus.CLOSED
        self._record_event(RequestClosed(entity_id=self.request_id, data={"notes": text or None}))

    def release_for_emergency_override(self, reason: str) -> Dict[str, Any]:
        """
        Drop the current booking so an emergency can take the slot.

        The request returns to Submitted and re-enters the assignment
        queue. The revoked worker, work order and date are kept in the
        closure notes before the scheduling fields are cleared.
        """
        if self.status != RequestStatus.SCHEDULED or not self.has_assignment:
            raise InvalidStatusTransition(self.status, RequestStatus.SUBMITTED, [])
        if not (reason or "").strip():
            raise MissingRequiredData(["reason"], "Emergency override requires a reason")

        released = {
            "request_id": self.request_id,
            "worker_email": self.assigned_worker_email,
            "work_order_number": self.work_order_number,
            "scheduled_at": self.scheduled_at,
        }

        self.completion_notes = f"{OVERRIDE_COMPLETION_PREFIX}: {reason.strip()}"
        trail = (
            f"{OVERRIDE_CLOSURE_PREFIX}: {self.assigned_worker_email} "
            f"({self.work_order_number}) on {format_date(self.scheduled_at.date())}"
        )
        self.closure_notes = f"{self.closure_notes}\n{trail}" if self.closure_notes else trail

        self.assigned_worker_email = None
        self.assigned_worker_name = None
        self.work_order_number = None
        self.scheduled_at = None
        self.status = RequestStatus.SUBMITTED

        self._record_event(RequestReleasedByEmergencyOverride(
            entity_id=self.request_id,
            data={
                "worker_email": released["worker_email"],
                "work_order_number": released["work_order_number"],
                "original_date": released["scheduled_at"].isoformat(),
                "reason": reason.strip(),
            },
        ))
        logger.warning(f"Request {self.code} released by emergency override: {reason.strip()}")
        return released

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_transition(self, target: RequestStatus) -> None:
        self._policy.ensure_transition(self.status, target)

    def _record_event(self, event: BaseDomainEvent) -> None:
        self._events.append(event)

    def record_transition(self, record: Any) -> None:
        """Append to the history and emit the audit event for one transition."""
        self.transition_history.append(record)
        self._record_event(RequestStatusChanged(
            entity_id=self.request_id,
            data={
                "from_status": record.from_status.value,
                "to_status": record.to_status.value,
                "role": record.role.value,
                "reason": record.reason,
            },
        ))

    @property
    def pending_events(self) -> List[BaseDomainEvent]:
        return list(self._events)

    def pull_events(self) -> List[BaseDomainEvent]:
        events, self._events = self._events, []
        return events

    def snapshot(self) -> Dict[str, Any]:
        state = {
            key: value for key, value in self.__dict__.items()
            if key not in ("_events", "transition_history", "_policy", "_clock")
        }
        state["_events"] = list(self._events)
        state["transition_history"] = list(self.transition_history)
        return state

    def restore(self, state: Dict[str, Any]) -> None:
        for key, value in state.items():
            setattr(self, key, list(value) if isinstance(value, list) else value)
