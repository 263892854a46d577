"""
Single-transition orchestration for maintenance requests.

Checks run in a fixed order: status validity, then role authorization,
then the status-specific side effect. Each successful transition is
recorded on the request's history.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from rental_repairs.config.settings import SchedulingSettings
from rental_repairs.core.exceptions import BaseAppException, MissingRequiredData
from rental_repairs.core.logging import acting_role
from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.schemas.common.enums import (
    EscalationLevel,
    RequestAction,
    RequestStatus,
    UserRole,
)
from rental_repairs.schemas.workflow import (
    EscalationAssessment,
    IntegrityReport,
    RecommendedAction,
    ScheduleDetails,
    TransitionRecord,
)
from rental_repairs.services.base.base_service import BaseService
from rental_repairs.services.base.service_result import ErrorCode, ServiceResult
from rental_repairs.services.workflow.authorization_policy import (
    RequestAuthorizationPolicy,
    authorization_policy,
)
from rental_repairs.services.workflow.status_policy import StatusTransitionPolicy, status_policy
from rental_repairs.utils.date_utils import Clock, hours_between, now_utc

__all__ = ["WorkflowTransitionExecutor"]

DEFAULT_CLOSE_REASON = "Request closed"

_ACTION_GUIDANCE: Dict[RequestAction, tuple] = {
    RequestAction.SUBMIT: (1, "Submit the request for review"),
    RequestAction.ASSIGN_WORKER: (1, "Assign a qualified worker and schedule the visit"),
    RequestAction.SCHEDULE: (1, "Reschedule the failed visit"),
    RequestAction.COMPLETE_WORK: (1, "Report the work as completed"),
    RequestAction.REPORT_ISSUE: (2, "Report that the work could not be completed"),
    RequestAction.CLOSE: (2, "Close the request"),
    RequestAction.DECLINE: (3, "Decline the request with a reason"),
    RequestAction.RESCHEDULE: (3, "Move the visit to another date"),
    RequestAction.EDIT: (4, "Edit request details"),
    RequestAction.CANCEL: (5, "Cancel the request"),
}


class WorkflowTransitionExecutor(BaseService):
    """Validates and applies one request status transition."""

    def __init__(
        self,
        statuses: Optional[StatusTransitionPolicy] = None,
        authorization: Optional[RequestAuthorizationPolicy] = None,
        settings: Optional[SchedulingSettings] = None,
        clock: Clock = now_utc,
    ):
        super().__init__(settings=settings)
        self.statuses = statuses or status_policy
        self.authorization = authorization or authorization_policy
        self._clock = clock

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def check(
        self,
        request: MaintenanceRequest,
        to_status: Union[RequestStatus, str],
        role: Union[UserRole, str],
    ) -> Optional[ServiceResult]:
        """Return a failure if the transition is invalid or unauthorized, else None."""
        try:
            target = RequestStatus.parse(to_status)
            actor = UserRole.parse(role)
        except ValueError as e:
            return ServiceResult.error_result(ErrorCode.VALIDATION_ERROR, str(e))

        validation = self.statuses.validate_transition(request.status, target)
        if not validation.is_valid:
            return ServiceResult.error_result(
                ErrorCode.INVALID_STATUS_TRANSITION,
                validation.message,
                details={
                    "current_status": request.status.value,
                    "target_status": target.value,
                    "allowed": [s.value for s in validation.allowed],
                },
            )

        decision = self.authorization.authorize(actor, request.status, target)
        if not decision.is_authorized:
            return ServiceResult.error_result(
                ErrorCode.INSUFFICIENT_PERMISSIONS,
                decision.message,
                details={
                    "role": actor.value,
                    "current_status": request.status.value,
                    "target_status": target.value,
                    "required_action": decision.required_action.value if decision.required_action else None,
                },
            )
        return None

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(
        self,
        request: MaintenanceRequest,
        to_status: Union[RequestStatus, str],
        role: Union[UserRole, str],
        reason: Optional[str] = None,
        schedule: Optional[ScheduleDetails] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult[TransitionRecord]:
        with acting_role(role):
            return self._execute(request, to_status, role, reason, schedule, metadata)

    def _execute(
        self,
        request: MaintenanceRequest,
        to_status: Union[RequestStatus, str],
        role: Union[UserRole, str],
        reason: Optional[str],
        schedule: Optional[ScheduleDetails],
        metadata: Optional[Dict[str, Any]],
    ) -> ServiceResult[TransitionRecord]:
        rejected = self.check(request, to_status, role)
        if rejected is not None:
            return rejected

        target = RequestStatus.parse(to_status)
        actor = UserRole.parse(role)
        from_status = request.status

        try:
            self._apply(request, target, reason, schedule)
        except BaseAppException as e:
            return self._handle_exception(e, f"move request to {target.value}", request.request_id)

        record = TransitionRecord(
            request_id=request.request_id,
            from_status=from_status,
            to_status=target,
            role=actor,
            reason=reason,
            occurred_at=self._clock(),
            metadata=metadata or {},
        )
        request.record_transition(record)
        self._logger.info(
            f"Request {request.code} moved {from_status.value} -> {target.value}",
            extra={"request_id": request.request_id, "role": actor.value},
        )
        return ServiceResult.success(record, message=f"Request moved to {target.value}")

    def _apply(
        self,
        request: MaintenanceRequest,
        target: RequestStatus,
        reason: Optional[str],
        schedule: Optional[ScheduleDetails],
    ) -> None:
        if target == RequestStatus.SUBMITTED:
            request.submit()
        elif target == RequestStatus.DECLINED:
            if not (reason or "").strip():
                raise MissingRequiredData(["reason"], "A reason is required to decline a request")
            request.decline(reason)
        elif target == RequestStatus.SCHEDULED:
            details = schedule or ScheduleDetails()
            if details.missing_fields:
                raise MissingRequiredData(details.missing_fields)
            request.schedule(
                details.scheduled_date,
                details.worker_email,
                details.work_order_number,
                details.worker_name,
            )
        elif target in (RequestStatus.DONE, RequestStatus.FAILED):
            request.report_work_completed(target == RequestStatus.DONE, reason)
        elif target == RequestStatus.CLOSED:
            request.close(reason or DEFAULT_CLOSE_REASON)

    def release_for_emergency_override(
        self,
        request: MaintenanceRequest,
        reason: str,
        role: Union[UserRole, str] = UserRole.SYSTEM_ADMIN,
    ) -> ServiceResult[TransitionRecord]:
        """Scheduled -> Submitted for a booking revoked by an emergency."""
        actor = UserRole.parse(role)
        try:
            released = request.release_for_emergency_override(reason)
        except BaseAppException as e:
            return self._handle_exception(e, "release request for emergency override", request.request_id)

        record = TransitionRecord(
            request_id=request.request_id,
            from_status=RequestStatus.SCHEDULED,
            to_status=RequestStatus.SUBMITTED,
            role=actor,
            reason=reason,
            occurred_at=self._clock(),
            metadata={
                "emergency_override": True,
                "worker_email": released["worker_email"],
                "work_order_number": released["work_order_number"],
                "original_date": released["scheduled_at"].isoformat(),
            },
        )
        request.record_transition(record)
        return ServiceResult.success(record, message="Request returned to the assignment queue")

    # -------------------------------------------------------------------------
    # Guidance and health
    # -------------------------------------------------------------------------

    def recommended_next_actions(
        self,
        request: MaintenanceRequest,
        role: Union[UserRole, str],
    ) -> List[RecommendedAction]:
        actions = []
        for action in self.authorization.available_actions(role, request.status):
            priority, description = _ACTION_GUIDANCE[action]
            if request.is_emergency and action in (RequestAction.ASSIGN_WORKER, RequestAction.SCHEDULE):
                priority = 0
                description = f"{description} (emergency)"
            actions.append(RecommendedAction(action=action, priority=priority, description=description))
        return sorted(actions, key=lambda a: a.priority)

    def validate_workflow_integrity(self, request: MaintenanceRequest) -> IntegrityReport:
        issues = []
        scheduling_fields = {
            "scheduled_date": request.scheduled_at,
            "assigned_worker": request.assigned_worker_email,
            "work_order_number": request.work_order_number,
        }
        present = [name for name, value in scheduling_fields.items() if value is not None]
        if present and len(present) != len(scheduling_fields):
            missing = sorted(set(scheduling_fields) - set(present))
            issues.append(f"Partial scheduling data: missing {', '.join(missing)}")

        if request.status in (RequestStatus.SCHEDULED, RequestStatus.DONE, RequestStatus.FAILED) and not present:
            issues.append(f"{request.status.value} request has no scheduled assignment")
        if request.status in (RequestStatus.DRAFT,) and present:
            issues.append("Draft request carries scheduling data")

        if request.status in (RequestStatus.DONE, RequestStatus.FAILED):
            if request.completed_at is None:
                issues.append("Completed work has no completion date")
            expected = request.status == RequestStatus.DONE
            if request.completed_successfully is not expected:
                issues.append("Completion outcome does not match status")

        if request.status == RequestStatus.DECLINED and not request.closure_notes:
            issues.append("Declined request has no reason")

        return IntegrityReport(is_valid=not issues, issues=issues)

    def evaluate_escalation(self, request: MaintenanceRequest, now=None) -> EscalationAssessment:
        now = now or self._clock()
        if self.statuses.is_final(request.status) or self.statuses.is_completed(request.status):
            return EscalationAssessment(level=EscalationLevel.NONE)

        if request.is_emergency and request.status == RequestStatus.SUBMITTED:
            waiting_since = request.submitted_at or request.created_at
            if hours_between(waiting_since, now) > self.settings.EMERGENCY_ESCALATION_HOURS:
                return EscalationAssessment(
                    level=EscalationLevel.CRITICAL,
                    reason="Emergency request is still waiting for a worker",
                )

        if self.statuses.requires_attention(request.status):
            return EscalationAssessment(level=EscalationLevel.HIGH, reason="Work attempt failed")

        if hours_between(request.created_at, now) > request.urgency.expected_resolution_hours:
            return EscalationAssessment(
                level=EscalationLevel.MEDIUM,
                reason=f"Open longer than the {request.urgency.expected_resolution_hours}h target",
            )
        return EscalationAssessment(level=EscalationLevel.NONE)
