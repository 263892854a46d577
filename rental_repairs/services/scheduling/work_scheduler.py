"""
Scheduling orchestration.

Two phases: the resolver produces a plan from the current snapshot, then
the plan (revocations plus the new booking) is applied inside one unit of
work. Events are dispatched only after the unit of work commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from rental_repairs.config.settings import SchedulingSettings
from rental_repairs.core.exceptions import AssignmentNotFound, BaseAppException
from rental_repairs.core.logging import acting_role, correlation_id, log_execution_time
from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.models.worker import Worker
from rental_repairs.repositories.interfaces import RequestStore, UnitOfWork, WorkerStore
from rental_repairs.schemas.common.enums import RequestStatus, UserRole
from rental_repairs.schemas.scheduling import (
    ConflictType,
    EmergencyOverrideResult,
    SchedulingDecision,
    SchedulingOutcome,
)
from rental_repairs.schemas.workflow import ScheduleDetails
from rental_repairs.services.base.base_service import BaseService
from rental_repairs.services.base.event_dispatcher import EventDispatcher
from rental_repairs.services.base.service_result import ErrorCode, ServiceResult
from rental_repairs.services.scheduling.conflict_resolver import SchedulingConflictResolver
from rental_repairs.services.workflow.transition_executor import WorkflowTransitionExecutor
from rental_repairs.utils.date_utils import to_utc

__all__ = ["ServiceWorkScheduler", "TransactionAborted"]

OVERRIDE_REASON_TEMPLATE = "Emergency request {code} needs unit {unit} on {day}"

_CONFLICT_CODES = {
    ConflictType.SPECIALIZATION_MISMATCH: ErrorCode.SPECIALIZATION_MISMATCH,
    ConflictType.UNIT_CONFLICT: ErrorCode.UNIT_CONFLICT,
    ConflictType.WORKER_UNIT_LIMIT: ErrorCode.WORKER_UNIT_LIMIT,
    ConflictType.EMERGENCY_CONFLICT: ErrorCode.EMERGENCY_CONFLICT,
}


class TransactionAborted(Exception):
    """Carries a failed result out of a transaction block so it rolls back."""

    def __init__(self, result: ServiceResult):
        self.result = result
        super().__init__(result.message)


class ServiceWorkScheduler(BaseService):
    """Books a worker for a request, revoking bookings on the emergency path."""

    def __init__(
        self,
        requests: RequestStore,
        workers: WorkerStore,
        unit_of_work: UnitOfWork,
        dispatcher: Optional[EventDispatcher] = None,
        resolver: Optional[SchedulingConflictResolver] = None,
        executor: Optional[WorkflowTransitionExecutor] = None,
        settings: Optional[SchedulingSettings] = None,
    ):
        super().__init__(unit_of_work, dispatcher, settings)
        self.requests = requests
        self.workers = workers
        self.resolver = resolver or SchedulingConflictResolver(settings=self.settings)
        self.executor = executor or WorkflowTransitionExecutor(settings=self.settings)

    def preview(
        self,
        request: MaintenanceRequest,
        worker: Worker,
        scheduled_at: datetime,
    ) -> SchedulingDecision:
        """Resolve against the current snapshot without changing anything."""
        target = self.resolver.build_target(request, worker, scheduled_at)
        existing = self.requests.list_active_bookings_for_unit(
            request.property_code, request.unit_number, target.day
        )
        return self.resolver.resolve(target, existing)

    @log_execution_time()
    def schedule(
        self,
        request_id: str,
        worker_email: Optional[str],
        scheduled_at: Optional[datetime],
        work_order_number: Optional[str],
        role: Union[UserRole, str],
        worker_name: Optional[str] = None,
        override_reason: Optional[str] = None,
    ) -> ServiceResult[SchedulingOutcome]:
        with acting_role(role):
            return self._schedule(
                request_id, worker_email, scheduled_at, work_order_number, role, worker_name, override_reason
            )

    def _schedule(
        self,
        request_id: str,
        worker_email: Optional[str],
        scheduled_at: Optional[datetime],
        work_order_number: Optional[str],
        role: Union[UserRole, str],
        worker_name: Optional[str],
        override_reason: Optional[str],
    ) -> ServiceResult[SchedulingOutcome]:
        self._log_operation("schedule request", request_id, {"worker_email": worker_email})

        request = self.requests.get_by_id(request_id)
        if request is None:
            return ServiceResult.not_found("Request", request_id)

        rejected = self.executor.check(request, RequestStatus.SCHEDULED, role)
        if rejected is not None:
            return rejected

        details = ScheduleDetails(
            scheduled_date=scheduled_at,
            worker_email=worker_email,
            work_order_number=work_order_number,
            worker_name=worker_name,
        )
        if details.missing_fields:
            return ServiceResult.error_result(
                ErrorCode.MISSING_REQUIRED_DATA,
                f"Missing required data: {', '.join(details.missing_fields)}",
                details={"fields": details.missing_fields},
            )

        worker = self.workers.get_by_email(details.worker_email)
        if worker is None:
            return ServiceResult.not_found("Worker", details.worker_email)

        scheduled_at = to_utc(details.scheduled_date)
        decision = self.preview(request, worker, scheduled_at)
        if not decision.can_commit:
            return self._rejection(decision)

        reason = (override_reason or "").strip() or OVERRIDE_REASON_TEMPLATE.format(
            code=request.code, unit=request.unit_number, day=scheduled_at.date().isoformat()
        )
        override = self.resolver.apply_emergency_override(decision, reason) if decision.requires_override else None

        touched: List[Any] = [request, worker]
        try:
            with self.transaction():
                if override is not None:
                    touched.extend(self._revoke(override, role))

                worker.assign(
                    details.work_order_number,
                    scheduled_at,
                    notes=f"Request {request.code}",
                    emergency=request.is_emergency,
                )
                outcome = self.executor.execute(
                    request,
                    RequestStatus.SCHEDULED,
                    role,
                    schedule=details.model_copy(update={
                        "scheduled_date": scheduled_at,
                        "worker_name": details.worker_name or worker.full_name,
                    }),
                    metadata={"emergency_override": override is not None},
                )
                if not outcome.is_success:
                    raise TransactionAborted(outcome)

                self.workers.save(worker)
                self.requests.save(request)
        except TransactionAborted as aborted:
            return aborted.result
        except BaseAppException as e:
            return self._handle_exception(e, "schedule request", request_id)

        self._dispatch_events(*_unique(touched))
        self._logger.info(
            f"Scheduled {request.code} with {worker.email}",
            extra={
                "request_id": request.request_id,
                "emergency": request.is_emergency,
                "cancelled": len(override.cancelled_bookings) if override else 0,
                "correlation": correlation_id.get(),
            },
        )
        return ServiceResult.success(
            SchedulingOutcome(
                request_id=request.request_id,
                worker_email=worker.email,
                work_order_number=request.work_order_number,
                scheduled_date=scheduled_at,
                is_emergency=request.is_emergency,
                emergency_override=override,
            ),
            message=decision.message,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _revoke(self, override: EmergencyOverrideResult, role: Union[UserRole, str]) -> List[Any]:
        """Release each planned booking; raises to roll back the whole plan."""
        touched: List[Any] = []
        for cancelled in override.cancelled_bookings:
            victim = self.requests.get_by_id(cancelled.request_id)
            if victim is None:
                raise TransactionAborted(ServiceResult.not_found("Request", cancelled.request_id))

            work_order = cancelled.work_order_number or victim.work_order_number
            released = self.executor.release_for_emergency_override(victim, override.reason, role)
            if not released.is_success:
                raise TransactionAborted(released)
            self.requests.save(victim)
            touched.append(victim)

            incumbent = self.workers.get_by_email(cancelled.worker_email)
            if incumbent is not None and work_order:
                try:
                    incumbent.cancel_assignment(work_order, override.reason)
                except AssignmentNotFound:
                    self._logger.warning(
                        f"Worker {incumbent.email} holds no active {work_order} to cancel",
                        extra={"request_id": cancelled.request_id},
                    )
                self.workers.save(incumbent)
                touched.append(incumbent)
        return touched

    def _rejection(self, decision: SchedulingDecision) -> ServiceResult:
        details: Dict[str, Any] = {
            "conflict_type": decision.conflict_type.value,
            "conflicting_bookings": [b.model_dump(mode="json") for b in decision.conflicting_bookings],
        }
        if decision.requests_to_cancel:
            details["requests_to_cancel"] = decision.cancelled_request_ids
        return ServiceResult.error_result(
            _CONFLICT_CODES.get(decision.conflict_type, ErrorCode.CONFLICT),
            decision.message,
            details=details,
        )


def _unique(aggregates: List[Any]) -> List[Any]:
    seen = set()
    result = []
    for aggregate in aggregates:
        if id(aggregate) not in seen:
            seen.add(id(aggregate))
            result.append(aggregate)
    return result
