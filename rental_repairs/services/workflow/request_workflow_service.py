"""
Application service for request lifecycle operations.
"""

from __future__ import annotations

from typing import List, Optional, Union

from rental_repairs.config.settings import SchedulingSettings
from rental_repairs.core.exceptions import BaseAppException
from rental_repairs.models.request import MaintenanceRequest, generate_request_code
from rental_repairs.repositories.interfaces import RequestStore, UnitOfWork, WorkerStore
from rental_repairs.schemas.common.enums import RequestStatus, Urgency, UserRole
from rental_repairs.schemas.workflow import ScheduleDetails, TransitionRecord
from rental_repairs.services.base.base_service import BaseService
from rental_repairs.services.base.event_dispatcher import EventDispatcher
from rental_repairs.services.base.service_result import ErrorCode, ServiceResult
from rental_repairs.services.scheduling.work_scheduler import ServiceWorkScheduler, TransactionAborted
from rental_repairs.services.workflow.transition_executor import WorkflowTransitionExecutor
from rental_repairs.utils.date_utils import Clock, now_utc

__all__ = ["RequestWorkflowService"]


class RequestWorkflowService(BaseService):
    """
    Entry point for status changes.

    Scheduling goes through ``ServiceWorkScheduler`` so the conflict
    resolver is always consulted. Completion and failure also close the
    worker's assignment in the same unit of work.
    """

    def __init__(
        self,
        requests: RequestStore,
        workers: WorkerStore,
        unit_of_work: UnitOfWork,
        dispatcher: Optional[EventDispatcher] = None,
        executor: Optional[WorkflowTransitionExecutor] = None,
        scheduler: Optional[ServiceWorkScheduler] = None,
        settings: Optional[SchedulingSettings] = None,
        clock: Clock = now_utc,
    ):
        super().__init__(unit_of_work, dispatcher, settings)
        self.requests = requests
        self.workers = workers
        self._clock = clock
        self.executor = executor or WorkflowTransitionExecutor(settings=self.settings, clock=clock)
        self.scheduler = scheduler or ServiceWorkScheduler(
            requests,
            workers,
            unit_of_work,
            dispatcher,
            executor=self.executor,
            settings=self.settings,
        )

    def create_request(
        self,
        property_code: str,
        unit_number: str,
        title: str,
        description: str,
        sequence: Optional[int] = None,
        urgency: Union[Urgency, str] = Urgency.NORMAL,
        **contact,
    ) -> ServiceResult[MaintenanceRequest]:
        """
        Draft a new request.

        ``sequence`` numbers requests within the unit; the store allocates
        the next one when omitted.
        """
        try:
            if sequence is None:
                sequence = self.requests.next_sequence(property_code, unit_number)
            request = MaintenanceRequest(
                generate_request_code(property_code, unit_number, sequence),
                title,
                description,
                property_code,
                unit_number,
                urgency,
                clock=self._clock,
                **contact,
            )
        except (BaseAppException, ValueError) as e:
            return self._handle_exception(e, "create request", f"{property_code}-{unit_number}")

        self.requests.save(request)
        self._dispatch_events(request)
        return ServiceResult.success(request, message=f"Request {request.code} created")

    def transition(
        self,
        request_id: str,
        to_status: Union[RequestStatus, str],
        role: Union[UserRole, str],
        reason: Optional[str] = None,
        schedule: Optional[ScheduleDetails] = None,
    ) -> ServiceResult:
        try:
            target = RequestStatus.parse(to_status)
        except ValueError as e:
            return ServiceResult.error_result(ErrorCode.VALIDATION_ERROR, str(e))

        if target == RequestStatus.SCHEDULED:
            details = schedule or ScheduleDetails()
            return self.scheduler.schedule(
                request_id,
                details.worker_email,
                details.scheduled_date,
                details.work_order_number,
                role,
                worker_name=details.worker_name,
            )

        request = self.requests.get_by_id(request_id)
        if request is None:
            return ServiceResult.not_found("Request", request_id)

        touched = [request]
        try:
            with self.transaction():
                result = self.executor.execute(request, target, role, reason=reason)
                if not result.is_success:
                    raise TransactionAborted(result)

                if target in (RequestStatus.DONE, RequestStatus.FAILED):
                    worker = self.workers.get_by_email(request.assigned_worker_email)
                    if worker is not None:
                        worker.complete(request.work_order_number, target == RequestStatus.DONE, reason)
                        self.workers.save(worker)
                        touched.append(worker)

                self.requests.save(request)
        except TransactionAborted as aborted:
            return aborted.result
        except BaseAppException as e:
            return self._handle_exception(e, f"move request to {target.value}", request_id)

        self._dispatch_events(*touched)
        return result

    def history(self, request_id: str) -> ServiceResult[List[TransitionRecord]]:
        request = self.requests.get_by_id(request_id)
        if request is None:
            return ServiceResult.not_found("Request", request_id)
        return ServiceResult.success(list(request.transition_history))

    def queue(self, status: Union[RequestStatus, str] = RequestStatus.SUBMITTED) -> ServiceResult[List[MaintenanceRequest]]:
        """Requests in one status, emergencies first, then oldest first."""
        try:
            target = RequestStatus.parse(status)
        except ValueError as e:
            return ServiceResult.error_result(ErrorCode.VALIDATION_ERROR, str(e))

        requests = sorted(
            self.requests.list_by_status(target),
            key=lambda r: (-r.urgency.rank, r.submitted_at or r.created_at),
        )
        return ServiceResult.success(requests)
