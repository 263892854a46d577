from datetime import timedelta

import pytest

from rental_repairs.core.events.domain_events import RequestStatusChanged
from rental_repairs.core.logging import actor_role
from rental_repairs.schemas.common.enums import (
    EscalationLevel,
    RequestAction,
    RequestStatus,
    Urgency,
    UserRole,
)
from rental_repairs.schemas.workflow import ScheduleDetails
from rental_repairs.services.base.service_result import ErrorCode
from rental_repairs.services.workflow.transition_executor import WorkflowTransitionExecutor
from tests.support import FIXED_NOW, at, fixed_clock

SUPER = UserRole.PROPERTY_SUPERINTENDENT


@pytest.fixture
def executor(settings):
    return WorkflowTransitionExecutor(settings=settings, clock=fixed_clock)


def _details(**overrides):
    fields = {
        "scheduled_date": at(1),
        "worker_email": "bob@example.com",
        "work_order_number": "WO-1",
    }
    fields.update(overrides)
    return ScheduleDetails(**fields)


def test_submit_then_submit_again(executor, make_request):
    request = make_request(submitted=False)

    first = executor.execute(request, RequestStatus.SUBMITTED, UserRole.TENANT)
    second = executor.execute(request, RequestStatus.SUBMITTED, UserRole.TENANT)

    assert first.is_success
    assert first.data.from_status == RequestStatus.DRAFT
    assert not second.is_success
    assert second.error_code == ErrorCode.INVALID_STATUS_TRANSITION
    assert "Submitted" in second.message
    assert second.error.details["current_status"] == "Submitted"


def test_status_is_checked_before_role(executor, make_request):
    result = executor.execute(make_request(submitted=False), RequestStatus.CLOSED, UserRole.WORKER)

    assert result.error_code == ErrorCode.INVALID_STATUS_TRANSITION


def test_unauthorized_role(executor, make_request):
    request = make_request()

    result = executor.execute(request, RequestStatus.SCHEDULED, UserRole.TENANT, schedule=_details())

    assert result.error_code == ErrorCode.INSUFFICIENT_PERMISSIONS
    assert result.error.details["required_action"] == "AssignWorker"
    assert request.status == RequestStatus.SUBMITTED


def test_unknown_role_or_status(executor, make_request):
    assert executor.execute(make_request(), "Scheduled", "Landlord").error_code == ErrorCode.VALIDATION_ERROR
    assert executor.execute(make_request(), "Archived", SUPER).error_code == ErrorCode.VALIDATION_ERROR


def test_decline_without_reason(executor, make_request):
    request = make_request()

    result = executor.execute(request, RequestStatus.DECLINED, SUPER, reason=" ")

    assert result.error_code == ErrorCode.MISSING_REQUIRED_DATA
    assert request.status == RequestStatus.SUBMITTED


def test_schedule_without_details(executor, make_request):
    result = executor.execute(make_request(), RequestStatus.SCHEDULED, SUPER, schedule=_details(worker_email=""))

    assert result.error_code == ErrorCode.MISSING_REQUIRED_DATA
    assert result.error.details["fields"] == ["worker_email"]


def test_successful_transition_is_recorded(executor, make_request):
    request = make_request()

    result = executor.execute(request, RequestStatus.SCHEDULED, SUPER, schedule=_details())

    record = result.unwrap()
    assert request.status == RequestStatus.SCHEDULED
    assert record.role == SUPER
    assert record.occurred_at == FIXED_NOW
    assert request.transition_history == [record]
    event = request.pull_events()[-1]
    assert isinstance(event, RequestStatusChanged)
    assert event.data["to_status"] == "Scheduled"


def test_worker_reports_outcome(executor, make_request):
    request = make_request()
    executor.execute(request, RequestStatus.SCHEDULED, SUPER, schedule=_details())

    result = executor.execute(request, RequestStatus.FAILED, UserRole.WORKER, reason="No access to unit")

    assert result.is_success
    assert request.status == RequestStatus.FAILED
    assert request.completion_notes == "No access to unit"


def test_close_uses_default_reason(executor, make_request):
    request = make_request()
    executor.execute(request, RequestStatus.DECLINED, SUPER, reason="Not a repair")

    executor.execute(request, RequestStatus.CLOSED, UserRole.SYSTEM_ADMIN)

    assert request.closure_notes == "Not a repair\nRequest closed"


def test_emergency_release_records_transition(executor, make_request):
    request = make_request()
    executor.execute(request, RequestStatus.SCHEDULED, SUPER, schedule=_details())

    result = executor.release_for_emergency_override(request, "Gas leak next door")

    record = result.unwrap()
    assert record.from_status == RequestStatus.SCHEDULED
    assert record.to_status == RequestStatus.SUBMITTED
    assert record.metadata["work_order_number"] == "WO-1"
    assert request.status == RequestStatus.SUBMITTED


def test_emergency_release_of_unscheduled_request_fails(executor, make_request):
    result = executor.release_for_emergency_override(make_request(), "Gas leak")

    assert result.error_code == ErrorCode.INVALID_STATUS_TRANSITION


def test_recommended_actions_prioritize_emergency_assignment(executor, make_request):
    actions = executor.recommended_next_actions(make_request(urgency=Urgency.EMERGENCY), SUPER)

    assert actions[0].action == RequestAction.ASSIGN_WORKER
    assert actions[0].priority == 0
    assert executor.recommended_next_actions(make_request(), UserRole.WORKER) == []


def test_integrity_report(executor, make_request):
    healthy = make_request()
    broken = make_request()
    broken.scheduled_at = at(1)

    assert executor.validate_workflow_integrity(healthy).is_valid
    report = executor.validate_workflow_integrity(broken)
    assert not report.is_valid
    assert report.issues == ["Partial scheduling data: missing assigned_worker, work_order_number"]


def test_escalation_levels(executor, make_request):
    emergency = make_request(urgency=Urgency.EMERGENCY)
    normal = make_request()
    failed = make_request()
    executor.execute(failed, RequestStatus.SCHEDULED, SUPER, schedule=_details())
    executor.execute(failed, RequestStatus.FAILED, UserRole.WORKER)

    later = FIXED_NOW + timedelta(hours=2)
    assert executor.evaluate_escalation(emergency, later).level == EscalationLevel.CRITICAL
    assert executor.evaluate_escalation(normal, later).level == EscalationLevel.NONE
    assert executor.evaluate_escalation(failed, later).level == EscalationLevel.HIGH

    overdue = executor.evaluate_escalation(normal, FIXED_NOW + timedelta(hours=80))
    assert overdue.level == EscalationLevel.MEDIUM
    assert overdue.needs_escalation


def test_acting_role_is_bound_while_applying(executor, make_request, monkeypatch):
    request = make_request(submitted=False)
    seen = []
    original = executor._apply

    def recording_apply(*args):
        seen.append(actor_role.get())
        return original(*args)

    monkeypatch.setattr(executor, "_apply", recording_apply)

    assert executor.execute(request, RequestStatus.SUBMITTED, UserRole.TENANT).is_success
    assert seen == ["Tenant"]
    assert actor_role.get() is None
