import pytest

from rental_repairs.core.events.domain_events import (
    RequestCreated,
    RequestReleasedByEmergencyOverride,
    RequestScheduled,
    RequestSubmitted,
)
from rental_repairs.core.exceptions import (
    DomainError,
    InvalidStatusTransition,
    MissingRequiredData,
)
from rental_repairs.models.request import MaintenanceRequest, generate_request_code
from rental_repairs.schemas.common.enums import RequestStatus, Urgency, WorkerSpecialization
from tests.support import FIXED_NOW, at, fixed_clock


def _scheduled(make_request, **overrides):
    request = make_request(**overrides)
    request.schedule(at(1), "Bob.Pipes@Example.com", "wo-100", "Bob Pipes")
    request.pull_events()
    return request


def test_request_codes():
    assert generate_request_code("sunset", "101", 7) == "SUNSET-101-0007"
    with pytest.raises(DomainError):
        generate_request_code("SUNSET", "101", 0)
    with pytest.raises(MissingRequiredData):
        generate_request_code("", "101", 1)


def test_new_request_is_draft():
    request = MaintenanceRequest(
        "SUNSET-101-0001",
        "Kitchen sink leak",
        "Water under the sink",
        "SUNSET",
        "101",
        "high",
        tenant_email="Tess@Example.com",
        clock=fixed_clock,
    )

    assert request.status == RequestStatus.DRAFT
    assert request.urgency == Urgency.HIGH
    assert request.tenant_email == "tess@example.com"
    assert request.created_at == FIXED_NOW
    assert isinstance(request.pull_events()[0], RequestCreated)


def test_title_and_description_are_required():
    with pytest.raises(MissingRequiredData):
        MaintenanceRequest("C-1", " ", "desc", "SUNSET", "101", clock=fixed_clock)
    with pytest.raises(DomainError):
        MaintenanceRequest("C-1", "x" * 201, "desc", "SUNSET", "101", clock=fixed_clock)


def test_submit_twice_is_rejected(make_request):
    request = make_request(submitted=False)
    request.submit()

    assert request.submitted_at == FIXED_NOW
    assert isinstance(request.pull_events()[0], RequestSubmitted)
    with pytest.raises(InvalidStatusTransition, match="Submitted"):
        request.submit()


def test_emergency_levels(make_request):
    assert make_request(urgency=Urgency.CRITICAL).is_emergency
    assert make_request(urgency=Urgency.EMERGENCY).is_emergency
    assert not make_request(urgency=Urgency.HIGH).is_emergency


def test_required_specialization_follows_text(make_request):
    assert make_request().required_specialization == WorkerSpecialization.PLUMBING
    request = make_request(title="Outlet dead", description="No power in bedroom")
    assert request.required_specialization == WorkerSpecialization.ELECTRICAL


def test_schedule_sets_all_fields_together(make_request):
    request = make_request()

    request.schedule(at(1), "Bob.Pipes@Example.com", "wo-100", "Bob Pipes")

    assert request.status == RequestStatus.SCHEDULED
    assert request.assigned_worker_email == "bob.pipes@example.com"
    assert request.work_order_number == "WO-100"
    assert request.scheduled_at == at(1)
    assert isinstance(request.pull_events()[-1], RequestScheduled)


def test_schedule_with_missing_data_changes_nothing(make_request):
    request = make_request()

    with pytest.raises(MissingRequiredData) as exc_info:
        request.schedule(at(1), "bob@example.com", "")

    assert exc_info.value.fields == ["work_order_number"]
    assert request.status == RequestStatus.SUBMITTED
    assert request.assigned_worker_email is None
    assert request.scheduled_at is None


def test_schedule_in_the_past_is_rejected(make_request):
    request = make_request()

    with pytest.raises(DomainError, match="future"):
        request.schedule(at(-1), "bob@example.com", "WO-1")
    assert request.work_order_number is None


def test_failed_work_can_be_rescheduled(make_request):
    request = _scheduled(make_request)
    request.report_work_completed(False, "Part not in stock")

    assert request.status == RequestStatus.FAILED
    assert request.completed_successfully is False

    request.schedule(at(3), "bob.pipes@example.com", "WO-101")

    assert request.status == RequestStatus.SCHEDULED
    assert request.completed_at is None
    assert request.completed_successfully is None


def test_decline_requires_reason(make_request):
    request = make_request()

    with pytest.raises(MissingRequiredData):
        request.decline("  ")
    request.decline("Tenant responsibility")

    assert request.status == RequestStatus.DECLINED
    assert request.closure_notes == "Tenant responsibility"


def test_close_appends_notes(make_request):
    request = make_request()
    request.decline("Duplicate")

    request.close("Merged into SUNSET-101-0002")

    assert request.status == RequestStatus.CLOSED
    assert request.closure_notes == "Duplicate\nMerged into SUNSET-101-0002"
    assert request.is_final


def test_details_are_locked_after_completion(make_request):
    request = _scheduled(make_request)
    request.update_details(title="Kitchen sink leak (urgent)")
    request.report_work_completed(True)

    with pytest.raises(DomainError, match="cannot be edited"):
        request.update_details(title="Changed")
    assert request.status_display_name == "Completed"


def test_emergency_release_returns_request_to_queue(make_request):
    request = _scheduled(make_request)

    released = request.release_for_emergency_override("Burst pipe upstairs")

    assert released["worker_email"] == "bob.pipes@example.com"
    assert released["work_order_number"] == "WO-100"
    assert request.status == RequestStatus.SUBMITTED
    assert request.assigned_worker_email is None
    assert request.work_order_number is None
    assert request.scheduled_at is None
    assert request.completion_notes == "Work cancelled due to emergency override: Burst pipe upstairs"
    assert request.closure_notes == (
        "Emergency override cancelled assignment: bob.pipes@example.com (WO-100) on 2024-06-10"
    )
    event = request.pull_events()[-1]
    assert isinstance(event, RequestReleasedByEmergencyOverride)
    assert event.data["original_date"] == at(1).isoformat()


def test_emergency_release_needs_scheduled_request_and_reason(make_request):
    with pytest.raises(InvalidStatusTransition):
        make_request().release_for_emergency_override("Burst pipe")
    with pytest.raises(MissingRequiredData):
        _scheduled(make_request).release_for_emergency_override("")


def test_snapshot_restore(make_request):
    request = make_request()
    state = request.snapshot()

    request.schedule(at(1), "bob@example.com", "WO-1")
    request.restore(state)

    assert request.status == RequestStatus.SUBMITTED
    assert request.assigned_worker_email is None
    assert request.pending_events == []
