import sys
from datetime import timedelta

import pytest

from rental_repairs.core.events.domain_events import WorkerAssigned, WorkerAssignmentCompleted
from rental_repairs.core.exceptions import AssignmentNotFound, InvalidAssignment
from tests.support import TODAY, at


def test_empty_future_day_is_available(make_worker):
    worker = make_worker()

    assert worker.is_available(at(1))
    assert worker.availability_score(at(1)) == 2


def test_past_days_and_inactive_workers_are_unavailable(make_worker):
    worker = make_worker()
    inactive = make_worker(email="idle@example.com", active=False)

    assert not worker.is_available(at(-1))
    assert worker.availability_score(at(-1)) == 0
    assert not inactive.is_available(at(1))
    assert inactive.availability_score(at(1)) == 0


def test_daily_capacity_blocks_third_booking(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1, 8))
    worker.assign("WO-2", at(1, 13))

    assert not worker.is_available(at(1, 18))
    with pytest.raises(InvalidAssignment, match="limit 2"):
        worker.assign("WO-3", at(1, 18))


def test_emergency_path_allows_one_extra_booking(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1, 8))
    worker.assign("WO-2", at(1, 13))

    worker.assign("WO-3", at(1, 18), emergency=True)

    assert worker.availability_score(at(1), emergency=True) == 0
    with pytest.raises(InvalidAssignment, match="limit 3"):
        worker.assign("WO-4", at(1, 23), emergency=True)


def test_overlapping_window_is_rejected(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1, 9))

    with pytest.raises(InvalidAssignment) as exc_info:
        worker.assign("WO-2", at(1, 11))

    assert exc_info.value.message == "Time conflict with work order WO-1 scheduled at 2024-06-10 09:00"
    assert not worker.is_available(at(1, 11), timedelta(hours=2))
    assert worker.is_available(at(1, 13), timedelta(hours=2))


def test_short_duration_still_checks_full_window(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1, 10))

    assert not worker.is_available(at(1, 9), timedelta(minutes=30))
    with pytest.raises(InvalidAssignment, match="WO-1"):
        worker.assign("WO-2", at(1, 9))

    assert worker.is_available(at(1, 6), timedelta(minutes=30))
    worker.assign("WO-3", at(1, 6))


def test_assignment_must_be_in_the_future(make_worker):
    worker = make_worker()

    with pytest.raises(InvalidAssignment, match="future"):
        worker.assign("WO-1", at(0, 7))


def test_work_orders_are_normalized_and_unique(make_worker):
    worker = make_worker()
    assignment = worker.assign("wo-1", at(1))

    assert assignment.work_order_number == "WO-1"
    with pytest.raises(InvalidAssignment, match="already assigned"):
        worker.assign("WO-1", at(2))
    with pytest.raises(InvalidAssignment):
        worker.assign("a", at(3))
    with pytest.raises(InvalidAssignment, match="required"):
        worker.assign("  ", at(3))


def test_inactive_worker_cannot_be_assigned(make_worker):
    worker = make_worker(active=False)

    with pytest.raises(InvalidAssignment, match="inactive"):
        worker.assign("WO-1", at(1))


def test_completing_frees_capacity(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1, 8))
    worker.assign("WO-2", at(1, 13))

    completed = worker.complete("WO-1", successful=True, notes="Replaced washer")

    assert completed.is_completed and completed.completed_successfully
    assert worker.availability_score(at(1)) == 1
    assert worker.is_available(at(1, 18))


def test_completing_twice_raises(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1))
    worker.complete("WO-1", successful=True)

    with pytest.raises(AssignmentNotFound):
        worker.complete("WO-1", successful=True)
    with pytest.raises(AssignmentNotFound):
        worker.complete("WO-404", successful=False)


def test_cancelled_assignment_is_kept_as_history(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1))

    cancelled = worker.cancel_assignment("WO-1", "Tenant away")

    assert cancelled.cancelled
    assert cancelled.completed_successfully is False
    assert worker.active_assignment_count == 0
    assert len(worker.assignments) == 1


def test_booked_and_partially_booked_dates(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1, 8))
    worker.assign("WO-2", at(1, 13))
    worker.assign("WO-3", at(3, 8))

    assert worker.booked_dates(TODAY, at(5)) == {at(1).date()}
    assert worker.booked_dates(TODAY, at(5), emergency=True) == set()
    assert worker.partially_booked_dates(TODAY, at(5)) == {at(3).date()}


def test_next_free_day_is_today_when_only_later_days_are_booked(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1))
    worker.assign("WO-2", at(2))

    assert worker.next_fully_available_date(TODAY) == TODAY


def test_next_free_day_skips_busy_days(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(0, 15))
    worker.assign("WO-2", at(1))

    assert worker.next_fully_available_date() == at(2).date()


def test_next_free_day_clamps_past_start_to_today(make_worker):
    worker = make_worker()

    assert worker.next_fully_available_date(at(-10)) == TODAY


def test_next_free_day_horizon_counts_from_clamped_start(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(3))

    assert worker.next_fully_available_date(at(3), horizon_days=0) is None
    assert worker.next_fully_available_date(at(3), horizon_days=1) == at(4).date()


def test_inactive_worker_has_no_next_free_day(make_worker):
    assert make_worker(active=False).next_fully_available_date() is None


def test_upcoming_workload_window(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1))
    worker.assign("WO-2", at(7))
    worker.assign("WO-3", at(8))

    assert worker.upcoming_workload() == 2
    assert worker.upcoming_workload(TODAY, 30) == 3


def test_ranking_score(make_worker):
    idle = make_worker(email="idle@example.com")
    busy = make_worker(email="busy@example.com")
    busy.assign("WO-1", at(0, 15))

    assert idle.ranking_score() == 0
    assert busy.ranking_score() == 101
    assert make_worker(email="off@example.com", active=False).ranking_score() == sys.maxsize


def test_booking_events(make_worker):
    worker = make_worker()
    worker.assign("WO-1", at(1), emergency=True)
    worker.complete("WO-1", successful=False)

    events = worker.pull_events()

    assert [type(e) for e in events] == [WorkerAssigned, WorkerAssignmentCompleted]
    assert events[0].data["emergency"] is True
    assert events[1].data["successful"] is False
    assert worker.pull_events() == []
