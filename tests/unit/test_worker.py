import pytest

from rental_repairs.core.events.domain_events import (
    WorkerActivated,
    WorkerDeactivated,
    WorkerSpecializationChanged,
)
from rental_repairs.core.exceptions import DomainError, MissingRequiredData
from rental_repairs.models.worker import Worker
from rental_repairs.schemas.common.enums import WorkerSpecialization
from tests.support import at, fixed_clock


def _build_worker(**overrides):
    kwargs = {
        "email": "  Eve.Sparks@Example.com ",
        "first_name": "Eve",
        "last_name": "Sparks",
        "specialization": "electrician",
        "clock": fixed_clock,
    }
    kwargs.update(overrides)
    return Worker(**kwargs)


def test_new_worker_is_active_with_normalized_fields():
    worker = _build_worker()

    assert worker.is_active
    assert worker.email == "eve.sparks@example.com"
    assert worker.specialization == WorkerSpecialization.ELECTRICAL
    assert worker.full_name == "Eve Sparks"


def test_missing_specialization_means_generalist():
    assert _build_worker(specialization=None).specialization == WorkerSpecialization.GENERAL_MAINTENANCE


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"email": ""}, MissingRequiredData),
        ({"email": "not-an-email"}, DomainError),
        ({"first_name": " "}, MissingRequiredData),
        ({"specialization": "Roofing"}, DomainError),
    ],
)
def test_invalid_worker_data(overrides, error):
    with pytest.raises(error):
        _build_worker(**overrides)


def test_deactivation_requires_reason_and_is_noted():
    worker = _build_worker()

    with pytest.raises(MissingRequiredData):
        worker.deactivate("")
    worker.deactivate("On leave")

    assert not worker.is_active
    assert worker.notes == "2024-06-09: Deactivated: On leave"
    assert isinstance(worker.pull_events()[-1], WorkerDeactivated)


def test_reactivation_restores_availability():
    worker = _build_worker()
    worker.deactivate("On leave")

    worker.activate("Back from leave")

    assert worker.is_active
    assert worker.is_available(at(1))
    assert worker.notes.endswith("2024-06-09: Activated: Back from leave")
    assert isinstance(worker.pull_events()[-1], WorkerActivated)


def test_specialization_change_emits_event_only_on_change():
    worker = _build_worker()

    worker.set_specialization(WorkerSpecialization.ELECTRICAL)
    assert worker.pull_events() == []

    worker.set_specialization("plumber")
    events = worker.pull_events()
    assert worker.specialization == WorkerSpecialization.PLUMBING
    assert isinstance(events[0], WorkerSpecializationChanged)
    assert events[0].data == {"previous": "Electrical", "current": "Plumbing"}


def test_snapshot_restore_round_trips_bookings():
    worker = _build_worker()
    state = worker.snapshot()

    worker.assign("WO-1", at(1))
    worker.deactivate("Injured")
    worker.restore(state)

    assert worker.is_active
    assert worker.assignments == []
    assert worker.pending_events == []
