import pytest

from rental_repairs.config.settings import SchedulingSettings
from rental_repairs.core.events.event_bus import EventBus
from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.models.worker import Worker
from rental_repairs.repositories.memory import (
    InMemoryRequestStore,
    InMemoryUnitOfWork,
    InMemoryWorkerStore,
)
from rental_repairs.schemas.common.enums import Urgency, WorkerSpecialization
from rental_repairs.services.base.event_dispatcher import EventDispatcher
from tests.support import fixed_clock


@pytest.fixture
def settings():
    return SchedulingSettings()


@pytest.fixture
def make_worker(settings):
    def _make(
        email="pat.plumber@example.com",
        specialization=WorkerSpecialization.PLUMBING,
        first_name="Pat",
        last_name="Plumber",
        active=True,
    ):
        worker = Worker(
            email,
            first_name,
            last_name,
            specialization,
            settings=settings,
            clock=fixed_clock,
        )
        if not active:
            worker.deactivate("On leave")
        worker.pull_events()
        return worker

    return _make


@pytest.fixture
def make_request():
    def _make(
        title="Kitchen sink leak",
        description="Water is dripping under the sink",
        urgency=Urgency.NORMAL,
        property_code="SUNSET",
        unit_number="101",
        sequence=1,
        submitted=True,
    ):
        request = MaintenanceRequest(
            f"{property_code}-{unit_number}-{sequence:04d}",
            title,
            description,
            property_code,
            unit_number,
            urgency,
            tenant_name="Tess Tenant",
            tenant_email="Tess@Example.com",
            clock=fixed_clock,
        )
        if submitted:
            request.submit()
        request.pull_events()
        return request

    return _make


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def dispatcher(bus):
    return EventDispatcher(bus)


@pytest.fixture
def worker_store():
    return InMemoryWorkerStore()


@pytest.fixture
def request_store(worker_store):
    return InMemoryRequestStore(worker_store)


@pytest.fixture
def unit_of_work(request_store, worker_store):
    return InMemoryUnitOfWork(request_store, worker_store)
