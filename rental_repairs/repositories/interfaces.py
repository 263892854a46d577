"""
Collaborator interfaces the engine depends on.

Hosts supply implementations backed by their own data store. Callers
must serialize concurrent bookings of the same unit/day or worker before
invoking the engine; decisions are only valid for the snapshot read.
"""

from __future__ import annotations

from datetime import date
from typing import ContextManager, List, Optional, Protocol, runtime_checkable

from rental_repairs.core.events.domain_events import BaseDomainEvent
from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.models.worker import Worker
from rental_repairs.schemas.common.enums import RequestStatus, WorkerSpecialization
from rental_repairs.schemas.scheduling import ExistingBooking

__all__ = ["RequestStore", "WorkerStore", "EventSink", "UnitOfWork"]


@runtime_checkable
class RequestStore(Protocol):
    def get_by_id(self, request_id: str) -> Optional[MaintenanceRequest]:
        ...

    def save(self, request: MaintenanceRequest) -> None:
        ...

    def list_by_status(self, status: RequestStatus) -> List[MaintenanceRequest]:
        ...

    def next_sequence(self, property_code: str, unit_number: str) -> int:
        ...

    def list_active_bookings_for_unit(
        self, property_code: str, unit_number: str, day: date
    ) -> List[ExistingBooking]:
        ...


@runtime_checkable
class WorkerStore(Protocol):
    def get_by_email(self, email: str) -> Optional[Worker]:
        ...

    def save(self, worker: Worker) -> None:
        ...

    def list_active_workers(
        self, specialization: Optional[WorkerSpecialization] = None
    ) -> List[Worker]:
        ...


@runtime_checkable
class EventSink(Protocol):
    def publish(self, event: BaseDomainEvent) -> None:
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    def transaction(self) -> ContextManager[None]:
        ...
