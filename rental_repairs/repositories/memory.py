"""
In-memory store implementations.

Used by tests and by hosts embedding the engine without a database.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, List, Optional, Tuple

from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.models.worker import Worker
from rental_repairs.schemas.common.enums import RequestStatus, WorkerSpecialization
from rental_repairs.schemas.scheduling import ExistingBooking
from rental_repairs.utils.date_utils import as_calendar_day

logger = logging.getLogger(__name__)

__all__ = ["InMemoryWorkerStore", "InMemoryRequestStore", "InMemoryUnitOfWork"]


class InMemoryWorkerStore:
    def __init__(self):
        self._workers: Dict[str, Worker] = {}

    def get_by_email(self, email: str) -> Optional[Worker]:
        return self._workers.get((email or "").strip().lower())

    def save(self, worker: Worker) -> None:
        self._workers[worker.email] = worker

    def list_all(self) -> List[Worker]:
        return list(self._workers.values())

    def list_active_workers(self, specialization: Optional[WorkerSpecialization] = None) -> List[Worker]:
        return [
            w for w in self._workers.values()
            if w.is_active and (specialization is None or w.specialization == specialization)
        ]


class InMemoryRequestStore:
    """
    Request store that derives unit bookings from scheduled requests,
    joined with the worker store for the booked worker's specialization.
    """

    def __init__(self, workers: Optional[InMemoryWorkerStore] = None):
        self._requests: Dict[str, MaintenanceRequest] = {}
        self._workers = workers
        self._sequences: Dict[Tuple[str, str], int] = defaultdict(int)

    def get_by_id(self, request_id: str) -> Optional[MaintenanceRequest]:
        return self._requests.get(request_id)

    def save(self, request: MaintenanceRequest) -> None:
        self._requests[request.request_id] = request

    def list_all(self) -> List[MaintenanceRequest]:
        return list(self._requests.values())

    def list_by_status(self, status: RequestStatus) -> List[MaintenanceRequest]:
        return [r for r in self._requests.values() if r.status == status]

    def next_sequence(self, property_code: str, unit_number: str) -> int:
        key = ((property_code or "").strip().upper(), (unit_number or "").strip().upper())
        self._sequences[key] += 1
        return self._sequences[key]

    def list_active_bookings_for_unit(self, property_code: str, unit_number: str, day: date) -> List[ExistingBooking]:
        target_day = as_calendar_day(day)
        bookings = []
        for request in self._requests.values():
            if not request.has_assignment or request.scheduled_at is None:
                continue
            if request.property_code.lower() != property_code.strip().lower():
                continue
            if request.unit_number.lower() != unit_number.strip().lower():
                continue
            if request.scheduled_at.date() != target_day:
                continue
            bookings.append(self._to_booking(request))
        return [b for b in bookings if b.is_active]

    def _to_booking(self, request: MaintenanceRequest) -> ExistingBooking:
        worker = self._workers.get_by_email(request.assigned_worker_email) if self._workers else None
        return ExistingBooking(
            request_id=request.request_id,
            property_code=request.property_code,
            unit_number=request.unit_number,
            worker_email=request.assigned_worker_email,
            worker_specialization=worker.specialization.value if worker else None,
            work_order_number=request.work_order_number,
            scheduled_date=request.scheduled_at,
            is_active=request.status == RequestStatus.SCHEDULED,
            is_emergency=request.is_emergency,
        )


class InMemoryUnitOfWork:
    """
    Snapshot/restore transaction over both stores.

    Aggregates are restored in place, so references held by callers see
    the rolled-back state.
    """

    def __init__(self, requests: InMemoryRequestStore, workers: InMemoryWorkerStore):
        self.requests = requests
        self.workers = workers
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        state = self._capture()
        try:
            yield
        except Exception:
            self._restore(state)
            self.rollbacks += 1
            logger.debug("In-memory transaction rolled back")
            raise
        else:
            self.commits += 1

    def _capture(self) -> Dict[str, Any]:
        return {
            "requests": {rid: (r, r.snapshot()) for rid, r in self.requests._requests.items()},
            "workers": {email: (w, w.snapshot()) for email, w in self.workers._workers.items()},
        }

    def _restore(self, state: Dict[str, Any]) -> None:
        self.requests._requests = {}
        for rid, (request, snapshot) in state["requests"].items():
            request.restore(snapshot)
            self.requests._requests[rid] = request

        self.workers._workers = {}
        for email, (worker, snapshot) in state["workers"].items():
            worker.restore(snapshot)
            self.workers._workers[email] = worker
