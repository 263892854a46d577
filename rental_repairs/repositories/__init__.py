from rental_repairs.repositories.interfaces import EventSink, RequestStore, UnitOfWork, WorkerStore
from rental_repairs.repositories.memory import (
    InMemoryRequestStore,
    InMemoryUnitOfWork,
    InMemoryWorkerStore,
)

__all__ = [
    "EventSink",
    "RequestStore",
    "UnitOfWork",
    "WorkerStore",
    "InMemoryRequestStore",
    "InMemoryUnitOfWork",
    "InMemoryWorkerStore",
]
