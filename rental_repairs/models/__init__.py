from rental_repairs.models.assignment import Assignment
from rental_repairs.models.availability import WorkerAvailabilityTracker
from rental_repairs.models.request import MaintenanceRequest, generate_request_code
from rental_repairs.models.worker import Worker

__all__ = [
    "Assignment",
    "MaintenanceRequest",
    "Worker",
    "WorkerAvailabilityTracker",
    "generate_request_code",
]
