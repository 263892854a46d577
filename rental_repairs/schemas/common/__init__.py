from rental_repairs.schemas.common.base import BaseSchema
from rental_repairs.schemas.common.enums import (
    EscalationLevel,
    RequestAction,
    RequestStatus,
    StatusCategory,
    Urgency,
    UserRole,
    WorkerSpecialization,
)

__all__ = [
    "BaseSchema",
    "EscalationLevel",
    "RequestAction",
    "RequestStatus",
    "StatusCategory",
    "Urgency",
    "UserRole",
    "WorkerSpecialization",
]
