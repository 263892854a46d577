from rental_repairs.services.base.base_service import BaseService
from rental_repairs.services.base.event_dispatcher import DispatchResult, EventDispatcher
from rental_repairs.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

__all__ = [
    "BaseService",
    "DispatchResult",
    "EventDispatcher",
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
