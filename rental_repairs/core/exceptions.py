"""
Custom exceptions for the maintenance scheduling engine.

Aggregates and the availability tracker raise these; the service layer
converts them into failed ``ServiceResult`` values at the boundary.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes for domain exceptions"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"

    # Workflow errors
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    MISSING_REQUIRED_DATA = "MISSING_REQUIRED_DATA"

    # Worker booking errors
    INVALID_ASSIGNMENT = "INVALID_ASSIGNMENT"
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"

    # Scheduling conflicts
    SPECIALIZATION_MISMATCH = "SPECIALIZATION_MISMATCH"
    UNIT_CONFLICT = "UNIT_CONFLICT"
    WORKER_UNIT_LIMIT = "WORKER_UNIT_LIMIT"
    EMERGENCY_CONFLICT = "EMERGENCY_CONFLICT"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the engine with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# Domain Exceptions
# ========================================

class DomainError(BaseAppException):
    """Business rule violated inside an aggregate"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.BUSINESS_RULE_VIOLATION,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class InvalidStatusTransition(DomainError):
    """Attempted transition is not in the allowed table"""

    def __init__(self, current_status: Any, target_status: Any, allowed: Iterable[Any] = ()):
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = list(allowed)
        allowed_text = ", ".join(_label(s) for s in self.allowed) or "none"
        super().__init__(
            f"Cannot transition from {_label(current_status)} to {_label(target_status)}. "
            f"Allowed transitions: {allowed_text}",
            ErrorCode.INVALID_STATUS_TRANSITION,
            {
                "current_status": _label(current_status),
                "target_status": _label(target_status),
                "allowed": [_label(s) for s in self.allowed],
            },
        )


class InsufficientPermissions(DomainError):
    """Role may not initiate the requested transition"""

    def __init__(self, role: Any, current_status: Any, target_status: Any):
        self.role = role
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Role {_label(role)} is not authorized to move a request "
            f"from {_label(current_status)} to {_label(target_status)}",
            ErrorCode.INSUFFICIENT_PERMISSIONS,
            {
                "role": _label(role),
                "current_status": _label(current_status),
                "target_status": _label(target_status),
            },
        )


class MissingRequiredData(DomainError):
    """Operation metadata is incomplete"""

    def __init__(self, fields: Iterable[str], message: Optional[str] = None):
        self.fields: List[str] = list(fields)
        super().__init__(
            message or f"Missing required data: {', '.join(self.fields)}",
            ErrorCode.MISSING_REQUIRED_DATA,
            {"fields": self.fields},
        )


class InvalidAssignment(DomainError):
    """Worker booking invariant violated"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_ASSIGNMENT, details)


class AssignmentNotFound(DomainError):
    """No active assignment carries the work-order number"""

    def __init__(self, work_order_number: str):
        self.work_order_number = work_order_number
        super().__init__(
            f"No active assignment found for work order {work_order_number}",
            ErrorCode.ASSIGNMENT_NOT_FOUND,
            {"work_order_number": work_order_number},
        )


# ========================================
# Scheduling Conflicts
# ========================================

class SchedulingConflict(DomainError):
    """A proposed booking was rejected by the conflict resolver"""

    error_code_default = ErrorCode.BUSINESS_RULE_VIOLATION

    def __init__(self, message: str, conflicting_bookings: Optional[List[Any]] = None):
        self.conflicting_bookings = list(conflicting_bookings or [])
        super().__init__(
            message,
            self.error_code_default,
            {"conflicting_requests": [
                str(getattr(b, "request_id", b)) for b in self.conflicting_bookings
            ]},
        )


class SpecializationMismatch(SchedulingConflict):
    error_code_default = ErrorCode.SPECIALIZATION_MISMATCH


class UnitConflict(SchedulingConflict):
    error_code_default = ErrorCode.UNIT_CONFLICT


class WorkerUnitLimit(SchedulingConflict):
    error_code_default = ErrorCode.WORKER_UNIT_LIMIT


class EmergencyOverrideConflict(SchedulingConflict):
    """Emergency bookings still block the slot after cancellations"""
    error_code_default = ErrorCode.EMERGENCY_CONFLICT


def _label(value: Any) -> str:
    return str(getattr(value, "value", value))


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "DomainError",
    "InvalidStatusTransition",
    "InsufficientPermissions",
    "MissingRequiredData",
    "InvalidAssignment",
    "AssignmentNotFound",
    "SchedulingConflict",
    "SpecializationMismatch",
    "UnitConflict",
    "WorkerUnitLimit",
    "EmergencyOverrideConflict",
]
