"""
Workflow inputs and records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from rental_repairs.schemas.common.base import BaseSchema, FrozenSchema
from rental_repairs.schemas.common.enums import (
    EscalationLevel,
    RequestAction,
    RequestStatus,
    UserRole,
)

__all__ = [
    "ScheduleDetails",
    "TransitionRecord",
    "RecommendedAction",
    "IntegrityReport",
    "EscalationAssessment",
]


class ScheduleDetails(BaseSchema):
    """Booking metadata required to move a request into Scheduled."""

    scheduled_date: Optional[datetime] = None
    worker_email: Optional[str] = None
    work_order_number: Optional[str] = None
    worker_name: Optional[str] = None

    @field_validator("worker_email", "work_order_number", "worker_name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v or None

    @property
    def missing_fields(self) -> List[str]:
        return [
            name for name in ("scheduled_date", "worker_email", "work_order_number")
            if getattr(self, name) is None
        ]


class TransitionRecord(FrozenSchema):
    request_id: str
    from_status: RequestStatus
    to_status: RequestStatus
    role: UserRole
    reason: Optional[str] = None
    occurred_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RecommendedAction(FrozenSchema):
    action: RequestAction
    priority: int
    description: str


class IntegrityReport(FrozenSchema):
    is_valid: bool
    issues: List[str] = Field(default_factory=list)


class EscalationAssessment(FrozenSchema):
    level: EscalationLevel
    reason: Optional[str] = None

    @property
    def needs_escalation(self) -> bool:
        return self.level != EscalationLevel.NONE
