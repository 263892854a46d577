"""
Worker recommendation output.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from rental_repairs.schemas.common.base import FrozenSchema

__all__ = ["WorkerRecommendation"]


class WorkerRecommendation(FrozenSchema):
    worker_email: str
    worker_name: str
    specialization: str
    score: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str
    estimated_completion_hours: int = Field(..., ge=0)
    next_available_date: Optional[str] = None
    is_emergency_capable: bool = False
