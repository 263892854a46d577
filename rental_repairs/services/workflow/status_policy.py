"""
Request status state machine.

Pure tables: legal transitions, classifications, display metadata and the
per-status capability predicates used by aggregates and services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple, Union

from rental_repairs.core.exceptions import InvalidStatusTransition
from rental_repairs.schemas.common.enums import RequestStatus, StatusCategory

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TransitionValidation",
    "StatusTransitionPolicy",
    "status_policy",
]

S = RequestStatus

ALLOWED_TRANSITIONS: Dict[RequestStatus, Tuple[RequestStatus, ...]] = {
    S.DRAFT: (S.SUBMITTED,),
    S.SUBMITTED: (S.SCHEDULED, S.DECLINED),
    S.SCHEDULED: (S.DONE, S.FAILED),
    S.FAILED: (S.SCHEDULED,),
    S.DONE: (S.CLOSED,),
    S.DECLINED: (S.CLOSED,),
    S.CLOSED: (),
}

ACTIVE_STATUSES: FrozenSet[RequestStatus] = frozenset({S.SUBMITTED, S.SCHEDULED})
COMPLETED_STATUSES: FrozenSet[RequestStatus] = frozenset({S.DONE, S.CLOSED})
FINAL_STATUSES: FrozenSet[RequestStatus] = frozenset({S.CLOSED, S.DECLINED})
ATTENTION_STATUSES: FrozenSet[RequestStatus] = frozenset({S.FAILED})

_DISPLAY_NAMES: Dict[RequestStatus, str] = {
    S.DRAFT: "Draft",
    S.SUBMITTED: "Submitted",
    S.SCHEDULED: "Scheduled",
    S.DONE: "Completed",
    S.FAILED: "Failed",
    S.DECLINED: "Declined",
    S.CLOSED: "Closed",
}

# Lower sorts first in work queues
_PRIORITIES: Dict[RequestStatus, int] = {
    S.FAILED: 1,
    S.SUBMITTED: 2,
    S.SCHEDULED: 3,
    S.DRAFT: 4,
    S.DONE: 5,
    S.DECLINED: 6,
    S.CLOSED: 7,
}

_CATEGORIES: Dict[RequestStatus, StatusCategory] = {
    S.DRAFT: StatusCategory.DRAFT,
    S.SUBMITTED: StatusCategory.ACTIVE,
    S.SCHEDULED: StatusCategory.IN_PROGRESS,
    S.DONE: StatusCategory.COMPLETED,
    S.FAILED: StatusCategory.IN_PROGRESS,
    S.DECLINED: StatusCategory.CANCELLED,
    S.CLOSED: StatusCategory.COMPLETED,
}

StatusLike = Union[RequestStatus, str]


@dataclass(frozen=True)
class TransitionValidation:
    """Outcome of checking one transition against the table."""

    is_valid: bool
    current_status: RequestStatus
    target_status: RequestStatus
    allowed: List[RequestStatus] = field(default_factory=list)
    message: str = ""

    def raise_for_invalid(self) -> None:
        if not self.is_valid:
            raise InvalidStatusTransition(self.current_status, self.target_status, self.allowed)


class StatusTransitionPolicy:
    """Transition table plus status classification."""

    def allowed_next(self, status: StatusLike) -> List[RequestStatus]:
        return list(ALLOWED_TRANSITIONS[RequestStatus.parse(status)])

    def is_valid_transition(self, current: StatusLike, target: StatusLike) -> bool:
        return RequestStatus.parse(target) in ALLOWED_TRANSITIONS[RequestStatus.parse(current)]

    def validate_transition(self, current: StatusLike, target: StatusLike) -> TransitionValidation:
        current_status = RequestStatus.parse(current)
        target_status = RequestStatus.parse(target)
        allowed = self.allowed_next(current_status)

        if target_status in allowed:
            return TransitionValidation(True, current_status, target_status, allowed)

        allowed_text = ", ".join(s.value for s in allowed) or "none"
        return TransitionValidation(
            False,
            current_status,
            target_status,
            allowed,
            f"Cannot transition from {current_status.value} to {target_status.value}. "
            f"Allowed transitions: {allowed_text}",
        )

    def ensure_transition(self, current: StatusLike, target: StatusLike) -> None:
        self.validate_transition(current, target).raise_for_invalid()

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def is_active(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in ACTIVE_STATUSES

    def is_completed(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in COMPLETED_STATUSES

    def is_final(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in FINAL_STATUSES

    def requires_attention(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in ATTENTION_STATUSES

    def category(self, status: StatusLike) -> StatusCategory:
        return _CATEGORIES[RequestStatus.parse(status)]

    def display_name(self, status: StatusLike) -> str:
        return _DISPLAY_NAMES[RequestStatus.parse(status)]

    def priority(self, status: StatusLike) -> int:
        return _PRIORITIES[RequestStatus.parse(status)]

    def statuses_by_priority(self) -> List[RequestStatus]:
        return sorted(RequestStatus, key=lambda s: _PRIORITIES[s])

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def can_edit(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) not in (S.DONE, S.CLOSED, S.DECLINED)

    def can_cancel(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in (S.DRAFT, S.SUBMITTED)

    def can_assign_worker(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) == S.SUBMITTED

    def can_schedule(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in (S.SUBMITTED, S.FAILED)

    def can_complete(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) == S.SCHEDULED

    def can_decline(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) == S.SUBMITTED

    def can_close(self, status: StatusLike) -> bool:
        return RequestStatus.parse(status) in (S.DONE, S.DECLINED)


status_policy = StatusTransitionPolicy()
