"""
Role authorization for request transitions.

Runs after the status check so callers can tell "wrong state" apart from
"wrong actor".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from rental_repairs.core.exceptions import InsufficientPermissions
from rental_repairs.schemas.common.enums import RequestAction, RequestStatus, UserRole
from rental_repairs.services.workflow.status_policy import StatusTransitionPolicy, status_policy

__all__ = ["AuthorizationDecision", "RequestAuthorizationPolicy", "authorization_policy"]

A = RequestAction
S = RequestStatus

_ROLE_PRIORITY: Dict[UserRole, int] = {
    UserRole.SYSTEM_ADMIN: 1,
    UserRole.PROPERTY_SUPERINTENDENT: 2,
    UserRole.WORKER: 3,
    UserRole.TENANT: 4,
}

RoleLike = Union[UserRole, str]
StatusLike = Union[RequestStatus, str]


@dataclass(frozen=True)
class AuthorizationDecision:
    is_authorized: bool
    role: UserRole
    required_action: Optional[RequestAction]
    message: str = ""

    def raise_for_denied(self, current: RequestStatus, target: RequestStatus) -> None:
        if not self.is_authorized:
            raise InsufficientPermissions(self.role, current, target)


class RequestAuthorizationPolicy:
    """Maps each role to the actions it may take on a request in a given status."""

    def __init__(self, statuses: Optional[StatusTransitionPolicy] = None):
        self.statuses = statuses or status_policy

    def available_actions(self, role: RoleLike, status: StatusLike) -> List[RequestAction]:
        role = UserRole.parse(role)
        status = RequestStatus.parse(status)

        if role in (UserRole.SYSTEM_ADMIN, UserRole.PROPERTY_SUPERINTENDENT):
            return self._management_actions(status)
        if role == UserRole.WORKER:
            return [A.COMPLETE_WORK, A.REPORT_ISSUE] if status == S.SCHEDULED else []
        if status == S.DRAFT:
            return [A.EDIT, A.SUBMIT, A.CANCEL]
        if status == S.SUBMITTED:
            return [A.CANCEL]
        return []

    def _management_actions(self, status: RequestStatus) -> List[RequestAction]:
        actions: List[RequestAction] = []
        if self.statuses.can_edit(status):
            actions.append(A.EDIT)
        if self.statuses.can_cancel(status):
            actions.append(A.CANCEL)
        if status == S.SUBMITTED:
            actions.extend([A.ASSIGN_WORKER, A.DECLINE])
        if self.statuses.can_schedule(status):
            actions.append(A.SCHEDULE)
        if status == S.SCHEDULED:
            actions.append(A.RESCHEDULE)
        if self.statuses.can_close(status):
            actions.append(A.CLOSE)
        return actions

    def required_action(self, current: StatusLike, target: StatusLike) -> Optional[RequestAction]:
        current = RequestStatus.parse(current)
        target = RequestStatus.parse(target)

        if target == S.SCHEDULED:
            # A failed visit is re-booked, not freshly assigned
            return A.SCHEDULE if current == S.FAILED else A.ASSIGN_WORKER
        return {
            S.SUBMITTED: A.SUBMIT,
            S.DONE: A.COMPLETE_WORK,
            S.FAILED: A.REPORT_ISSUE,
            S.DECLINED: A.DECLINE,
            S.CLOSED: A.CLOSE,
        }.get(target)

    def can_perform(self, role: RoleLike, action: RequestAction, status: StatusLike) -> bool:
        return action in self.available_actions(role, status)

    def authorize(self, role: RoleLike, current: StatusLike, target: StatusLike) -> AuthorizationDecision:
        role = UserRole.parse(role)
        action = self.required_action(current, target)
        if action is not None and self.can_perform(role, action, current):
            return AuthorizationDecision(True, role, action)

        return AuthorizationDecision(
            False,
            role,
            action,
            f"Role {role.value} cannot {action.value if action else 'perform this transition'} "
            f"on a {RequestStatus.parse(current).value} request",
        )

    def can_transition(self, role: RoleLike, current: StatusLike, target: StatusLike) -> bool:
        return self.authorize(role, current, target).is_authorized

    def role_priority(self, role: RoleLike) -> int:
        return _ROLE_PRIORITY[UserRole.parse(role)]

    def highest_priority_role(self, roles: List[RoleLike]) -> Optional[UserRole]:
        parsed = [UserRole.parse(r) for r in roles]
        return min(parsed, key=self.role_priority) if parsed else None


authorization_policy = RequestAuthorizationPolicy()
