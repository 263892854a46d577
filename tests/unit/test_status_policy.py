import pytest

from rental_repairs.core.exceptions import InvalidStatusTransition
from rental_repairs.schemas.common.enums import RequestStatus, StatusCategory
from rental_repairs.services.workflow.status_policy import StatusTransitionPolicy

S = RequestStatus

LEGAL = {
    (S.DRAFT, S.SUBMITTED),
    (S.SUBMITTED, S.SCHEDULED),
    (S.SUBMITTED, S.DECLINED),
    (S.SCHEDULED, S.DONE),
    (S.SCHEDULED, S.FAILED),
    (S.FAILED, S.SCHEDULED),
    (S.DONE, S.CLOSED),
    (S.DECLINED, S.CLOSED),
}


@pytest.fixture
def policy():
    return StatusTransitionPolicy()


@pytest.mark.parametrize("current", list(S))
@pytest.mark.parametrize("target", list(S))
def test_only_listed_transitions_are_valid(policy, current, target):
    assert policy.is_valid_transition(current, target) is ((current, target) in LEGAL)


def test_closed_is_terminal(policy):
    assert policy.allowed_next(S.CLOSED) == []


def test_invalid_transition_message_lists_allowed_targets(policy):
    result = policy.validate_transition(S.SUBMITTED, S.SUBMITTED)

    assert result.is_valid is False
    assert result.allowed == [S.SCHEDULED, S.DECLINED]
    assert result.message == (
        "Cannot transition from Submitted to Submitted. Allowed transitions: Scheduled, Declined"
    )


def test_ensure_transition_raises_with_details(policy):
    with pytest.raises(InvalidStatusTransition) as exc_info:
        policy.ensure_transition(S.DRAFT, S.DONE)

    assert exc_info.value.details["current_status"] == "Draft"
    assert exc_info.value.details["target_status"] == "Done"
    assert exc_info.value.details["allowed"] == ["Submitted"]


def test_status_strings_are_parsed_case_insensitively(policy):
    assert policy.is_valid_transition("scheduled", "FAILED")
    with pytest.raises(ValueError):
        policy.is_valid_transition("Archived", "Closed")


def test_classification(policy):
    assert [s for s in S if policy.is_active(s)] == [S.SUBMITTED, S.SCHEDULED]
    assert {s for s in S if policy.is_completed(s)} == {S.DONE, S.CLOSED}
    assert {s for s in S if policy.is_final(s)} == {S.CLOSED, S.DECLINED}
    assert [s for s in S if policy.requires_attention(s)] == [S.FAILED]


def test_display_metadata(policy):
    assert policy.display_name(S.DONE) == "Completed"
    assert policy.category(S.FAILED) == StatusCategory.IN_PROGRESS
    assert policy.category(S.DECLINED) == StatusCategory.CANCELLED
    ordered = policy.statuses_by_priority()
    assert ordered[0] == S.FAILED
    assert ordered[-1] == S.CLOSED


def test_capabilities(policy):
    assert policy.can_schedule(S.FAILED)
    assert not policy.can_schedule(S.SCHEDULED)
    assert policy.can_close(S.DECLINED)
    assert not policy.can_edit(S.DONE)
    assert policy.can_cancel(S.DRAFT)
