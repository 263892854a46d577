import pytest

from rental_repairs.core.exceptions import (
    DomainError,
    ErrorCode as DomainCode,
    InvalidStatusTransition,
    MissingRequiredData,
    UnitConflict,
)
from rental_repairs.schemas.common.enums import RequestStatus
from rental_repairs.services.base.service_result import ErrorCode, ErrorSeverity, ServiceResult


def test_domain_error_keeps_code_and_details():
    error = InvalidStatusTransition(RequestStatus.DRAFT, RequestStatus.DONE, [RequestStatus.SUBMITTED])

    result = ServiceResult.from_domain_error(error)

    assert not result
    assert result.error_code == ErrorCode.INVALID_STATUS_TRANSITION
    assert result.error.severity == ErrorSeverity.WARNING
    assert result.error.details["allowed"] == ["Submitted"]
    assert result.error.details["exception_type"] == "InvalidStatusTransition"
    assert result.message == "Cannot transition from Draft to Done. Allowed transitions: Submitted"


@pytest.mark.parametrize(
    "error, expected",
    [
        (MissingRequiredData(["reason"]), ErrorCode.MISSING_REQUIRED_DATA),
        (UnitConflict("Unit taken"), ErrorCode.UNIT_CONFLICT),
        (DomainError("Gone", DomainCode.RESOURCE_NOT_FOUND), ErrorCode.NOT_FOUND),
        (DomainError("Nope"), ErrorCode.BUSINESS_RULE_VIOLATION),
    ],
)
def test_domain_code_mapping(error, expected):
    assert ServiceResult.from_domain_error(error).error_code == expected


def test_exception_string_carries_code():
    assert str(MissingRequiredData(["reason"])) == "MISSING_REQUIRED_DATA: Missing required data: reason"


def test_success_and_unwrap():
    result = ServiceResult.success(42, message="done")

    assert result
    assert result.unwrap() == 42
    assert result.to_dict()["data"] == 42
    assert result.add_metadata("source", "test").metadata == {"source": "test"}


def test_failed_result_unwrap():
    result = ServiceResult.not_found("Request", "r-1")

    assert result.message == "Request not found (ID: r-1)"
    assert result.unwrap_or("fallback") == "fallback"
    assert result.to_dict()["error"]["code"] == "NOT_FOUND"
    with pytest.raises(ValueError):
        result.unwrap()


def test_unexpected_exception():
    result = ServiceResult.from_exception(RuntimeError("boom"), "load request")

    assert result.error_code == ErrorCode.INTERNAL_ERROR
    assert result.message == "Failed to load request: boom"
