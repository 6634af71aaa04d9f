"""Tests for ServiceResult, the service_operation decorator and input parsing."""

import pytest

from leaguehub.models.schemas import TeamMemberAdd, UserCreate
from leaguehub.services.result import (
    AlreadyMemberError,
    ServiceError,
    ServiceResult,
    VALIDATION_FAILED,
    parse_input,
    service_operation,
)


def test_success_and_failure_shapes():
    assert ServiceResult.success({"a": 1}).to_dict() == {"data": {"a": 1}}
    assert ServiceResult.failure("Nope").to_dict() == {"error": "Nope"}
    assert ServiceResult.failure("Bad", {"name": "Required"}).to_dict() == {
        "error": "Bad",
        "field_errors": {"name": "Required"},
    }


def test_success_without_payload_is_still_success():
    result = ServiceResult.success(None)
    assert result.ok
    assert result.data == {}


def test_result_cannot_carry_both_data_and_error():
    with pytest.raises(ValueError):
        ServiceResult(data={"a": 1}, error="boom")


def test_field_errors_require_an_error():
    with pytest.raises(ValueError):
        ServiceResult(field_errors={"name": "Required"})


@pytest.mark.asyncio
async def test_service_operation_wraps_return_value():
    @service_operation
    async def op():
        return [1, 2]

    result = await op()
    assert result.ok and result.data == [1, 2]


@pytest.mark.asyncio
async def test_service_operation_converts_service_errors():
    @service_operation
    async def op():
        raise AlreadyMemberError()

    result = await op()
    assert not result.ok
    assert result.error == "You are already a member of this league"


@pytest.mark.asyncio
async def test_service_operation_lets_unexpected_errors_propagate():
    @service_operation
    async def op():
        raise RuntimeError("database went away")

    with pytest.raises(RuntimeError):
        await op()


def test_parse_input_reports_field_errors():
    with pytest.raises(ServiceError) as exc_info:
        parse_input(UserCreate, {"name": "", "username": "a b", "email": "nope"})
    err = exc_info.value
    assert err.message == VALIDATION_FAILED
    assert set(err.field_errors) == {"name", "username", "email"}


def test_parse_input_strips_custom_validator_prefix():
    with pytest.raises(ServiceError) as exc_info:
        parse_input(TeamMemberAdd, {})
    messages = list(exc_info.value.field_errors.values())
    assert messages == ["Either user_id or placeholder_member_id must be provided"]


def test_parse_input_strips_whitespace():
    parsed = parse_input(
        UserCreate, {"name": "  Ada  ", "username": "ada", "email": "ada@example.com"}
    )
    assert parsed.name == "Ada"
