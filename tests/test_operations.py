"""Test classes OperationRequest and OperationResult."""
from pydantic import ValidationError
import pytest

from calcnote.common.errors import DivisionByZeroError, EvalErrorKind
from calcnote.common.operations import OperationRequest, OperationResult


def test_operation_request_valid() -> None:
    """Test that a valid OperationRequest can be created."""
    req = OperationRequest(expression="2 + 2 * 3")
    assert req.expression == "2 + 2 * 3"


def test_operation_request_invalid_type() -> None:
    """Test that non-string expressions raise a validation error."""
    with pytest.raises(ValidationError):
        # int instead of str
        OperationRequest(expression=123)


def test_operation_result_valid() -> None:
    """Test that a successful OperationResult renders as an equation."""
    res = OperationResult(line=1, expression="2 + 2 * 3", result="8")
    assert res.ok
    assert res.error_kind is None
    assert res.render() == "2 + 2 * 3 = 8"


def test_operation_result_from_error() -> None:
    """Test that an evaluation failure renders as an error line."""
    res = OperationResult.from_error(3, "1/0", DivisionByZeroError())
    assert not res.ok
    assert res.line == 3
    assert res.error_kind is EvalErrorKind.DIVISION_BY_ZERO
    assert res.render() == "1/0 -> ERROR: division by zero"


def test_operation_result_dict_round_trip() -> None:
    """Workers send plain dicts, the server validates them back."""
    res = OperationResult(
        line=2, expression="(1", error="mismatched parentheses", error_kind=EvalErrorKind.MISMATCHED_PARENTHESES
    )
    payload = res.model_dump(mode="json")
    assert payload["error_kind"] == "MismatchedParentheses"
    assert OperationResult.model_validate(payload) == res


@pytest.mark.parametrize("fields", [
    {},
    {"result": "1", "error": "boom"},
])
def test_operation_result_requires_exactly_one_outcome(fields) -> None:
    """Test that result and error are mutually exclusive and one is required."""
    with pytest.raises(ValidationError):
        OperationResult(line=1, expression="1", **fields)


def test_operation_result_invalid_line() -> None:
    """Line numbers start at 1."""
    with pytest.raises(ValidationError):
        OperationResult(line=0, expression="1", result="1")
