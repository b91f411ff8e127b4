"""Test the task processor apply_operation."""
import pytest

from arithmetic_task_server.common.errors import DivisionByZeroError, InvalidResultError, TaskProcessingError
from arithmetic_task_server.common.models import Task
from arithmetic_task_server.common.operations import apply_operation


def make_task(arg1: float, operation: str, arg2: float) -> Task:
    return Task(id="task-1", expression_id="expr-1", arg1=arg1, arg2=arg2, operation=operation)


@pytest.mark.parametrize("arg1,operation,arg2,expected", [
    (2, "+", 3, 5.0),
    (10, "-", 4, 6.0),
    (3, "*", 4, 12.0),
    (8, "/", 2, 4.0),
    (1, "/", 4, 0.25),
    (-2, "*", 3, -6.0),
])
def test_apply_operation_valid(arg1, operation, arg2, expected) -> None:
    """apply_operation computes the four supported operators."""
    assert apply_operation(make_task(arg1, operation, arg2)) == expected


def test_division_by_zero() -> None:
    """Dividing by exactly zero raises DivisionByZeroError."""
    with pytest.raises(DivisionByZeroError) as exc_info:
        apply_operation(make_task(10, "/", 0))
    assert exc_info.value.task_id == "task-1"
    assert isinstance(exc_info.value, TaskProcessingError)


def test_division_by_negative_zero() -> None:
    """Negative zero is zero too."""
    with pytest.raises(DivisionByZeroError):
        apply_operation(make_task(10, "/", -0.0))


def test_overflow_is_invalid_result() -> None:
    """A result overflowing to infinity raises InvalidResultError."""
    with pytest.raises(InvalidResultError) as exc_info:
        apply_operation(make_task(1e308, "*", 10))
    assert exc_info.value.value == float("inf")


def test_zero_numerator_is_valid() -> None:
    """Only the divisor is checked for zero."""
    assert apply_operation(make_task(0, "/", 5)) == 0.0
