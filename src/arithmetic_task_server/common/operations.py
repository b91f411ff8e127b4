"""Apply a single arithmetic task: the computation every worker performs."""
import math

from arithmetic_task_server.common.errors import DivisionByZeroError, InvalidResultError
from arithmetic_task_server.common.models import Task
from arithmetic_task_server.common.parser import OPERATORS


def apply_operation(task: Task) -> float:
    """
    Apply the task's operator to its two operands.

    Pure function: no registry or queue access.

    :param Task task: Task to compute

    :return: Finite result of the operation
    :rtype: float
    :raises DivisionByZeroError: If the operation is a division and arg2 is exactly zero
    :raises InvalidResultError: If the result is NaN or infinite
    """
    if task.operation == "/" and task.arg2 == 0:
        raise DivisionByZeroError(task.id)

    result: float = OPERATORS[task.operation][1](task.arg1, task.arg2)

    if not math.isfinite(result):
        raise InvalidResultError(task.id, result)
    return result
