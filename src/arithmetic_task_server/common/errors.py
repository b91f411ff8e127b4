"""
Exception hierarchy for the arithmetic task server.

Every error carries a machine-readable code, a human-readable message and
the HTTP status used when it reaches a client through the API.
"""
from typing import Any, Dict


class CalculatorError(Exception):
    """Base exception for all arithmetic task server errors."""

    code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> Dict[str, Any]:
        """
        Convert the error to the JSON body returned by the API.

        :return: Error envelope
        :rtype: Dict[str, Any]
        """
        return {"error": {"code": self.code, "message": self.message}}


# Client errors


class BadRequestError(CalculatorError):
    """Request body is absent or malformed."""

    code = "BAD_REQUEST"
    http_status = 400


class ParseError(CalculatorError):
    """Expression text is not syntactically valid."""

    code = "PARSE_ERROR"
    http_status = 400


class EvaluationError(CalculatorError):
    """Expression parsed but could not be evaluated to a finite number."""

    code = "EVALUATION_ERROR"
    http_status = 400


class ExpressionNotFoundError(CalculatorError):
    code = "EXPRESSION_NOT_FOUND"
    http_status = 404

    def __init__(self, expression_id: str):
        super().__init__(f"expression '{expression_id}' not found")
        self.expression_id = expression_id


class TaskNotFoundError(CalculatorError):
    """Task id is unknown or its result was already reported."""

    code = "TASK_NOT_FOUND"
    http_status = 404

    def __init__(self, task_id: str):
        super().__init__(f"task '{task_id}' not found")
        self.task_id = task_id


class DuplicateIDError(CalculatorError):
    code = "DUPLICATE_ID"
    http_status = 409

    def __init__(self, expression_id: str):
        super().__init__(f"expression '{expression_id}' already exists")
        self.expression_id = expression_id


class QueueFullError(CalculatorError):
    """Task queue has no room for the tasks being enqueued."""

    code = "QUEUE_FULL"
    http_status = 503

    def __init__(self, capacity: int):
        super().__init__(f"task queue is full (capacity {capacity})")
        self.capacity = capacity


# Task processing errors, contained by whoever processes the task


class TaskProcessingError(CalculatorError):
    code = "TASK_PROCESSING_ERROR"
    http_status = 422


class DivisionByZeroError(TaskProcessingError):
    code = "DIVISION_BY_ZERO"

    def __init__(self, task_id: str):
        super().__init__(f"division by zero in task '{task_id}'")
        self.task_id = task_id


class InvalidResultError(TaskProcessingError):
    """Operation produced NaN or an infinity."""

    code = "INVALID_RESULT"

    def __init__(self, task_id: str, value: float):
        super().__init__(f"task '{task_id}' produced a non-finite result: {value}")
        self.task_id = task_id
        self.value = value
