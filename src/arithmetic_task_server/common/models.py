"""Pydantic models for expressions, tasks and the API payloads that carry them."""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, field_validator, model_serializer


OperationSymbol = Literal["+", "-", "*", "/"]


class ExpressionStatus(str, Enum):
    """Lifecycle of a submitted expression."""

    PENDING = "pending"
    COMPLETED = "completed"


class Expression(BaseModel):
    """
    A submitted expression and its evaluation state.

    Instances are immutable: a state transition produces a new instance,
    so a reader holding a record never sees a half-applied update.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique expression identifier")
    expression: str = Field(..., description="Original expression text")
    status: ExpressionStatus = Field(default=ExpressionStatus.PENDING, description="Evaluation status")
    result: Optional[float] = Field(default=None, description="Result, set only once completed; zero is not serialized")

    def complete(self, result: float) -> "Expression":
        """
        Return the completed version of this expression.

        :param float result: Final numeric result

        :return: New expression with status completed and the result stored
        :rtype: Expression
        """
        return self.model_copy(update={"status": ExpressionStatus.COMPLETED, "result": result})

    @model_serializer(mode="wrap")
    def omit_empty_result(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        """Leave ``result`` out of the payload while it is absent or zero."""
        data = handler(self)
        if not data.get("result"):
            data.pop("result", None)
        return data


class Task(BaseModel):
    """A single two-operand arithmetic operation waiting for a worker."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique task identifier")
    expression_id: str = Field(..., description="Expression this task belongs to")
    arg1: float = Field(..., description="Left operand")
    arg2: float = Field(..., description="Right operand")
    operation: OperationSymbol = Field(..., description="Operator symbol")
    operation_time: int = Field(default=0, ge=0, description="Expected duration hint in milliseconds")


class CalculateRequest(BaseModel):
    """Body of POST /api/v1/calculate."""

    expression: str = Field(..., description="Arithmetic expression as a string")

    @field_validator("expression")
    def expression_must_not_be_empty(cls, v: str) -> str:
        """Ensure that the expression is not blank."""
        if not v.strip():
            raise ValueError("Expression cannot be empty")
        return v


class CalculateResponse(BaseModel):
    id: str


class ExpressionList(BaseModel):
    expressions: List[Expression] = Field(default_factory=list)


class TaskResult(BaseModel):
    """Result of a task reported back by an external worker."""

    id: str = Field(..., description="Identifier of the computed task")
    result: float = Field(..., allow_inf_nan=False, description="Finite numeric result")
