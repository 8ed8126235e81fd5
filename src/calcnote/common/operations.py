"""Pydantic models for arithmetic operation requests and results."""
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from calcnote.common.errors import EvalError, EvalErrorKind


class OperationRequest(BaseModel):
    """Represents a single arithmetic operation request sent to the server."""

    expression: str = Field(..., description="Arithmetic expression as a string")


class OperationResult(BaseModel):
    """Represents the outcome of an evaluated arithmetic operation, either a result or an error."""

    line: int = Field(..., ge=1, description="Line number of the expression in the input")
    expression: str = Field(..., description="Original arithmetic expression")
    result: Optional[str] = Field(default=None, description="Canonical decimal result")
    error: Optional[str] = Field(default=None, description="User facing error message")
    error_kind: Optional[EvalErrorKind] = Field(default=None, description="Kind of evaluation failure")

    @model_validator(mode="after")
    def result_xor_error(self) -> "OperationResult":
        """Ensure exactly one of result and error is set."""
        if (self.result is None) == (self.error is None):
            raise ValueError("Exactly one of 'result' and 'error' must be set")
        return self

    @classmethod
    def from_error(cls, line: int, expression: str, exc: EvalError) -> "OperationResult":
        """Build an error result from an evaluation failure."""
        return cls(line=line, expression=expression, error=str(exc), error_kind=exc.kind)

    @property
    def ok(self) -> bool:
        return self.error is None

    def render(self) -> str:
        """
        Format the outcome as one line of the results file.

        :return: ``"<expr> = <result>"`` or ``"<expr> -> ERROR: <message>"``
        :rtype: str
        """
        if self.ok:
            return f"{self.expression} = {self.result}"
        return f"{self.expression} -> ERROR: {self.error}"
