"""Errors raised while evaluating an arithmetic expression."""
from enum import Enum


class EvalErrorKind(str, Enum):
    """Closed set of evaluation failure kinds."""

    EMPTY_EXPRESSION = "EmptyExpression"
    UNEXPECTED_CHARACTER = "UnexpectedCharacter"
    MISMATCHED_PARENTHESES = "MismatchedParentheses"
    INVALID_NUMBER = "InvalidNumber"
    INSUFFICIENT_OPERANDS = "InsufficientOperands"
    DIVISION_BY_ZERO = "DivisionByZero"
    MALFORMED_EXPRESSION = "MalformedExpression"
    INVALID_RESULT = "InvalidResult"


class EvalError(ValueError):
    """
    Base class of every evaluation failure.

    The message (``str(error)``) is meant to be shown to the end user as is.
    """

    kind: EvalErrorKind


class EmptyExpressionError(EvalError):
    kind = EvalErrorKind.EMPTY_EXPRESSION

    def __init__(self) -> None:
        super().__init__("empty expression")


class UnexpectedCharacterError(EvalError):
    kind = EvalErrorKind.UNEXPECTED_CHARACTER

    def __init__(self, char: str, position: int) -> None:
        self.char = char
        self.position = position
        super().__init__(f"unexpected character {char!r} at position {position}")


class MismatchedParenthesesError(EvalError):
    kind = EvalErrorKind.MISMATCHED_PARENTHESES

    def __init__(self) -> None:
        super().__init__("mismatched parentheses")


class InvalidNumberError(EvalError):
    kind = EvalErrorKind.INVALID_NUMBER

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"invalid number {text!r}")


class InsufficientOperandsError(EvalError):
    kind = EvalErrorKind.INSUFFICIENT_OPERANDS

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"not enough operands for {operator!r}")


class DivisionByZeroError(EvalError):
    kind = EvalErrorKind.DIVISION_BY_ZERO

    def __init__(self) -> None:
        super().__init__("division by zero")


class MalformedExpressionError(EvalError):
    kind = EvalErrorKind.MALFORMED_EXPRESSION

    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        super().__init__(f"malformed expression ({remaining} values left after evaluation)")


class InvalidResultError(EvalError):
    kind = EvalErrorKind.INVALID_RESULT

    def __init__(self, value: float) -> None:
        self.value = value
        super().__init__(f"result is not a finite number ({value})")
