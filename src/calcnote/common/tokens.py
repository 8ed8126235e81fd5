"""Token types produced by the tokenizer and consumed by the parser and evaluator."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class TokenKind(Enum):
    NUMBER = "number"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"


# Binary operator precedence, higher binds tighter
PRECEDENCE: Dict[str, int] = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
}

# Precedence of a minus rewritten from unary to "0 - x"
PREFIX_MINUS_PRECEDENCE: int = 3


@dataclass(frozen=True)
class Token:
    """
    Immutable tagged token.

    ``text`` holds the raw number substring, the operator symbol or the
    parenthesis character. ``prefix`` marks a minus that was rewritten from
    unary form; it does not take part in equality so the rewritten sequence
    still compares equal to plain ``0 - x`` tokens.
    """

    kind: TokenKind
    text: str
    prefix: bool = field(default=False, compare=False)

    @classmethod
    def number(cls, text: str) -> "Token":
        return cls(TokenKind.NUMBER, text)

    @classmethod
    def operator(cls, symbol: str, prefix: bool = False) -> "Token":
        if symbol not in PRECEDENCE:
            raise ValueError(f"Unknown operator: {symbol!r}")
        return cls(TokenKind.OPERATOR, symbol, prefix)

    @classmethod
    def lparen(cls) -> "Token":
        return cls(TokenKind.LPAREN, "(")

    @classmethod
    def rparen(cls) -> "Token":
        return cls(TokenKind.RPAREN, ")")

    @property
    def is_paren(self) -> bool:
        return self.kind in (TokenKind.LPAREN, TokenKind.RPAREN)

    @property
    def precedence(self) -> int:
        """Binding power of an operator token (0 for anything else)."""
        if self.kind is not TokenKind.OPERATOR:
            return 0
        if self.prefix:
            return PREFIX_MINUS_PRECEDENCE
        return PRECEDENCE[self.text]

    def __str__(self) -> str:
        return self.text
