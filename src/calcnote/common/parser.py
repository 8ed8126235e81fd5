"""Parse and evaluate arithmetic expressions safely."""
from decimal import Decimal
import math
import operator
import string
from typing import Callable, Dict, List, Tuple

from calcnote.common.errors import (
    DivisionByZeroError,
    EmptyExpressionError,
    InsufficientOperandsError,
    InvalidNumberError,
    InvalidResultError,
    MalformedExpressionError,
    MismatchedParenthesesError,
    UnexpectedCharacterError,
)
from calcnote.common.tokens import Token, TokenKind

# Type alias for operator functions (taking two floats, returning a float)
OperatorFn = Callable[[float, float], float]

OPERATORS: Dict[str, OperatorFn] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}

NUMBER_CHARS = frozenset(string.digits + ".")


class ExpressionParser:
    """
    Parse and evaluate arithmetic expressions safely.

    Design constraints:
        - No eval(), no dynamic code execution
        - Pure and deterministic, every call owns its own buffers

    Algorithm:
        1. Tokenize, ignoring whitespace, and rewrite unary minus as ``0 - x``
        2. Convert to Reverse Polish Notation (RPN) using Shunting-yard
        3. Evaluate RPN using a stack

    The Shunting-yard algorithm converts an infix expression into Reverse Polish Notation (RPN), allowing safe, stack-based evaluation without parentheses.
    It handles operator precedence by temporarily storing operators on a stack and outputting them in the correct order.

    Examples:
        - Infix expression (standard notation): 3 + 4 * (2 - 1)
        - Corresponding Reverse Polish Notation (RPN): 3 4 2 1 - * +

    Every failure is raised as a subclass of :class:`calcnote.common.errors.EvalError`.
    """

    @staticmethod
    def tokenize(expr: str) -> List[Token]:
        """
        Split an arithmetic expression into tokens.

        Whitespace is never significant: ``"1 2"`` is the number ``12``.
        Runs of digits and dots become a single number token without any
        validation, so ``"1.2.3"`` is only rejected at evaluation time.

        :param str expr: Arithmetic expression as a string

        :return: List of tokens, unary minus already rewritten
        :rtype: List[Token]
        :raises EmptyExpressionError: If the expression is blank
        :raises UnexpectedCharacterError: On a character outside ``0-9 . + - * / ( )``
        """
        # Keep original positions so errors point at the user's input
        chars: List[Tuple[int, str]] = [(i, c) for i, c in enumerate(expr) if not c.isspace()]
        if not chars:
            raise EmptyExpressionError()

        tokens: List[Token] = []
        cursor = 0
        while cursor < len(chars):
            position, char = chars[cursor]
            if char in NUMBER_CHARS:
                end = cursor + 1
                while end < len(chars) and chars[end][1] in NUMBER_CHARS:
                    end += 1
                tokens.append(Token.number("".join(c for _, c in chars[cursor:end])))
                cursor = end
                continue

            if char in OPERATORS:
                tokens.append(Token.operator(char))
            elif char == "(":
                tokens.append(Token.lparen())
            elif char == ")":
                tokens.append(Token.rparen())
            else:
                raise UnexpectedCharacterError(char, position)
            cursor += 1

        return ExpressionParser._rewrite_unary_minus(tokens)

    @staticmethod
    def _rewrite_unary_minus(tokens: List[Token]) -> List[Token]:
        """
        Turn every unary minus into a binary subtraction from zero.

        A minus is unary when it comes first or right after an operator or an
        opening parenthesis. Only minus is rewritten, a leading plus is kept
        as is and later fails for lack of a left operand.

        :param List[Token] tokens: Scanned tokens

        :return: Tokens with a ``0`` inserted before every unary minus
        :rtype: List[Token]
        """
        output: List[Token] = []
        for i, token in enumerate(tokens):
            if token.kind is TokenKind.OPERATOR and token.text == "-":
                previous = tokens[i - 1] if i > 0 else None
                if previous is None or previous.kind in (TokenKind.OPERATOR, TokenKind.LPAREN):
                    output.append(Token.number("0"))
                    token = Token.operator("-", prefix=True)
            output.append(token)
        return output

    @staticmethod
    def _should_pop(top: Token, incoming: Token) -> bool:
        """Whether the operator on top of the stack goes to the output before ``incoming``."""
        if top.kind is not TokenKind.OPERATOR:
            return False
        if incoming.prefix:
            # Right-associative, binds tighter than any binary operator
            return top.precedence > incoming.precedence
        return top.precedence >= incoming.precedence

    @staticmethod
    def to_rpn(tokens: List[Token]) -> List[Token]:
        """
        Convert a list of tokens into Reverse Polish Notation (RPN) using the Shunting-yard algorithm.

        Operand counts are not checked here, only parenthesis balance.

        :param List[Token] tokens: List of arithmetic tokens

        :return: List of tokens in RPN order
        :rtype: List[Token]
        :raises MismatchedParenthesesError: On an unopened ``)`` or an unclosed ``(``
        """
        output: List[Token] = []
        stack: List[Token] = []

        for token in tokens:
            if token.kind is TokenKind.NUMBER:
                # Numbers are added directly to the output
                output.append(token)
            elif token.kind is TokenKind.OPERATOR:
                while stack and ExpressionParser._should_pop(stack[-1], token):
                    output.append(stack.pop())
                stack.append(token)
            elif token.kind is TokenKind.LPAREN:
                stack.append(token)
            else:
                # Closing parenthesis: flush operators down to the matching "("
                while stack and stack[-1].kind is not TokenKind.LPAREN:
                    output.append(stack.pop())
                if not stack:
                    raise MismatchedParenthesesError()
                stack.pop()

        # Append remaining operators, stack top first
        while stack:
            top = stack.pop()
            if top.is_paren:
                raise MismatchedParenthesesError()
            output.append(top)
        return output

    @staticmethod
    def _parse_number(text: str) -> float:
        """
        Convert a number token to float.

        :param str text: Raw number substring

        :return: Parsed value
        :rtype: float
        :raises InvalidNumberError: If the text is not a decimal literal or overflows
        """
        try:
            value = float(text)
        except ValueError:
            raise InvalidNumberError(text) from None
        if math.isinf(value):
            raise InvalidNumberError(text)
        return value

    @staticmethod
    def evaluate_rpn(rpn: List[Token]) -> float:
        """
        Evaluate a token list in Reverse Polish Notation using an operand stack.

        :param List[Token] rpn: Tokens in RPN order

        :return: Computed result
        :rtype: float
        :raises EvalError: On invalid numbers, missing operands, division by zero,
            leftover values or a non-finite result
        """
        stack: List[float] = []
        for token in rpn:
            if token.kind is TokenKind.NUMBER:
                stack.append(ExpressionParser._parse_number(token.text))
            elif token.kind is TokenKind.OPERATOR:
                # Operator requires two operands
                if len(stack) < 2:
                    raise InsufficientOperandsError(token.text)
                # The operand pushed last is the right-hand side
                b: float = stack.pop()
                a: float = stack.pop()
                if token.text == "/" and b == 0:
                    raise DivisionByZeroError()
                stack.append(OPERATORS[token.text](a, b))
            else:
                raise MismatchedParenthesesError()

        if len(stack) != 1:
            raise MalformedExpressionError(len(stack))

        result = stack[0]
        if not math.isfinite(result):
            raise InvalidResultError(result)
        return result

    @staticmethod
    def format_result(value: float) -> str:
        """
        Render a result as a plain decimal string.

        Uses the shortest representation that reads back to the same float,
        never switches to exponent notation and drops insignificant trailing
        zeros. The sign is kept except on zero: ``-0.0`` is deliberately
        shown as ``0``.

        :param float value: Finite number

        :return: Canonical decimal string
        :rtype: str
        :raises InvalidResultError: If the value is infinite or NaN
        """
        if not math.isfinite(value):
            raise InvalidResultError(value)
        if value == 0:
            # Covers -0.0 too: the sign of zero is never shown
            return "0"
        text = format(Decimal(repr(value)), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text

    @staticmethod
    def compute(expr: str) -> float:
        """
        Evaluate an arithmetic expression and return the raw float.

        :param str expr: Arithmetic expression string

        :return: Computed result as float
        :rtype: float
        :raises EvalError: If expression is invalid or malformed
        """
        tokens: List[Token] = ExpressionParser.tokenize(expr)
        rpn: List[Token] = ExpressionParser.to_rpn(tokens)
        return ExpressionParser.evaluate_rpn(rpn)

    @staticmethod
    def evaluate(expr: str) -> str:
        """
        Evaluate an arithmetic expression and return its canonical decimal string.

        :param str expr: Arithmetic expression string

        :return: Formatted result, e.g. ``"14"`` or ``"-0.5"``
        :rtype: str
        :raises EvalError: If expression is invalid or malformed
        """
        return ExpressionParser.format_result(ExpressionParser.compute(expr))


# Public entry point
evaluate = ExpressionParser.evaluate
