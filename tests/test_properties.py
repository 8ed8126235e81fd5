"""Property-based tests of the expression evaluator.

Generated integer expressions are also valid Python, so Python's own
arithmetic serves as ground truth: with small operands every intermediate
value is an exactly representable float.
"""
from hypothesis import example, given, strategies as st

from calcnote.common.errors import EvalError
from calcnote.common.parser import ExpressionParser
from calcnote.common.tokens import Token

leaves = st.integers(0, 20).map(str) | st.integers(1, 20).map(lambda n: f"-{n}")
operators = st.sampled_from("+-*")


def _join(parts):
    left, op, right = parts
    return f"{left}{op}{right}"


expressions = st.recursive(
    leaves,
    lambda children: (
        st.tuples(children, operators, children).map(_join)
        | st.tuples(children, operators, children).map(lambda parts: f"({_join(parts)})")
    ),
    max_leaves=8,
)


def outcome(expr):
    try:
        return ExpressionParser.evaluate(expr)
    except EvalError as exc:
        return type(exc), str(exc)


@given(st.text(alphabet="0123456789.+-*/() ", max_size=30))
def test_evaluate_is_deterministic(expr):
    assert outcome(expr) == outcome(expr)


@given(st.text(max_size=30))
def test_evaluate_only_raises_eval_errors(expr):
    """Arbitrary input either evaluates or fails with a typed error."""
    assert isinstance(outcome(expr), (str, tuple))


@given(expressions)
@example("3*-2")
@example("8-3-2")
@example("2--3*4")
def test_evaluate_agrees_with_python(expr):
    expected = float(eval(expr))  # generated from digits, operators and parentheses only
    assert float(ExpressionParser.evaluate(expr)) == expected


@given(st.floats(min_value=0, allow_nan=False, allow_infinity=False))
@example(5e-324)
@example(1e16)
@example(0.1)
def test_formatted_result_reads_back_as_one_number(value):
    text = ExpressionParser.format_result(value)
    assert "e" not in text.lower()
    assert ExpressionParser.tokenize(text) == [Token.number(text)]
    assert float(text) == value
    assert ExpressionParser.evaluate(text) == text


@given(st.floats(allow_nan=False, allow_infinity=False))
def test_format_result_drops_trailing_zeros(value):
    text = ExpressionParser.format_result(value)
    if "." in text:
        assert not text.endswith("0")
        assert not text.endswith(".")
    assert float(text) == value
