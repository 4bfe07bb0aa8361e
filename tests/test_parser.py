"""Test class ExpressionParser and the evaluate_expression entry point."""

import pytest

from pocket_calculator.common.config import CalculatorSettings
from pocket_calculator.common.errors import (
    DivisionByZero,
    EvaluationError,
    InvalidExpression,
)
from pocket_calculator.common.parser import (
    ExpressionParser,
    clean_result,
    evaluate_expression,
    format_number,
)


def test_tokenize_basic():
    """Tokenize splits numbers from one-character operators."""
    tokens = ExpressionParser.tokenize("12+3.5×(4-1)")
    assert tokens == ["12", "+", "3.5", "×", "(", "4", "-", "1", ")"]


def test_tokenize_spaces_end_numbers():
    """Spaces are dropped and end the current number."""
    assert ExpressionParser.tokenize(" 3 + 4 ") == ["3", "+", "4"]
    assert ExpressionParser.tokenize("1 2") == ["1", "2"]


@pytest.mark.parametrize("token,expected", [
    ("123", True),
    ("45.67", True),
    ("-8.9", True),
    ("abc", False),
    ("+", False),
    ("inf", False),
    ("1.2.3", False),
])
def test_is_number(token, expected):
    """_is_number correctly identifies finite numbers."""
    assert ExpressionParser._is_number(token) == expected


@pytest.mark.parametrize("expr,expected", [
    ("2+3", True),
    ("(2+3)×4", True),
    ("50%+10", True),
    ("1" * 20, True),
    ("1" * 21, False),
    ("(5+3", False),
    ("5+3)", False),
    (")5+3(", False),
    ("5++3", False),
    ("5+-3", False),
    ("5××3", False),
    ("5÷÷3", False),
    ("5.5.5", False),
    ("5+", False),
    ("5%", False),
    ("5×(", False),
])
def test_is_valid(expr, expected):
    """is_valid applies length, parenthesis, operator and decimal rules."""
    assert ExpressionParser.is_valid(expr) == expected


def test_is_valid_custom_length():
    """is_valid honours a custom maximum length."""
    assert ExpressionParser.is_valid("1+2", max_length=3)
    assert not ExpressionParser.is_valid("1+23", max_length=3)


@pytest.mark.parametrize("expr,expected", [
    ("2×3÷4", "2*3/4"),
    ("50%+10", "(50/100)+10"),
    ("2.5%×4", "(2.5/100)*4"),
    ("(2+3)%4", "(2+3)%4"),
    ("5±", "5*-1"),
])
def test_normalize(expr, expected):
    """normalize rewrites display operators, percent and sign toggle."""
    assert ExpressionParser.normalize(expr) == expected


@pytest.mark.parametrize("tokens,expected", [
    (["10", "-", "2"], ["10", "-", "2"]),
    (["5", "*", "-", "1"], ["5", "*", "-1"]),
    (["-", "3", "+", "5"], ["-3", "+", "5"]),
    (["(", "-", "2", ")"], ["(", "-2", ")"]),
    (["-", "(", "2", ")"], ["-1", "*", "(", "2", ")"]),
])
def test_fold_signs(tokens, expected):
    """fold_signs merges leading minus signs into their operand."""
    assert ExpressionParser.fold_signs(tokens) == expected


@pytest.mark.parametrize("tokens,expected", [
    (["3", "+", "4"], [3.0, 4.0, "+"]),
    (["3", "+", "4", "*", "2"], [3.0, 4.0, 2.0, "*", "+"]),
    (["10", "-", "2", "-", "3"], [10.0, 2.0, "-", 3.0, "-"]),
    (["(", "1", "+", "2", ")", "*", "3"], [1.0, 2.0, "+", 3.0, "*"]),
    (["2", "*", "3", "%", "4"], [2.0, 3.0, 4.0, "%", "*"]),
])
def test_to_rpn(tokens, expected):
    """to_rpn orders tokens by precedence, left-associatively."""
    assert ExpressionParser.to_rpn(tokens) == expected


def test_to_rpn_unmatched_closing_parenthesis():
    """An unmatched ')' empties the operator stack without raising."""
    rpn = ExpressionParser.to_rpn(["1", "+", "2", ")", "*", "3"])
    assert rpn == [1.0, 2.0, "+", 3.0, "*"]


def test_to_rpn_unknown_token():
    """Tokens outside the grammar are rejected."""
    with pytest.raises(ValueError):
        ExpressionParser.to_rpn(["1", "+", "a"])


@pytest.mark.parametrize("rpn,expected", [
    ([3.0, 4.0, "+"], 7.0),
    ([10.0, 2.0, "-", 3.0, "-"], 5.0),
    ([7.0, 3.0, "%"], 1.0),
    ([-7.0, 3.0, "%"], -1.0),
    ([6.0, 4.0, "÷"], 1.5),
    ([6.0, 4.0, "×"], 24.0),
])
def test_evaluate_rpn(rpn, expected):
    """evaluate_rpn uses the earlier operand as the left one."""
    assert ExpressionParser.evaluate_rpn(rpn) == expected


@pytest.mark.parametrize("rpn", [
    [8.0, 0.0, "/"],
    [8.0, 0.0, "÷"],
])
def test_evaluate_rpn_division_by_zero(rpn):
    """Dividing by zero raises DivisionByZero."""
    with pytest.raises(DivisionByZero):
        ExpressionParser.evaluate_rpn(rpn)


@pytest.mark.parametrize("rpn", [
    [1.0, "+"],
    [1.0, 2.0],
    [],
])
def test_evaluate_rpn_malformed(rpn):
    """Malformed RPN raises ValueError."""
    with pytest.raises(ValueError):
        ExpressionParser.evaluate_rpn(rpn)


@pytest.mark.parametrize("expr,expected", [
    ("2+3×4", 14.0),
    ("2×3+4", 10.0),
    ("10-2-3", 5.0),
    ("50%+10", 10.5),
    ("(2+3)×4", 20.0),
    ("8÷4", 2.0),
    ("8/4*2", 4.0),
    ("0.1+0.2", 0.3),
    ("1÷3", 0.3333333333),
    ("(7)%3", 1.0),
    ("5%%3", 0.05),
    ("5±", -5.0),
    ("2+3±", -1.0),
    ("-3+5", 2.0),
    ("5+(-3)", 2.0),
    ("(-(2+3))", -5.0),
    (" 3 + 4 ", 7.0),
    ("7", 7.0),
])
def test_evaluate_valid(expr, expected):
    """evaluate returns the cleaned result for valid expressions."""
    assert evaluate_expression(expr) == expected


@pytest.mark.parametrize("expr,expected", [
    ("1+2×3-4÷2", 1 + 2 * 3 - 4 / 2),
    ("12.5×4-3÷7", 12.5 * 4 - 3 / 7),
    ("(1+2)×(3+4)÷5", (1 + 2) * (3 + 4) / 5),
    ("100-25×3+2", 100 - 25 * 3 + 2),
    ("9÷3÷3", 9 / 3 / 3),
])
def test_evaluate_matches_precedence_arithmetic(expr, expected):
    """Results agree with precedence-respecting arithmetic within 1e-10."""
    assert evaluate_expression(expr) == pytest.approx(expected, abs=1e-10)


@pytest.mark.parametrize("expr", ["", "   "])
def test_evaluate_blank_is_zero(expr):
    """A blank expression evaluates to 0 without raising."""
    assert evaluate_expression(expr) == 0.0


@pytest.mark.parametrize("expr", ["3+4", "1÷3", "2.5±", "0.1+0.2", "10-20", "1÷100000", "99999999×99999999"])
def test_evaluate_is_idempotent(expr):
    """Evaluating the displayed result gives the same value back."""
    value = evaluate_expression(expr)
    assert evaluate_expression(format_number(value)) == value


@pytest.mark.parametrize("expr", ["5++3", "5.5.5", "(5+3", "5+", "5+3)", "1" * 21])
def test_evaluate_invalid_expression(expr):
    """Structurally malformed expressions raise InvalidExpression."""
    with pytest.raises(InvalidExpression):
        evaluate_expression(expr)


@pytest.mark.parametrize("expr", ["8/0", "8÷0", "1÷(2-2)"])
def test_evaluate_division_by_zero(expr):
    """Division by zero keeps its specific error kind."""
    with pytest.raises(DivisionByZero) as info:
        evaluate_expression(expr)
    assert isinstance(info.value, ZeroDivisionError)


@pytest.mark.parametrize("expr", ["5%3", "1..2", "(7)%0", "2(3)"])
def test_evaluate_error_is_chained(expr):
    """Internal failures surface as EvaluationError with the cause attached."""
    with pytest.raises(EvaluationError) as info:
        evaluate_expression(expr)
    assert info.value.__cause__ is not None


def test_evaluate_wraps_unexpected_errors(monkeypatch):
    """Any failure inside the pipeline is reported as EvaluationError."""

    def broken_to_rpn(tokens):
        raise KeyError("×")

    monkeypatch.setattr(ExpressionParser, "to_rpn", staticmethod(broken_to_rpn))
    with pytest.raises(EvaluationError) as info:
        evaluate_expression("2×3")
    assert isinstance(info.value.__cause__, KeyError)


def test_evaluate_near_zero_snaps():
    """Floating-point noise around zero becomes exactly 0."""
    assert evaluate_expression("0.1+0.2-0.3") == 0.0


def test_evaluate_respects_settings():
    """The maximum length comes from the settings."""
    settings = CalculatorSettings(max_length=3)
    assert evaluate_expression("1+2", settings) == 3.0
    with pytest.raises(InvalidExpression):
        evaluate_expression("1+23", settings)


@pytest.mark.parametrize("value,expected", [
    (1e-15, 0.0),
    (-1e-11, 0.0),
    (0.30000000000000004, 0.3),
    (2.00000000001, 2.0),
    (1.5, 1.5),
])
def test_clean_result(value, expected):
    """clean_result snaps near-zero values and rounds to 10 places."""
    assert clean_result(value) == expected


@pytest.mark.parametrize("value,expected", [
    (7.0, "7"),
    (-0.0, "0"),
    (0.3, "0.3"),
    (-2.5, "-2.5"),
    (1e20, "100000000000000000000"),
    (0.00001, "0.00001"),
    (-0.00003, "-0.00003"),
    (1e-12, "0"),
])
def test_format_number(value, expected):
    """format_number writes plain decimals without trailing zeros or negative zero."""
    assert format_number(value) == expected
