import math

import pytest

import postfix
from postfix import ExpressionInvalid, compileExpression, expandImplicitMultiplication, getFunc


@pytest.mark.parametrize("raw, expanded", [
    ("2x", "2*x"),
    ("2*x", "2*x"),
    ("(x+1)(x-1)", "(x+1)*(x-1)"),
    ("x(x+1)", "x*(x+1)"),
    ("3sin(x)", "3*sin(x)"),
    ("xx", "x*x"),
    ("2pi", "2*pi"),
    ("x^2", "x^2"),
    ("", ""),
])
def test_expand_implicit_multiplication(raw, expanded):
    assert expandImplicitMultiplication(raw) == expanded


@pytest.mark.parametrize("raw", ["2x", "3x(x-1)2", "(x)(x)x", "x^2 + 4x + 4", "sin(2x)"])
def test_expand_is_idempotent(raw):
    once = expandImplicitMultiplication(raw)
    assert expandImplicitMultiplication(once) == once


@pytest.mark.parametrize("text, x, expected", [
    ("x^2", 3, 9),
    ("1 + 2*3", 0, 7),
    ("(1 + 2)*3", 0, 9),
    ("2^3^2", 0, 64),
    ("-x^2", 3, 9),
    ("-(x^2)", 3, -9),
    ("2^-x", 1, 0.5),
    ("7 % 4", 0, 3),
    ("10 - 4 - 3", 0, 3),
    ("+x", 2, 2),
    ("sin(pi/2)", 0, 1),
    ("pow(x, 2)", 4, 16),
    ("atan2(1, 1)", 0, math.pi / 4),
    ("log(100)", 0, 2),
    ("ln(e)", 0, 1),
    ("abs(-x)", 5, 5),
    ("floor(x) + ceil(x)", 1.5, 3),
])
def test_evaluate(text, x, expected):
    assert getFunc(text).evaluateAt(x) == pytest.approx(expected)


def test_compile_expression_applies_implicit_multiplication():
    f = compileExpression("2x(x+1)")
    assert f.evaluateAt(2) == pytest.approx(12)
    assert f.text == "2*x*(x+1)"


def test_evaluable_rebinds_between_calls():
    f = compileExpression("x^2")
    assert [f.evaluateAt(x) for x in (1, 2, 3)] == [1, 4, 9]
    assert f(-2) == 4


@pytest.mark.parametrize("text, x, check", [
    ("1/x", 0, lambda y: y == math.inf),
    ("-1/x", 0, lambda y: y == -math.inf),
    ("0/x", 0, math.isnan),
    ("sqrt(x)", -1, math.isnan),
    ("ln(x)", 0, lambda y: y == -math.inf),
    ("exp(x)", 1000, lambda y: y == math.inf),
    ("sinh(x)", 1000, lambda y: y == math.inf),
    ("sinh(x)", -1000, lambda y: y == -math.inf),
    ("cosh(x)", -1000, lambda y: y == math.inf),
    ("x^0.5", -4, math.isnan),
    ("1/x", math.inf, lambda y: y == 0),
    ("cos(x)", math.inf, math.isnan),
])
def test_evaluate_follows_ieee_instead_of_raising(text, x, check):
    assert check(getFunc(text).evaluateAt(x))


@pytest.mark.parametrize("text", [
    "x + ",
    "",
    "   ",
    "2*",
    "(x",
    "x)",
    "()",
    "y + 1",
    "sinx",
    "1.2.3",
    "pow(x)",
    "sin(x, 1)",
    "1, 2",
    "x $ 2",
    "x x",
    "sin",
])
def test_invalid_expressions(text):
    with pytest.raises(ExpressionInvalid):
        getFunc(text)


def test_expression_invalid_is_a_value_error():
    with pytest.raises(ValueError, match="unknown symbol `y`"):
        compileExpression("y")


def test_exp_is_split_by_implicit_multiplication():
    # `x` followed by a letter always gets a `*`, so `exp` reads as `ex*p`
    with pytest.raises(ExpressionInvalid):
        compileExpression("exp(x)")
    assert compileExpression("e^x").evaluateAt(1) == pytest.approx(math.e)


@pytest.mark.parametrize("text, expected", [("log10(100)", 2), ("atan2(1, 1)", math.pi / 4)])
def test_names_ending_in_a_digit_are_split_by_implicit_multiplication(text, expected):
    # a digit followed by `(` always gets a `*`, so `log10(` reads as `log10*(`
    with pytest.raises(ExpressionInvalid, match="unknown symbol"):
        compileExpression(text)
    assert getFunc(text).evaluateAt(0) == pytest.approx(expected)


def test_compile_cached_reuses_compiled_form():
    assert postfix.compileCached("x^3 - x") is postfix.compileCached("x^3 - x")
