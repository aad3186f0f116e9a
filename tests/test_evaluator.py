import pytest

from evaluator import EvaluationError, evaluate


@pytest.mark.parametrize("expression, expected", [
    ("3 + 4", 7.0),
    ("5 - -3", 8.0),
    ("8 * 2", 16.0),
    ("7 / 2", 3.5),
    ("2 + 3 * 4", 14.0),
    ("(2 + 3) * 4", 20.0),
    ("1e+21 * 2", 2e21),
    ("1.5e-7 + 0", 1.5e-7),
    ("-(4)", -4.0),
])
def test_evaluates_arithmetic(expression, expected):
    assert evaluate(expression) == expected


def test_result_is_float():
    assert isinstance(evaluate("2 + 2"), float)


@pytest.mark.parametrize("expression", [
    "",
    "   ",
    "3 +",
    "3 ** 2",
    "3 % 2",
    "abs(3)",
    "x + 1",
    "'a' + 'b'",
    "True + 1",
    "__import__('os')",
])
def test_rejects_malformed_or_unsupported(expression):
    with pytest.raises(EvaluationError):
        evaluate(expression)


def test_division_by_zero_is_an_error():
    with pytest.raises(EvaluationError, match="Division by zero"):
        evaluate("1 / 0")


def test_overflow_is_an_error():
    with pytest.raises(EvaluationError):
        evaluate("1e+308 * 10")


def test_evaluation_error_is_value_error():
    assert issubclass(EvaluationError, ValueError)
