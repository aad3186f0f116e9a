"""
Calculator Engine for CalcuSolve
Turns button presses into a running calculation.

Each operation is a pure function of the current CalculatorState and returns
a Step: the next state plus the HistoryEntry of the calculation it completed,
if any. The Calculator class keeps the current state for a session.
"""
import math
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, NamedTuple, Optional

from evaluator import EvaluationError, evaluate
from history_manager import HistoryEntry

OPERATORS = ("+", "-", "*", "/")
DIGITS = "0123456789"

CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}


class DomainError(ValueError):
    """A unary operation was applied outside its mathematical domain."""


@dataclass(frozen=True)
class CalculatorState:
    display: str = "0"
    stored_operand: Optional[float] = None
    pending_operator: Optional[str] = None
    awaiting_new_operand: bool = False


CLEARED = CalculatorState()


class Step(NamedTuple):
    state: CalculatorState
    entry: Optional[HistoryEntry] = None


def format_number(value):
    """Render a float the way double-to-string conversion does.

    Shortest round-trip digits, no trailing ".0" on integral values, plain
    notation for decimal exponents from -7 up to 21 and scientific notation
    ("1e+21", "1.5e-7") beyond. Negative zero is rendered as "0".
    """
    if value == 0:
        return "0"
    if not math.isfinite(value):
        raise ValueError(f"Cannot render non-finite value {value!r}")

    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digits)
    k = len(digits)
    n = k + exponent  # position of the decimal point relative to the digits
    prefix = "-" if sign else ""

    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * -n + digits

    mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
    e = n - 1
    return f"{prefix}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def parse_display(display):
    return float(display)


# ── Entry ────────────────────────────────────────────────────────────────────

def clear(state=None):
    return Step(CLEARED)


def input_digit(state, digit):
    digit = str(digit)
    if len(digit) != 1 or digit not in DIGITS:
        raise ValueError(f"Not a digit: {digit!r}")

    if state.awaiting_new_operand:
        return Step(replace(state, display=digit, awaiting_new_operand=False))

    display = digit if state.display == "0" else state.display + digit
    # "1e+308" followed by another digit would no longer be a finite number
    if not math.isfinite(parse_display(display)):
        return Step(state)
    return Step(replace(state, display=display))


def input_decimal_point(state):
    if state.awaiting_new_operand:
        return Step(replace(state, display="0.", awaiting_new_operand=False))
    if "." in state.display or "e" in state.display:
        return Step(state)
    return Step(replace(state, display=state.display + "."))


def backspace(state):
    if state.awaiting_new_operand:
        return Step(state)
    # Drop a dangling sign or exponent marker along with the last character
    display = state.display[:-1].rstrip("+-").rstrip("e")
    return Step(replace(state, display=display or "0"))


def recall(state, result):
    """Put a previous result back on the display so it can be edited."""
    value = parse_display(result)
    if not math.isfinite(value):
        raise ValueError(f"Not a finite number: {result!r}")
    return Step(replace(state, display=format_number(value), awaiting_new_operand=False))


# ── Binary operations ────────────────────────────────────────────────────────

def _calculate(left, op, right, evaluator):
    expression = f"{format_number(left)} {op} {format_number(right)}"
    result = evaluator(expression)
    if not math.isfinite(result):
        raise EvaluationError(f"Result is not finite: {expression}")
    rendered = format_number(result)
    return result, HistoryEntry(expression, rendered)


def perform_operation(state, op, evaluator=evaluate):
    """Select a binary operator, first applying any pending one.

    Chains evaluate left to right: 5 + 3 * 2 gives (5 + 3) * 2.
    Raises EvaluationError when the pending calculation fails.
    """
    if op not in OPERATORS:
        raise ValueError(f"Unknown operator: {op!r}")

    value = parse_display(state.display)
    entry = None

    if state.stored_operand is None:
        state = replace(state, stored_operand=value)
    elif state.pending_operator is not None:
        result, entry = _calculate(
            state.stored_operand, state.pending_operator, value, evaluator)
        state = replace(state, display=entry.result, stored_operand=result)

    return Step(replace(state, pending_operator=op, awaiting_new_operand=True), entry)


def equals(state, evaluator=evaluate):
    if state.stored_operand is None or state.pending_operator is None:
        return Step(state)

    value = parse_display(state.display)
    _, entry = _calculate(state.stored_operand, state.pending_operator, value, evaluator)
    return Step(CalculatorState(display=entry.result, awaiting_new_operand=True), entry)


# ── Unary operations ─────────────────────────────────────────────────────────

def toggle_sign(state):
    return Step(replace(state, display=format_number(-parse_display(state.display))))


def percent(state):
    return Step(replace(state, display=format_number(parse_display(state.display) / 100)))


class UnaryFunction(NamedTuple):
    symbol: str
    function: Callable[[float], float]
    error_message: str


def _square_root(x):
    if x < 0:
        raise ValueError("negative input")
    return math.sqrt(x)


UNARY_FUNCTIONS = {
    "square_root": UnaryFunction(
        "sqrt", _square_root, "Cannot calculate square root of negative number"),
    "square": UnaryFunction("sqr", lambda x: x * x, "Result is out of range"),
    "reciprocal": UnaryFunction("recip", lambda x: 1 / x, "Cannot divide by zero"),
    "absolute_value": UnaryFunction("abs", abs, "Result is out of range"),
    "log10": UnaryFunction("log", math.log10, "Invalid input for logarithm"),
    "natural_log": UnaryFunction("ln", math.log, "Invalid input for natural logarithm"),
}


def apply_function(state, name):
    """Apply one of UNARY_FUNCTIONS to the displayed value.

    Raises DomainError, leaving the state as it was, when the result
    would not be a finite number.
    """
    func = UNARY_FUNCTIONS[name]
    value = parse_display(state.display)
    try:
        result = func.function(value)
    except (ValueError, ZeroDivisionError, OverflowError):
        raise DomainError(func.error_message) from None
    if not math.isfinite(result):
        raise DomainError(func.error_message)

    rendered = format_number(result)
    entry = HistoryEntry(f"{func.symbol}({format_number(value)})", rendered)
    return Step(replace(state, display=rendered), entry)


def square_root(state):
    return apply_function(state, "square_root")


def square(state):
    return apply_function(state, "square")


def reciprocal(state):
    return apply_function(state, "reciprocal")


def absolute_value(state):
    return apply_function(state, "absolute_value")


def log10(state):
    return apply_function(state, "log10")


def natural_log(state):
    return apply_function(state, "natural_log")


def insert_constant(state, name):
    if name not in CONSTANTS:
        raise ValueError(f"Unknown constant: {name!r}")
    return Step(replace(state, display=format_number(CONSTANTS[name])))


class Calculator:
    """Holds the calculator state of one session.

    Methods return the HistoryEntry of a completed calculation or None.
    An EvaluationError resets the calculator before it is re-raised; a
    DomainError leaves it untouched.
    """

    def __init__(self, evaluator=evaluate):
        self.evaluator = evaluator
        self.state = CLEARED

    def _apply(self, step):
        self.state = step.state
        return step.entry

    def clear(self):
        return self._apply(clear())

    def input_digit(self, digit):
        return self._apply(input_digit(self.state, digit))

    def input_decimal_point(self):
        return self._apply(input_decimal_point(self.state))

    def perform_operation(self, op):
        try:
            return self._apply(perform_operation(self.state, op, self.evaluator))
        except EvaluationError:
            self.clear()
            raise

    def equals(self):
        try:
            return self._apply(equals(self.state, self.evaluator))
        except EvaluationError:
            self.clear()
            raise

    def backspace(self):
        return self._apply(backspace(self.state))

    def toggle_sign(self):
        return self._apply(toggle_sign(self.state))

    def percent(self):
        return self._apply(percent(self.state))

    def square_root(self):
        return self._apply(square_root(self.state))

    def square(self):
        return self._apply(square(self.state))

    def reciprocal(self):
        return self._apply(reciprocal(self.state))

    def absolute_value(self):
        return self._apply(absolute_value(self.state))

    def log10(self):
        return self._apply(log10(self.state))

    def natural_log(self):
        return self._apply(natural_log(self.state))

    def insert_constant(self, name):
        return self._apply(insert_constant(self.state, name))

    def recall(self, result):
        return self._apply(recall(self.state, result))

    def get_display(self):
        return self.state.display
