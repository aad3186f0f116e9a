"""
Expression Evaluator for CalcuSolve
Evaluates plain infix arithmetic such as "3 + 4" or "8 * -2"
"""
import ast
import math
import operator


class EvaluationError(ValueError):
    """Raised when an expression is malformed or has no finite value."""


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def evaluate(expression):
    """Evaluate an arithmetic expression and return a finite float.

    Only numeric literals, the four basic operators, unary signs and
    parentheses are accepted. Division by zero and results that overflow
    to infinity are reported as EvaluationError instead of being returned.
    """
    if not isinstance(expression, str) or not expression.strip():
        raise EvaluationError("Empty expression")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise EvaluationError(f"Invalid expression: {expression}") from e

    result = _eval_node(tree.body)
    if not math.isfinite(result):
        raise EvaluationError(f"Result is not finite: {expression}")
    return result


def _eval_node(node):
    if isinstance(node, ast.Constant):
        # bool is an int subclass; True + 1 is not arithmetic input
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise EvaluationError(f"Unsupported literal: {node.value!r}")
        try:
            return float(node.value)
        except OverflowError as e:
            raise EvaluationError("Result is out of range") from e

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        try:
            return _BINARY_OPS[type(node.op)](left, right)
        except ZeroDivisionError as e:
            raise EvaluationError("Division by zero") from e
        except OverflowError as e:
            raise EvaluationError("Result is out of range") from e

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))

    raise EvaluationError(f"Unsupported expression: {type(node).__name__}")
