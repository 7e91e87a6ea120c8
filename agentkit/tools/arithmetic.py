"""Restricted arithmetic evaluation for calculator-style tools."""
from __future__ import annotations

import ast
import math
import operator
from typing import Any, Callable, Dict, Type, Union

Number = Union[int, float]

_BINARY_OPERATORS: Dict[Type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: Dict[Type[ast.unaryop], Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

MAX_EXPRESSION_LENGTH = 200
MAX_EXPONENT = 100
MAX_INTEGER_BITS = 1024


class UnsafeExpression(ValueError):
    """The expression is not plain arithmetic, or its result is out of range."""


def evaluate(expression: str) -> Number:
    """Evaluate numbers, parentheses and ``+ - * / // % **`` only.

    Every intermediate value must be a real, finite number; integers are
    limited to ``MAX_INTEGER_BITS`` bits.
    """
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise UnsafeExpression("Expression too long")
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as exc:
        raise UnsafeExpression(f"Invalid expression: {expression!r}") from exc
    return _eval(tree.body)


def _checked(value: Any) -> Number:
    if isinstance(value, complex):
        raise UnsafeExpression("Result is not a real number")
    if isinstance(value, float) and not math.isfinite(value):
        raise UnsafeExpression("Result out of range")
    if isinstance(value, int) and value.bit_length() > MAX_INTEGER_BITS:
        raise UnsafeExpression("Result too large")
    return value


def _power(base: Number, exponent: Number) -> Number:
    if abs(exponent) > MAX_EXPONENT:
        raise UnsafeExpression("Exponent too large")
    if isinstance(base, int) and isinstance(exponent, int) and base.bit_length() * exponent > MAX_INTEGER_BITS:
        raise UnsafeExpression("Result too large")
    return base**exponent


def _eval(node: ast.AST) -> Number:
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return _checked(node.value)
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left, right = _eval(node.left), _eval(node.right)
        try:
            if isinstance(node.op, ast.Pow):
                return _checked(_power(left, right))
            return _checked(_BINARY_OPERATORS[type(node.op)](left, right))
        except ZeroDivisionError as exc:
            raise UnsafeExpression("Division by zero") from exc
        except OverflowError as exc:
            raise UnsafeExpression("Result out of range") from exc
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_eval(node.operand))
    raise UnsafeExpression(f"Unsupported element: {type(node).__name__}")
