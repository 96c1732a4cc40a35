"""
Arithmetic expression AST

Nodes produced by the #expr parser and consumed by the evaluator.
Logical negation has no node of its own: `not x` parses to
Comparison("=", x, Number(0)).
"""

from dataclasses import dataclass
from typing import Union


class ExpressionError(ValueError):
    """Raised when an #expr expression cannot be tokenized, parsed or evaluated"""
    pass


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class BinaryOp:
    """Arithmetic operator: + - * / mod ^"""
    op: str
    lhs: "Expr"
    rhs: "Expr"


@dataclass(frozen=True)
class UnaryMinus:
    expr: "Expr"


@dataclass(frozen=True)
class Comparison:
    """Comparison operator yielding 1 or 0: = != > < >= <="""
    op: str
    lhs: "Expr"
    rhs: "Expr"


@dataclass(frozen=True)
class Logical:
    """Logical operator yielding 1 or 0: and, or"""
    op: str
    lhs: "Expr"
    rhs: "Expr"


Expr = Union[Number, BinaryOp, UnaryMinus, Comparison, Logical]
