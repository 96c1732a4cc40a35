"""
Arithmetic for {{#expr:}} and {{#ifexpr:}}

Expressions go through three steps:
1. Tokenizing: numbers, operators, parentheses and word operators
2. Parsing: recursive descent into the AST in models.expressions
3. Evaluating: walk the AST with float arithmetic

Precedence, loosest to tightest:
    or < and < comparisons (= != <> < > <= >=) < + - < * / mod < unary - < ^

`^` is right-associative and its exponent may carry a sign (2^-1).
Anything malformed, a division by zero, or a complex or non-finite result
raises ExpressionError, which callers turn into an empty result.

Example:
    >>> ArithmeticEvaluator().render("(2+3)*4")
    '20'
    >>> ArithmeticEvaluator().render("10/3")
    '3.3333'
"""

import math
import re
from typing import List, Optional, Tuple

from ..config import appsettings
from ..models.expressions import (
    BinaryOp,
    Comparison,
    Expr,
    ExpressionError,
    Logical,
    Number,
    UnaryMinus,
)


TOKEN_PATTERN = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<op><>|!=|<=|>=|[-+*/^()=<>])"
    r"|(?P<word>[a-zA-Z]+)"
    r")"
)

WORD_OPERATORS = {"mod", "and", "or", "not"}
CONSTANTS = {"pi": math.pi, "e": math.e}
COMPARISONS = {"=", "!=", "<>", "<", ">", "<=", ">="}

# Deepest run of parentheses, signs and exponents the parser descends into
MAX_EXPRESSION_DEPTH = 64

Token = Tuple[str, str]


def expression_tokenize(text: str) -> List[Token]:
    """
    Split an expression into (kind, value) tokens.

    Kinds are 'number', 'op' and 'word'. Unicode minus signs are read as '-'.

    Raises:
        ExpressionError: On characters that belong to no token
    """
    source = text.replace("−", "-").strip()
    tokens: List[Token] = []
    position = 0
    while position < len(source):
        match = TOKEN_PATTERN.match(source, position)
        if match is None or match.end() == position:
            raise ExpressionError(f"Unrecognized input at {source[position:]!r}")
        if match.group("number") is not None:
            tokens.append(("number", match.group("number")))
        elif match.group("op") is not None:
            tokens.append(("op", match.group("op")))
        else:
            word = match.group("word").lower()
            if word not in WORD_OPERATORS and word not in CONSTANTS:
                raise ExpressionError(f"Unrecognized word {word!r}")
            tokens.append(("word", word))
        position = match.end()
        # Trailing whitespace only
        if not source[position:].strip():
            break
    return tokens


class ExpressionParser:
    """
    Recursive-descent parser producing the expression AST.

    One instance parses one token list.
    """

    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.position = 0
        self.depth = 0

    def parse(self) -> Expr:
        """
        Parse the whole token list.

        Raises:
            ExpressionError: On empty input, dangling operators or leftovers
        """
        if not self.tokens:
            raise ExpressionError("Empty expression")
        tree = self.or_parse()
        if self.position != len(self.tokens):
            raise ExpressionError(f"Unexpected token {self.tokens[self.position][1]!r}")
        return tree

    def token_peek(self) -> Optional[Token]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def token_accept(self, *values: str) -> Optional[str]:
        token = self.token_peek()
        if token is not None and token[0] in ("op", "word") and token[1] in values:
            self.position += 1
            return token[1]
        return None

    def or_parse(self) -> Expr:
        node = self.and_parse()
        while self.token_accept("or"):
            node = Logical("or", node, self.and_parse())
        return node

    def and_parse(self) -> Expr:
        node = self.comparison_parse()
        while self.token_accept("and"):
            node = Logical("and", node, self.comparison_parse())
        return node

    def comparison_parse(self) -> Expr:
        node = self.additive_parse()
        while True:
            op = self.token_accept(*COMPARISONS)
            if op is None:
                return node
            node = Comparison("!=" if op == "<>" else op, node, self.additive_parse())

    def additive_parse(self) -> Expr:
        node = self.term_parse()
        while True:
            op = self.token_accept("+", "-")
            if op is None:
                return node
            node = BinaryOp(op, node, self.term_parse())

    def term_parse(self) -> Expr:
        node = self.unary_parse()
        while True:
            op = self.token_accept("*", "/", "mod")
            if op is None:
                return node
            node = BinaryOp(op, node, self.unary_parse())

    def unary_parse(self) -> Expr:
        self.depth += 1
        if self.depth > MAX_EXPRESSION_DEPTH:
            raise ExpressionError("Expression nested too deeply")
        try:
            if self.token_accept("-"):
                return UnaryMinus(self.unary_parse())
            if self.token_accept("+"):
                return self.unary_parse()
            if self.token_accept("not"):
                return Comparison("=", self.unary_parse(), Number(0.0))
            return self.power_parse()
        finally:
            self.depth -= 1

    def power_parse(self) -> Expr:
        base = self.primary_parse()
        if self.token_accept("^"):
            return BinaryOp("^", base, self.unary_parse())
        return base

    def primary_parse(self) -> Expr:
        token = self.token_peek()
        if token is None:
            raise ExpressionError("Unexpected end of expression")
        kind, value = token
        if kind == "number":
            self.position += 1
            return Number(float(value))
        if kind == "word" and value in CONSTANTS:
            self.position += 1
            return Number(CONSTANTS[value])
        if self.token_accept("("):
            node = self.or_parse()
            if not self.token_accept(")"):
                raise ExpressionError("Missing closing parenthesis")
            return node
        raise ExpressionError(f"Unexpected token {value!r}")


def operation_apply(node: Expr, lhs: float, rhs: float) -> float:
    """
    Apply one binary, comparison or logical node to evaluated operands.

    Raises:
        ExpressionError: Division by zero, complex or non-finite results
    """
    if isinstance(node, Logical):
        truth = (lhs != 0 and rhs != 0) if node.op == "and" else (lhs != 0 or rhs != 0)
        return 1.0 if truth else 0.0

    if isinstance(node, Comparison):
        outcomes = {
            "=": lhs == rhs,
            "!=": lhs != rhs,
            "<": lhs < rhs,
            ">": lhs > rhs,
            "<=": lhs <= rhs,
            ">=": lhs >= rhs,
        }
        return 1.0 if outcomes[node.op] else 0.0

    try:
        if node.op == "+":
            value = lhs + rhs
        elif node.op == "-":
            value = lhs - rhs
        elif node.op == "*":
            value = lhs * rhs
        elif node.op == "/":
            value = lhs / rhs
        elif node.op == "mod":
            # Operands truncate to integers; the result takes the dividend's sign
            value = math.fmod(int(lhs), int(rhs))
        else:
            value = lhs ** rhs
    except (ArithmeticError, ValueError) as e:
        raise ExpressionError(f"Cannot evaluate {node.op}: {e}") from None

    if isinstance(value, complex) or not math.isfinite(value):
        raise ExpressionError(f"Result of {node.op} is not a real number")
    return float(value)


def expression_evaluate(node: Expr) -> float:
    """
    Evaluate an AST to a float.

    The walk keeps its own stack, so long left-leaning chains such as
    ``1+1+...+1`` evaluate regardless of their length.

    Raises:
        ExpressionError: Division by zero, complex or non-finite results
    """
    pending: List[Tuple[Expr, bool]] = [(node, False)]
    values: List[float] = []
    while pending:
        current, expanded = pending.pop()
        if isinstance(current, Number):
            values.append(current.value)
        elif isinstance(current, UnaryMinus):
            if expanded:
                values.append(-values.pop())
            else:
                pending.append((current, True))
                pending.append((current.expr, False))
        elif expanded:
            rhs = values.pop()
            lhs = values.pop()
            values.append(operation_apply(current, lhs, rhs))
        else:
            pending.append((current, True))
            pending.append((current.rhs, False))
            pending.append((current.lhs, False))
    return values.pop()


def number_format(value: float, precision: Optional[int] = None) -> str:
    """
    Render an expression result.

    Integral values print without decimals; others are rounded to
    `precision` places (settings default) with trailing zeros stripped.

    Example:
        >>> number_format(8.0)
        '8'
        >>> number_format(10 / 3)
        '3.3333'
    """
    places = appsettings.expr_precision if precision is None else precision
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    rendered = f"{value:.{places}f}"
    if "." in rendered:
        rendered = rendered.rstrip("0").rstrip(".")
    if rendered in ("-0", ""):
        rendered = "0"
    return rendered


class ArithmeticEvaluator:
    """Tokenize, parse and evaluate #expr expressions"""

    def __init__(self, precision: Optional[int] = None) -> None:
        self.precision = appsettings.expr_precision if precision is None else precision

    def parse(self, text: str) -> Expr:
        return ExpressionParser(expression_tokenize(text)).parse()

    def calculate(self, text: str) -> float:
        """
        Evaluate an expression to a float.

        Raises:
            ExpressionError: If the expression is malformed
        """
        value = expression_evaluate(self.parse(text))
        if not math.isfinite(value):
            raise ExpressionError("Result is not a finite number")
        return value

    def render(self, text: str) -> str:
        """Evaluate and format an expression; malformed input renders as ''"""
        try:
            return number_format(self.calculate(text), self.precision)
        except ExpressionError:
            return ""
