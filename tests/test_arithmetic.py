"""
Arithmetic evaluator tests

Tests tokenizing, precedence, error handling and number rendering for
#expr expressions.
"""

import pytest

from wikidistill.lib.arithmetic import (
    ArithmeticEvaluator,
    MAX_EXPRESSION_DEPTH,
    expression_tokenize,
    number_format,
)
from wikidistill.models.expressions import BinaryOp, ExpressionError, Number, UnaryMinus


class TestPrecedence:
    """Test operator precedence and associativity"""

    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("(2+3)*4", "20"),
            ("2+3*4", "14"),
            ("2^3^2", "512"),
            ("-2^2", "-4"),
            ("2^-1", "0.5"),
            ("10 - 4 - 3", "3"),
            ("7 mod 3", "1"),
            ("-7 mod 3", "-1"),
            ("7.9 mod 3", "1"),
            ("1 + 2 = 3", "1"),
            ("3 <> 3", "0"),
            ("2 > 1 and 1 > 2", "0"),
            ("2 > 1 or 1 > 2", "1"),
            ("not 0", "1"),
            ("−5 + 2", "-3"),
        ],
    )
    def test_render(self, expression, expected):
        assert ArithmeticEvaluator().render(expression) == expected

    def test_parse_tree(self):
        """Unary minus binds looser than ^"""
        tree = ArithmeticEvaluator().parse("-2^2")
        assert tree == UnaryMinus(BinaryOp("^", Number(2.0), Number(2.0)))


class TestRendering:
    """Test result formatting"""

    def test_division_precision(self):
        assert ArithmeticEvaluator().render("10/3") == "3.3333"

    def test_trailing_zeros_stripped(self):
        assert ArithmeticEvaluator().render("1/4") == "0.25"

    def test_constants(self):
        assert ArithmeticEvaluator().render("pi") == "3.1416"

    def test_custom_precision(self):
        assert ArithmeticEvaluator(precision=2).render("10/3") == "3.33"

    def test_integral_float(self):
        assert number_format(8.0) == "8"

    def test_negative_zero(self):
        assert number_format(-0.00001, 4) == "0"


class TestMalformed:
    """Test that malformed expressions render empty"""

    @pytest.mark.parametrize(
        "expression",
        ["1/0", "5 mod 0", "(1+2", "1+", "", "foo", "2 3", "(-8)^0.5", "10^400"],
    )
    def test_render_empty(self, expression):
        assert ArithmeticEvaluator().render(expression) == ""

    def test_calculate_raises(self):
        with pytest.raises(ExpressionError):
            ArithmeticEvaluator().calculate("1/0")

    def test_tokenize_rejects_unknown_characters(self):
        with pytest.raises(ExpressionError):
            expression_tokenize("1 $ 2")

    def test_tokenize_words(self):
        assert expression_tokenize("1 MOD 2") == [("number", "1"), ("word", "mod"), ("number", "2")]


class TestLargeInput:
    """Test long and deeply nested expressions"""

    def test_long_chain_evaluates(self):
        assert ArithmeticEvaluator().render("1+" * 2000 + "1") == "2001"

    def test_long_product_chain(self):
        assert ArithmeticEvaluator().render("*".join(["1"] * 3000)) == "1"

    def test_nesting_within_limit(self):
        depth = MAX_EXPRESSION_DEPTH // 2
        assert ArithmeticEvaluator().render("(" * depth + "7" + ")" * depth) == "7"

    @pytest.mark.parametrize(
        "expression",
        [
            "(" * 2000 + "1" + ")" * 2000,
            "-" * 2000 + "1",
            "not " * 2000 + "1",
            "2^" * 2000 + "1",
            "1" * 5000,
        ],
    )
    def test_render_empty(self, expression):
        assert ArithmeticEvaluator().render(expression) == ""

    def test_parse_raises_on_deep_nesting(self):
        with pytest.raises(ExpressionError):
            ArithmeticEvaluator().parse("(" * 2000 + "1" + ")" * 2000)
