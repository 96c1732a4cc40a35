"""
Nested scanner tests

Tests innermost-first resolution, unbalanced input, the transform cap and
the argument helpers built on top of the scanner.
"""

import pytest

from wikidistill.lib.scanner import (
    DELIMITER_PATTERNS,
    NestedScanner,
    PatternCache,
    arguments_split,
    delimiters_compile,
    equals_split,
    invocation_parse,
    templateName_normalize,
)


class TestInnermostFirst:
    """Test resolution order and splicing"""

    def test_identity_transform_round_trips(self):
        """Re-wrapping every span returns the original text"""
        scanner = NestedScanner()
        text = "{{a|{{b|{{c}}}}}}"
        assert scanner.scan(text, "{{", "}}", lambda c: "{{" + c + "}}") == text

    def test_call_order(self):
        """Innermost span is transformed first, outer spans see the results"""
        calls = []

        def record(content):
            calls.append(content)
            return "<" + content + ">"

        result = NestedScanner().scan("{{a|{{b|{{c}}}}}}", "{{", "}}", record)

        assert calls == ["c", "b|<c>", "a|<b|<c>>"]
        assert result == "<a|<b|<c>>>"

    def test_spliced_text_not_rescanned(self):
        """Delimiters produced by a transform are not read again"""
        result = NestedScanner().scan("{{x}} {{y}}", "{{", "}}", lambda c: "{{" + c.upper())
        assert result == "{{X {{Y"

    def test_empty_span(self):
        """An empty span passes the empty string"""
        calls = []
        NestedScanner().scan("a{{}}b", "{{", "}}", lambda c: calls.append(c) or "")
        assert calls == [""]

    def test_siblings_in_order(self):
        """Sibling spans resolve left to right"""
        result = NestedScanner().scan("[[a]] and [[b]]", "[[", "]]", str.upper)
        assert result == "A and B"


class TestUnbalanced:
    """Test unterminated opens and stray closes"""

    def test_unterminated_open_left_untouched(self):
        result = NestedScanner().scan("{{a|{{b}}", "{{", "}}", lambda c: "<" + c + ">")
        assert result == "{{a|<b>"

    def test_stray_close_left_untouched(self):
        result = NestedScanner().scan("a}}b{{c}}", "{{", "}}", lambda c: c)
        assert result == "a}}bc"

    def test_balance_counts(self):
        scanner = NestedScanner()
        assert scanner.balance("{{a|{{b}}", "{{", "}}") == (1, 0)
        assert scanner.balance("}}{{", "{{", "}}") == (1, 1)
        assert scanner.balance("{{a}}", "{{", "}}") == (0, 0)

    def test_spans_find_outermost(self):
        text = "{{a|{{b}}}} {{c}}"
        assert NestedScanner().spans_find(text, "{{", "}}") == [(0, 11), (12, 17)]


class TestTransformCap:
    """Test fail-soft behaviour at the nesting cap"""

    def test_cap_returns_partial_text(self):
        scanner = NestedScanner(max_iterations=2)
        outcome = scanner.scan_withOutcome("{{a}}{{b}}{{c}}", "{{", "}}", str.upper)

        assert outcome.exhausted is True
        assert outcome.spans == 2
        assert outcome.text == "AB{{c}}"

    def test_under_cap_not_exhausted(self):
        outcome = NestedScanner(max_iterations=10).scan_withOutcome("{{a}}", "{{", "}}", str.upper)
        assert outcome.exhausted is False
        assert outcome.spans == 1


class TestDelimiters:
    """Test delimiter compilation and the pattern cache"""

    def test_tag_boundary(self):
        """'<ref' does not match the start of '<references'"""
        result = NestedScanner().scan("<ref>x</ref><references/>", "<ref", "</ref>", lambda c: "")
        assert result == "<references/>"

    def test_empty_delimiter_raises(self):
        with pytest.raises(ValueError):
            delimiters_compile("", "}}")

    def test_identical_delimiters_raise(self):
        with pytest.raises(ValueError):
            delimiters_compile("||", "||")

    def test_common_pairs_precompiled(self):
        assert ("{{", "}}") in DELIMITER_PATTERNS
        assert ("[[", "]]") in DELIMITER_PATTERNS

    def test_cache_returns_same_pattern(self):
        cache = PatternCache()
        first = cache.pattern_get("<math", "</math>")
        assert cache.pattern_get("<math", "</math>") is first
        assert len(cache) == 1


class TestArguments:
    """Test argument splitting and invocation parsing"""

    def test_split_respects_nesting(self):
        assert arguments_split("a|[[b|c]]|{{d|e}}") == ["a", "[[b|c]]", "{{d|e}}"]

    def test_split_keeps_empty_arguments(self):
        assert arguments_split("a||b") == ["a", "", "b"]

    def test_equals_split(self):
        assert equals_split("key = v=x") == ("key ", " v=x")
        assert equals_split("plain") == ("plain", None)
        assert equals_split("{{a|b=c}}") == ("{{a|b=c}}", None)

    def test_name_normalize(self):
        assert templateName_normalize("  Template:Birth_date  and age ") == "birth date and age"
        assert templateName_normalize("Convert") == "convert"

    def test_invocation_parse(self):
        invocation = invocation_parse("lang|fr|Bonjour|Lit = hello ")
        assert invocation.name == "lang"
        assert invocation.positional_args == ["fr", "Bonjour"]
        assert invocation.named_args == {"lit": "hello"}

    def test_numbered_arguments_fill_slots(self):
        invocation = invocation_parse("x|2=b")
        assert invocation.positional_args == ["", "b"]
        assert invocation.positional(0, "default") == "default"
        assert invocation.positional(1) == "b"

    @pytest.mark.parametrize("key", ["1000", "1000000000", "0", "1" * 5000])
    def test_wide_numbers_stay_named(self, key):
        invocation = invocation_parse(f"x|a|{key}=b")
        assert invocation.positional_args == ["a"]
        assert invocation.named_args == {key: "b"}

    def test_leading_zeros_fill_slot(self):
        assert invocation_parse("x|02=b").positional_args == ["", "b"]
