"""
Parser functions: {{#if:}}, {{#switch:}}, {{#expr:}}, {{#titleparts:}}, ...

ExpressionEvaluator rewrites every {{#name:args}} form in a text. The
NestedScanner hands it spans innermost-first, so by the time a function
runs its arguments are already fully evaluated; forms that are not parser
functions are returned verbatim and left for the template expander.

Function names are case-insensitive. Unknown functions evaluate to ''.
Arguments and branch values are trimmed, following MediaWiki.

Example:
    >>> evaluator = ExpressionEvaluator(reference_date=datetime(2024, 6, 15))
    >>> evaluator.evaluate("{{#if:{{#expr:1+1}}|yes|no}}")
    'yes'
"""

import re
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import quote, unquote_plus

from ..models.expressions import ExpressionError
from .arithmetic import ArithmeticEvaluator
from .dates import date_parse, digits_int, time_format
from .log import LOG
from .magicwords import MAX_PAD_LENGTH
from .scanner import NestedScanner, ScanOutcome, arguments_split, equals_split

ERROR_MARKERS: tuple[str, ...] = ('class="error"', "class='error'", "Expression error")

NUMERIC_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def values_equal(left: str, right: str) -> bool:
    """
    Compare two trimmed values as #ifeq and #switch do.

    Numeric strings compare by value ('01' equals '1'); everything else
    compares as case-sensitive text.
    """
    left = left.strip()
    right = right.strip()
    if NUMERIC_PATTERN.fullmatch(left) and NUMERIC_PATTERN.fullmatch(right):
        return float(left) == float(right)
    return left == right


def integer_lenient(text: str, default: int = 0) -> int:
    """Leading integer of an argument, default when there is none"""
    match = re.match(r"\s*([+-]?\d+)", text or "")
    return digits_int(match.group(1)) if match else default


class ExpressionEvaluator:
    """
    Evaluator for MediaWiki parser functions.

    Holds no per-call state; the reference date drives #time and the
    scanner bounds every rescan.
    """

    def __init__(
        self,
        reference_date: Optional[datetime] = None,
        scanner: Optional[NestedScanner] = None,
        arithmetic: Optional[ArithmeticEvaluator] = None,
    ) -> None:
        """
        Args:
            reference_date: Moment used by #time without a date argument
            scanner: Nested scanner (a default one is built if omitted)
            arithmetic: #expr evaluator (default precision from settings)
        """
        self.reference_date = reference_date or datetime.now()
        self.scanner = scanner or NestedScanner()
        self.arithmetic = arithmetic or ArithmeticEvaluator()
        self.functions: Dict[str, Callable[[List[str]], str]] = {
            "if": self.if_evaluate,
            "ifeq": self.ifeq_evaluate,
            "iferror": self.iferror_evaluate,
            "ifexpr": self.ifexpr_evaluate,
            "switch": self.switch_evaluate,
            "expr": self.expr_evaluate,
            "len": self.len_evaluate,
            "pos": self.pos_evaluate,
            "rpos": self.rpos_evaluate,
            "sub": self.sub_evaluate,
            "replace": self.replace_evaluate,
            "titleparts": self.titleparts_evaluate,
            "count": self.count_evaluate,
            "explode": self.explode_evaluate,
            "urlencode": self.urlencode_evaluate,
            "urldecode": self.urldecode_evaluate,
            "padleft": self.padleft_evaluate,
            "padright": self.padright_evaluate,
            "time": self.time_evaluate,
            "timel": self.time_evaluate,
        }

    def evaluate(self, text: str) -> str:
        """
        Rewrite every {{#name:args}} form in text.

        Rescans until nothing changes, bounded by the nesting cap.
        """
        return self.evaluate_withOutcome(text).text

    def evaluate_withOutcome(self, text: str) -> ScanOutcome:
        result = text
        spans = 0
        for _ in range(self.scanner.max_iterations):
            if "{{" not in result or "#" not in result:
                return ScanOutcome(result, spans, False)
            outcome = self.scanner.scan_withOutcome(result, "{{", "}}", self.form_dispatch)
            spans += outcome.spans
            if outcome.exhausted:
                return ScanOutcome(outcome.text, spans, True)
            if outcome.text == result:
                return ScanOutcome(result, spans, False)
            result = outcome.text
        LOG("Parser-function rescan cap reached; returning partial text", level=1)
        return ScanOutcome(result, spans, True)

    def form_dispatch(self, content: str) -> str:
        """Evaluate a span if it is a parser function, else keep it verbatim"""
        if content.lstrip().startswith("#"):
            return self.function_call(content)
        return "{{" + content + "}}"

    def function_call(self, content: str) -> str:
        """
        Evaluate one parser-function body.

        Args:
            content: Span content such as '#if:x|yes|no'

        Returns:
            Function result, '' for unknown functions
        """
        body = content.strip()[1:]
        name, separator, arguments = body.partition(":")
        handler = self.functions.get(name.strip().lower())
        if handler is None:
            LOG(f"Unknown parser function #{name.strip()}", level=3)
            return ""
        args = arguments_split(arguments) if separator else []
        return handler(args)

    @staticmethod
    def arg_get(args: List[str], index: int, default: str = "") -> str:
        return args[index].strip() if index < len(args) else default

    # Control functions

    def if_evaluate(self, args: List[str]) -> str:
        """{{#if: test | then | else}} - non-empty trimmed test selects then"""
        if self.arg_get(args, 0):
            return self.arg_get(args, 1)
        return self.arg_get(args, 2)

    def ifeq_evaluate(self, args: List[str]) -> str:
        """{{#ifeq: a | b | then | else}}"""
        if values_equal(self.arg_get(args, 0), self.arg_get(args, 1)):
            return self.arg_get(args, 2)
        return self.arg_get(args, 3)

    def iferror_evaluate(self, args: List[str]) -> str:
        """
        {{#iferror: test | error | correct}}

        Without a 'correct' value the test itself is returned when it holds
        no error marker.
        """
        test = self.arg_get(args, 0)
        if any(marker in test for marker in ERROR_MARKERS):
            return self.arg_get(args, 1)
        if len(args) >= 3:
            return self.arg_get(args, 2)
        return test

    def ifexpr_evaluate(self, args: List[str]) -> str:
        """{{#ifexpr: expr | then | else}} - malformed expressions take else"""
        try:
            truth = self.arithmetic.calculate(self.arg_get(args, 0)) != 0
        except ExpressionError:
            truth = False
        return self.arg_get(args, 1) if truth else self.arg_get(args, 2)

    def switch_evaluate(self, args: List[str]) -> str:
        """
        {{#switch: value | case1 = r1 | case2 | case3 = r3 | #default = d | fallback}}

        Cases are tried in order. An unvalued case that matches falls
        through to the next valued case. A trailing unvalued case is the
        implicit default; otherwise #default applies, else ''.
        """
        value = self.arg_get(args, 0)
        cases = args[1:]
        default = ""
        falling = False

        for position, case in enumerate(cases):
            label, result = equals_split(case)
            if result is None:
                if position == len(cases) - 1:
                    return label.strip()
                if values_equal(label, value):
                    falling = True
                continue
            label = label.strip()
            if falling or values_equal(label, value):
                return result.strip()
            if label == "#default":
                default = result.strip()

        return default

    # Arithmetic

    def expr_evaluate(self, args: List[str]) -> str:
        return self.arithmetic.render(self.arg_get(args, 0))

    # String functions

    def len_evaluate(self, args: List[str]) -> str:
        return str(len(self.arg_get(args, 0)))

    def pos_evaluate(self, args: List[str]) -> str:
        """{{#pos: string | search | offset}} - index or '' when absent"""
        haystack = self.arg_get(args, 0)
        needle = self.arg_get(args, 1) or " "
        offset = max(integer_lenient(self.arg_get(args, 2)), 0)
        index = haystack.find(needle, offset)
        return "" if index < 0 else str(index)

    def rpos_evaluate(self, args: List[str]) -> str:
        """{{#rpos: string | search}} - last index or '-1' when absent"""
        haystack = self.arg_get(args, 0)
        needle = self.arg_get(args, 1) or " "
        return str(haystack.rfind(needle))

    def sub_evaluate(self, args: List[str]) -> str:
        """
        {{#sub: string | start | length}}

        Negative start counts from the end; negative length omits that many
        characters from the end; missing or zero length takes the rest.
        """
        text = self.arg_get(args, 0)
        start = integer_lenient(self.arg_get(args, 1))
        length = integer_lenient(self.arg_get(args, 2))
        if start < 0:
            start = max(len(text) + start, 0)
        tail = text[start:]
        return tail[:length] if length else tail

    def replace_evaluate(self, args: List[str]) -> str:
        text = self.arg_get(args, 0)
        search = self.arg_get(args, 1) or " "
        return text.replace(search, self.arg_get(args, 2))

    def titleparts_evaluate(self, args: List[str]) -> str:
        """
        {{#titleparts: title | count | first}}

        Splits on '/'. count > 0 keeps that many segments, count < 0 drops
        that many from the end, 0 keeps all. first is the 1-based segment to
        start from; negative values count from the end.

        Example:
            {{#titleparts:Talk:Foo/Bar/Baz|2}} -> 'Talk:Foo/Bar'
            {{#titleparts:A/B/C|1|2}}          -> 'B'
        """
        segments = self.arg_get(args, 0).split("/")
        count = integer_lenient(self.arg_get(args, 1))
        first = integer_lenient(self.arg_get(args, 2), 1)

        if first > 0:
            segments = segments[first - 1 :]
        elif first < 0:
            segments = segments[first:]

        if count > 0:
            segments = segments[:count]
        elif count < 0:
            segments = segments[:count]
        return "/".join(segments)

    def count_evaluate(self, args: List[str]) -> str:
        """Occurrences of the search string, overlapping ones included"""
        text = self.arg_get(args, 0)
        needle = self.arg_get(args, 1)
        if not needle:
            return "0"
        occurrences = 0
        index = text.find(needle)
        while index >= 0:
            occurrences += 1
            index = text.find(needle, index + 1)
        return str(occurrences)

    def explode_evaluate(self, args: List[str]) -> str:
        """{{#explode: string | delimiter | index | limit}}"""
        text = self.arg_get(args, 0)
        delimiter = self.arg_get(args, 1) or " "
        index = integer_lenient(self.arg_get(args, 2))
        limit = integer_lenient(self.arg_get(args, 3))
        pieces = text.split(delimiter, limit - 1) if limit > 0 else text.split(delimiter)
        if -len(pieces) <= index < len(pieces):
            return pieces[index]
        return ""

    def urlencode_evaluate(self, args: List[str]) -> str:
        return quote(self.arg_get(args, 0), safe="-_.~")

    def urldecode_evaluate(self, args: List[str]) -> str:
        return unquote_plus(self.arg_get(args, 0))

    def padleft_evaluate(self, args: List[str]) -> str:
        return self.pad_apply(args, left=True)

    def padright_evaluate(self, args: List[str]) -> str:
        return self.pad_apply(args, left=False)

    def pad_apply(self, args: List[str], left: bool) -> str:
        """
        Pad to width with a repeated pad string (default space), never
        truncating. Widths beyond MAX_PAD_LENGTH are clamped to it.
        """
        text = self.arg_get(args, 0)
        width = min(integer_lenient(self.arg_get(args, 1)), MAX_PAD_LENGTH)
        pad = args[2] if len(args) > 2 and args[2] != "" else " "
        missing = width - len(text)
        if missing <= 0:
            return text
        padding = (pad * (missing // len(pad) + 1))[:missing]
        return padding + text if left else text + padding

    # Time

    def time_evaluate(self, args: List[str]) -> str:
        """
        {{#time: format | date}}

        Without a date the reference date is used; an unparsable date
        yields ''.
        """
        format_string = self.arg_get(args, 0)
        date_text = self.arg_get(args, 1)
        if date_text and date_text.lower() not in ("now", "today"):
            moment = date_parse(date_text)
            if moment is None:
                return ""
        else:
            moment = self.reference_date
        return time_format(moment, format_string)

