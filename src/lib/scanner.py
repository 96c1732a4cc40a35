"""
Nested-structure scanner for wikitext

Wikitext nests freely: templates inside template arguments, links inside
image captions, tables inside tables. Everything that rewrites such
constructs goes through NestedScanner, which resolves spans strictly
innermost-first and never re-reads text it has already spliced in.

The scanner operates in one left-to-right pass:
1. Locate the next open or close delimiter (one compiled alternation)
2. Opens push their position on a stack; a close pops the most recent open
3. The content between the pair is handed to a transform and the result
   spliced in place; scanning resumes right after the spliced text

Key features:
- Innermost-first resolution ({{a|{{b|{{c}}}}}} resolves c, then b, then a)
- Unterminated opens and stray closes are left untouched
- Bounded by max_nesting_iterations transforms (fail-soft: partial text)
- Compiled delimiter matchers shared through a thread-safe PatternCache

Example:
    >>> scanner = NestedScanner()
    >>> scanner.scan("{{a|{{b}}}}", "{{", "}}", lambda c: "<" + c + ">")
    '<a|<b>>'
"""

import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..config import appsettings
from ..models.templates import TemplateInvocation
from .log import LOG


def delimiters_compile(open: str, close: str) -> re.Pattern:
    """
    Compile the matcher for one delimiter pair.

    Open delimiters ending in a word character (tag openers such as '<ref')
    only match at a tag-name boundary, so '<ref' never matches '<references'.

    Args:
        open: Opening delimiter
        close: Closing delimiter

    Returns:
        Pattern with named groups 'open' and 'close'

    Raises:
        ValueError: For empty or identical delimiters
    """
    if not open or not close:
        raise ValueError("Delimiters must be non-empty")
    if open == close:
        raise ValueError(f"Open and close delimiters must differ: {open!r}")

    boundary = r"(?![\w-])" if open[-1].isalnum() else ""
    return re.compile(
        f"(?P<open>{re.escape(open)}{boundary})|(?P<close>{re.escape(close)})"
    )


class PatternCache:
    """
    Compiled delimiter matchers keyed by (open, close).

    Lookups are lock-free; inserts take the lock and keep whichever pattern
    landed first, so concurrent callers always agree on one compiled object.
    """

    def __init__(self) -> None:
        self._patterns: Dict[Tuple[str, str], re.Pattern] = {}
        self._lock = threading.Lock()

    def pattern_get(self, open: str, close: str) -> re.Pattern:
        key = (open, close)
        pattern = self._patterns.get(key)
        if pattern is None:
            compiled = delimiters_compile(open, close)
            with self._lock:
                pattern = self._patterns.setdefault(key, compiled)
        return pattern

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)


# Delimiter pairs used on every document, compiled at import
COMMON_DELIMITERS: tuple[Tuple[str, str], ...] = (
    ("{{", "}}"),
    ("[[", "]]"),
    ("{|", "|}"),
    ("<table", "</table>"),
)

DELIMITER_PATTERNS = PatternCache()
for _open, _close in COMMON_DELIMITERS:
    DELIMITER_PATTERNS.pattern_get(_open, _close)

# Explicit slots such as {{x|3=c}}; wider numbers are kept as named arguments
NUMBERED_KEY_PATTERN = re.compile(r"0*[1-9][0-9]{0,2}")


@dataclass
class ScanOutcome:
    """
    Result of a bounded scan.

    Attributes:
        text: Transformed text (partial if exhausted)
        spans: Number of spans handed to the transform
        exhausted: True if the transform cap stopped the scan early
    """
    text: str
    spans: int = 0
    exhausted: bool = False


class NestedScanner:
    """
    Innermost-first resolver for delimited, nestable spans.

    Stateless apart from its configuration; a single instance may serve
    any number of documents.
    """

    def __init__(
        self,
        max_iterations: Optional[int] = None,
        patterns: Optional[PatternCache] = None,
    ) -> None:
        """
        Args:
            max_iterations: Transform cap per scan (defaults to settings)
            patterns: Delimiter cache (defaults to the shared module cache)
        """
        self.max_iterations = (
            max_iterations if max_iterations is not None else appsettings.max_nesting_iterations
        )
        self.patterns = patterns if patterns is not None else DELIMITER_PATTERNS

    def scan(self, text: str, open: str, close: str, transform: Callable[[str], str]) -> str:
        """
        Resolve every balanced open/close span innermost-first.

        Args:
            text: Input text
            open: Opening delimiter (e.g. "{{")
            close: Closing delimiter (e.g. "}}")
            transform: Called with the content between each pair; its return
                       value replaces the whole span including delimiters

        Returns:
            Transformed text
        """
        return self.scan_withOutcome(text, open, close, transform).text

    def scan_withOutcome(
        self, text: str, open: str, close: str, transform: Callable[[str], str]
    ) -> ScanOutcome:
        """
        Same as scan(), also reporting span count and cap exhaustion.

        Raises:
            ValueError: For empty or identical delimiters
        """
        pattern = self.patterns.pattern_get(open, close)
        if open not in text:
            return ScanOutcome(text)

        result = text
        stack: List[int] = []
        position = 0
        spans = 0

        while True:
            match = pattern.search(result, position)
            if match is None:
                break

            if match.group("open") is not None:
                stack.append(match.start())
                position = match.end()
                continue

            if not stack:
                # Stray close: nothing to pair with
                position = match.end()
                continue

            if spans >= self.max_iterations:
                LOG(
                    f"Nesting cap of {self.max_iterations} reached scanning {open}...{close}; "
                    "returning partial text",
                    level=1,
                )
                return ScanOutcome(result, spans, True)

            start = stack.pop()
            content = result[start + len(open) : match.start()]
            replacement = transform(content)
            result = result[:start] + replacement + result[match.end():]
            position = start + len(replacement)
            spans += 1

        return ScanOutcome(result, spans, False)

    def balance(self, text: str, open: str, close: str) -> Tuple[int, int]:
        """
        Count unmatched delimiters without transforming anything.

        Returns:
            (unclosed opens, stray closes)

        Example:
            >>> NestedScanner().balance("{{a|{{b}}", "{{", "}}")
            (1, 0)
        """
        pattern = self.patterns.pattern_get(open, close)
        depth = 0
        stray = 0
        for match in pattern.finditer(text):
            if match.group("open") is not None:
                depth += 1
            elif depth:
                depth -= 1
            else:
                stray += 1
        return depth, stray

    def spans_find(self, text: str, open: str, close: str) -> List[Tuple[int, int]]:
        """
        Outermost balanced spans as (start, end) offsets, in text order.

        Used to tell whether a line consists only of templates.
        """
        pattern = self.patterns.pattern_get(open, close)
        spans: List[Tuple[int, int]] = []
        stack: List[int] = []
        for match in pattern.finditer(text):
            if match.group("open") is not None:
                stack.append(match.start())
            elif stack:
                start = stack.pop()
                if not stack:
                    spans.append((start, match.end()))
        return spans


def arguments_split(content: str, separator: str = "|") -> List[str]:
    """
    Split template or function arguments on separators at depth zero.

    Separators inside nested {{...}} or [[...]] belong to the inner
    construct and are not split on.

    Example:
        >>> arguments_split("a|[[b|c]]|{{d|e}}")
        ['a', '[[b|c]]', '{{d|e}}']
    """
    parts: List[str] = []
    depth = 0
    start = 0
    index = 0
    length = len(content)

    while index < length:
        pair = content[index : index + 2]
        if pair in ("{{", "[["):
            depth += 1
            index += 2
            continue
        if pair in ("}}", "]]") and depth > 0:
            depth -= 1
            index += 2
            continue
        if depth == 0 and content.startswith(separator, index):
            parts.append(content[start:index])
            index += len(separator)
            start = index
            continue
        index += 1

    parts.append(content[start:])
    return parts


def equals_split(argument: str) -> Tuple[str, Optional[str]]:
    """
    Split 'key=value' on the first '=' outside nested constructs.

    Returns:
        (key, value), or (argument, None) when there is no top-level '='
    """
    parts = arguments_split(argument, "=")
    if len(parts) == 1:
        return argument, None
    return parts[0], argument[len(parts[0]) + 1 :]


def templateName_normalize(name: str) -> str:
    """
    Canonical lookup form of a template name.

    Lowercase, underscores as spaces, runs of whitespace collapsed, and any
    'Template:' prefix dropped.

    Example:
        >>> templateName_normalize("  Template:Birth_date  and age ")
        'birth date and age'
    """
    normalized = " ".join(name.replace("_", " ").split()).lower()
    if normalized.startswith("template:"):
        normalized = normalized[len("template:"):].strip()
    return normalized


def invocation_parse(content: str) -> TemplateInvocation:
    """
    Parse the content of a {{...}} span into a TemplateInvocation.

    Example:
        >>> inv = invocation_parse("lang|fr|Bonjour|lit=hello")
        >>> inv.name, inv.positional_args, inv.named_args
        ('lang', ['fr', 'Bonjour'], {'lit': 'hello'})
    """
    parts = arguments_split(content)
    invocation = TemplateInvocation(name=parts[0].strip())

    for part in parts[1:]:
        key, value = equals_split(part)
        if value is not None and key.strip():
            key = key.strip()
            if NUMBERED_KEY_PATTERN.fullmatch(key):
                slot = int(key) - 1
                while len(invocation.positional_args) <= slot:
                    invocation.positional_args.append("")
                invocation.positional_args[slot] = value.strip()
            else:
                invocation.named_args[key.lower()] = value.strip()
        else:
            invocation.positional_args.append(part.strip())

    return invocation
