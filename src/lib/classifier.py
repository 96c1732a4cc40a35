"""
Element classifier: page markup to typed elements

Walks a page line by line and assigns each line (or group of lines) one
ElementType. Multi-line constructs are tracked with an explicit mode and
nesting depth:

- wiki tables {| ... |} (nested tables counted)
- <table>, <blockquote>, <math>, <source>/<syntaxhighlight>, <inputbox>
  blocks running to their closing tag
- templates and links whose opening line leaves {{ or [[ unclosed

Unterminated constructs run to the end of the page. Every line is consumed
exactly once and the classifier never raises on page content.

Example:
    >>> page = ElementClassifier(LookupTables.load()).classify("== Title ==\\nParagraph text")
    >>> [(e.type.value, e.content, e.level) for e in page.elements]
    [('heading', 'Title', 2), ('paragraph', 'Paragraph text', None)]
"""

import re
from typing import List, Optional, Tuple

from ..models.elements import ClassifiedPage, Element, ElementType
from .log import LOG
from .scanner import NestedScanner
from .tables import LookupTables

HEADING_PATTERN = re.compile(r"^(={1,6})(.+?)\1\s*$")
ISOLATED_TAG_PATTERN = re.compile(r"^\s*<[^<>]+>.+<[^<>]+>\s*$")
LIST_MARKS_PATTERN = re.compile(r"^[*#:;]+\s*")

# Tags whose blocks become one element, checked in this order
BLOCK_TAGS: Tuple[Tuple[str, ElementType], ...] = (
    ("source", ElementType.SOURCE_BLOCK),
    ("syntaxhighlight", ElementType.SOURCE_BLOCK),
    ("math", ElementType.MATH_BLOCK),
    ("inputbox", ElementType.INPUTBOX),
    ("table", ElementType.HTML_TABLE),
    ("blockquote", ElementType.QUOTE),
)


def tagPatterns_compile(tag: str) -> Tuple[re.Pattern, re.Pattern]:
    """(open, close) patterns for one block tag; self-closing opens excluded"""
    opening = re.compile(rf"<{tag}(?![\w-])[^<>]*(?<!/)>", re.IGNORECASE)
    closing = re.compile(rf"</{tag}\s*>", re.IGNORECASE)
    return opening, closing


BLOCK_PATTERNS = [(tagPatterns_compile(tag), kind) for tag, kind in BLOCK_TAGS]


class ElementClassifier:
    """
    Line classifier producing ClassifiedPage objects.

    Holds only read-only configuration (tables, compiled patterns,
    scanner), so one instance serves any number of pages.
    """

    def __init__(
        self,
        tables: LookupTables,
        scanner: Optional[NestedScanner] = None,
        strip_markers: bool = False,
    ) -> None:
        """
        Args:
            tables: Lookup tables (redirect keywords, category aliases)
            scanner: Nested scanner used for template and link balance
            strip_markers: Remove leading list, definition and pre markers
                           from item content
        """
        self.tables = tables
        self.scanner = scanner or NestedScanner()
        self.strip_markers = strip_markers

        keywords = "|".join(
            re.escape(keyword) for keyword in sorted(tables.redirect_keywords, key=len, reverse=True)
        )
        self.redirect_pattern = re.compile(
            rf"^\s*#\s*(?:{keywords})\s*:?\s*\[\[([^\]]+)\]\]", re.IGNORECASE
        )
        aliases = "|".join(
            re.escape(alias) for alias in sorted(tables.category_aliases, key=len, reverse=True)
        )
        self.category_pattern = re.compile(
            rf"\[\[[ \t]*(?:{aliases})[ \t]*:([^\]|\n]*)", re.IGNORECASE
        )

    def classify(self, text: str, title: Optional[str] = None) -> ClassifiedPage:
        """
        Classify one page.

        Args:
            text: Raw page markup
            title: Page title (for log messages only)

        Returns:
            ClassifiedPage with elements, categories and redirect target
        """
        lines = text.replace("\r\n", "\n").split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        redirect = self.redirect_detect(lines)
        if redirect is not None:
            LOG(f"{title or 'page'} redirects to {redirect}", level=3)
            return ClassifiedPage(
                elements=[Element(ElementType.REDIRECT, redirect)],
                categories=[],
                redirect_target=redirect,
            )

        elements = self.lines_classify(lines)
        return ClassifiedPage(elements=elements, categories=self.categories_extract(text))

    def redirect_detect(self, lines: List[str]) -> Optional[str]:
        """Redirect target if the first non-blank line is a redirect"""
        for line in lines:
            if not line.strip():
                continue
            match = self.redirect_pattern.match(line)
            if match is None:
                return None
            target = match.group(1).split("|", 1)[0].strip()
            return target or None
        return None

    def categories_extract(self, text: str) -> List[str]:
        """
        Category names from [[Category:...]] links anywhere in the text.

        Sort keys and #section suffixes are dropped, underscores become
        spaces, duplicates keep their first position.
        """
        found: List[str] = []
        for match in self.category_pattern.finditer(text):
            name = match.group(1).split("#", 1)[0].replace("_", " ")
            name = " ".join(name.split())
            if name:
                found.append(name)
        return list(dict.fromkeys(found))

    def lines_classify(self, lines: List[str]) -> List[Element]:
        """Walk the lines with explicit multi-line modes"""
        elements: List[Element] = []
        mode: Optional[ElementType] = None
        depth = 0
        block: List[str] = []
        closer = None

        for line in lines:
            if mode is not None:
                block.append(line)
                depth += closer(line)
                if depth <= 0:
                    elements.append(Element(mode, "\n".join(block)))
                    mode, block = None, []
                continue

            element, opened = self.line_classify(line)
            if opened is None:
                elements.append(element)
                continue

            mode, depth, closer = element.type, opened[0], opened[1]
            block = [line]

        if mode is not None:
            elements.append(Element(mode, "\n".join(block)))
        return elements

    def line_classify(self, line: str):
        """
        Classify one line outside any multi-line construct.

        Returns:
            (element, None) for a complete element, or (element, (depth,
            depth_delta)) when the line opens a construct that continues;
            depth_delta(line) gives the depth change of each further line
        """
        stripped = line.strip()

        if not stripped:
            return Element(ElementType.BLANK, ""), None

        heading = HEADING_PATTERN.match(line)
        if heading:
            level = min(max(len(heading.group(1)), 2), 6)
            return Element(ElementType.HEADING, heading.group(2).strip(), level), None

        for (opening, closing), kind in BLOCK_PATTERNS:
            opens = len(opening.findall(line))
            if not opens:
                continue
            depth = opens - len(closing.findall(line))
            if depth <= 0:
                return Element(kind, line), None

            def tag_delta(text: str, opening=opening, closing=closing) -> int:
                return len(opening.findall(text)) - len(closing.findall(text))

            return Element(kind, line), (depth, tag_delta)

        if stripped.startswith("{|"):
            return Element(ElementType.TABLE, line), (1, self.tableDepth_delta)

        if stripped.startswith("{{"):
            unclosed, _ = self.scanner.balance(line, "{{", "}}")
            if unclosed:
                return Element(ElementType.MULTILINE_TEMPLATE, line), (unclosed, self.templateDepth_delta)
            spans = self.scanner.spans_find(stripped, "{{", "}}")
            if len(spans) == 1 and spans[0] == (0, len(stripped)):
                return Element(ElementType.ISOLATED_TEMPLATE, line), None
            if spans and self.remainder_isBlank(stripped, spans):
                return Element(ElementType.TEMPLATE, line), None

        if stripped.startswith("[["):
            unclosed, _ = self.scanner.balance(line, "[[", "]]")
            if unclosed:
                return Element(ElementType.MULTILINE_LINK, line), (unclosed, self.linkDepth_delta)

        if stripped.startswith("[") and stripped.endswith("]"):
            if self.scanner.balance(stripped, "[[", "]]") == (0, 0):
                return Element(ElementType.LINK, line), None

        if ISOLATED_TAG_PATTERN.match(line):
            return Element(ElementType.ISOLATED_TAG, line), None

        if line.startswith("*"):
            return Element(ElementType.UNORDERED_ITEM, self.marks_strip(line)), None
        if line.startswith("#"):
            return Element(ElementType.ORDERED_ITEM, self.marks_strip(line)), None
        if line.startswith((";", ":")):
            return Element(ElementType.DEFINITION_ITEM, self.marks_strip(line)), None
        if line.startswith(" "):
            content = line[1:] if self.strip_markers else line
            return Element(ElementType.PRE, content), None

        return Element(ElementType.PARAGRAPH, line), None

    def marks_strip(self, line: str) -> str:
        return LIST_MARKS_PATTERN.sub("", line) if self.strip_markers else line

    @staticmethod
    def remainder_isBlank(text: str, spans: List[Tuple[int, int]]) -> bool:
        """True if text holds nothing but the given spans and whitespace"""
        position = 0
        for start, end in spans:
            if text[position:start].strip():
                return False
            position = end
        return not text[position:].strip()

    @staticmethod
    def tableDepth_delta(line: str) -> int:
        stripped = line.lstrip()
        if stripped.startswith("{|"):
            return 1
        if stripped.startswith("|}"):
            return -1
        return 0

    def templateDepth_delta(self, line: str) -> int:
        unclosed, stray = self.scanner.balance(line, "{{", "}}")
        return unclosed - stray

    def linkDepth_delta(self, line: str) -> int:
        unclosed, stray = self.scanner.balance(line, "[[", "]]")
        return unclosed - stray
