"""
Cleanup pipeline: wikitext in, plain text out

Stages run in a fixed order on one document:
0. strip NUL characters (reserved for marker tokens)
1. magic-word expansion (only when a title is known)
2. template and parser-function expansion (when enabled)
3. protection of special content behind marker tokens
4. entity and character-reference decoding
5. structural markup stripping
6. marker finalization ([TYPE] or '')
7. whitespace normalization

The stages repeat until a pass leaves the text unchanged (at most
MAX_CLEANUP_PASSES times), so decoded entities or removals that expose new
markup are cleaned too, and running the pipeline on its own output
returns that output unchanged.

Example:
    >>> pipeline = CleanupPipeline(LookupTables.load())
    >>> pipeline.clean("'''Foo''' is a [[bar|baz]].<ref>x</ref>")
    'Foo is a baz.\\n\\n'
"""

import re
from typing import List, Optional, Tuple

from ..models.markers import MarkerTable
from ..models.options import CleanupOptions, CleanupResult
from .entities import EntityDecoder
from .log import LOG
from .magicwords import MagicWordExpander
from .markers import MarkerProtector
from .scanner import NestedScanner
from .tables import LookupTables
from .templates import TemplateExpander

COMMENT_PATTERN = re.compile(r"<!--(?:.*?-->|.*\Z)", re.DOTALL)
REF_SELFCLOSING_PATTERN = re.compile(r"<ref(?![\w-])[^<>]*/>", re.IGNORECASE)
EXTERNAL_LINK_PATTERN = re.compile(r"\[(?:https?:|ftp:|//)[^\s\]]*(?:\s+([^\]\n]*))?\]")
EMPHASIS_PATTERN = re.compile(r"('{2,5})(.+?)\1")
BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"</?[a-zA-Z][a-zA-Z0-9]*(?:\s[^<>]*)?/?>")
RULE_PATTERN = re.compile(r"^[ \t]*-{4,}[ \t]*$", re.MULTILINE)
INTERWIKI_PATTERN = re.compile(r"(?<![\w:/]):[a-z]{2,3}(?:-[a-z]+)?:")
INTERLANGUAGE_PATTERN = re.compile(r"[a-z]{2,3}(?:-[a-z]+)?")
LONE_MARKER_PATTERN = re.compile(r"^[ \t]*[*#:;]+[ \t]*$", re.MULTILINE)
EMPTY_PARENS_PATTERN = re.compile(r"\([ \t]*\)|（[ \t　]*）")
SPACES_PATTERN = re.compile(r"(\S) {2,}")
PARENTHETICAL_PATTERN = re.compile(r"\s*\([^()]*\)\s*$")
BLANK_LINES_PATTERN = re.compile(r"\n{3,}")

# Full passes over one document before the text is taken as it stands
MAX_CLEANUP_PASSES = 10


def alternation(words: List[str]) -> str:
    """Regex alternation of literal words, longest first"""
    return "|".join(re.escape(word) for word in sorted(set(words), key=len, reverse=True))


def pipeTrick_apply(target: str) -> str:
    """
    Display text MediaWiki derives from [[target|]].

    Drops a namespace prefix, a trailing parenthetical and anything after
    the first comma.

    Example:
        >>> pipeTrick_apply("Wikipedia:Manual of Style (dates)")
        'Manual of Style'
        >>> pipeTrick_apply("Paris, Texas")
        'Paris'
    """
    text = target.strip()
    if ":" in text:
        text = text.split(":", 1)[1].strip()
    text = PARENTHETICAL_PATTERN.sub("", text)
    if "," in text:
        text = text.split(",", 1)[0]
    return text.strip()


class CleanupPipeline:
    """
    Plain-text cleanup for one document configuration.

    Expanders are injected by WikitextEngine; any that are missing are built
    from the tables and options here.
    """

    def __init__(
        self,
        tables: LookupTables,
        options: Optional[CleanupOptions] = None,
        scanner: Optional[NestedScanner] = None,
        magic: Optional[MagicWordExpander] = None,
        templates: Optional[TemplateExpander] = None,
        protector: Optional[MarkerProtector] = None,
        decoder: Optional[EntityDecoder] = None,
    ) -> None:
        """
        Args:
            tables: Lookup tables
            options: Cleanup options (defaults apply when omitted)
            scanner: Nested scanner shared by every stage
            magic: Magic-word expander; built when options carry a title
            templates: Template expander
            protector: Marker protector
            decoder: Entity decoder
        """
        self.tables = tables
        self.options = options or CleanupOptions()
        self.scanner = scanner or NestedScanner()
        reference_date = self.options.referenceDate_get()

        if magic is None and self.options.title:
            magic = MagicWordExpander(
                self.options.title,
                namespace=self.options.namespace,
                reference_date=reference_date,
                scanner=self.scanner,
                tables=tables,
            )
        self.magic = magic
        self.templates = templates or TemplateExpander(
            tables,
            reference_date=reference_date,
            preserve_unknown=self.options.preserve_unknown_templates,
            extract_citations=self.options.extract_citations,
            scanner=self.scanner,
        )
        self.protector = protector or MarkerProtector(
            tables, self.scanner, extract_citations=self.options.extract_citations
        )
        self.decoder = decoder or EntityDecoder(tables)
        self.patterns_compile()

    def patterns_compile(self) -> None:
        """Build the table-driven patterns for this vocabulary"""
        tables = self.tables
        self.category_names = {name.lower() for name in tables.category_aliases}
        self.file_names = {name.lower() for name in tables.file_aliases}
        self.switch_pattern = re.compile(rf"__(?:{alternation(tables.behavior_switches)})__")
        self.sortword_pattern = re.compile(
            rf"^[ \t]*(?:\{{\{{)?[ \t]*(?:{alternation(tables.sort_magic_words)})[ \t]*:[^\n]*$",
            re.MULTILINE,
        )
        self.category_line_pattern = re.compile(
            rf"^[ \t]*(?:{alternation(tables.category_aliases)})[ \t]*:[^\n]*$",
            re.MULTILINE | re.IGNORECASE,
        )
        self.footer_names = {
            name.lower() for name in tables.footer_lines + tables.authority_control
        }
        self.footer_prefixes = tuple(prefix.lower() for prefix in tables.footer_prefixes)

    def clean(self, text: str) -> str:
        return self.clean_withMarkers(text).text

    def clean_withMarkers(self, text: str) -> CleanupResult:
        """
        Run every stage and return the text with its marker table.

        Args:
            text: Raw wikitext of one page

        Returns:
            CleanupResult with the cleaned text, the marker table and
            whether a rescan loop hit the nesting cap
        """
        table = MarkerTable()
        exhausted = False

        result = text
        for attempt in range(1, MAX_CLEANUP_PASSES + 1):
            cleaned, pass_exhausted = self.stages_run(result, table)
            exhausted = exhausted or pass_exhausted
            if cleaned == result:
                break
            result = cleaned
            LOG(f"Cleanup pass {attempt} changed the text", level=3)
        else:
            LOG(f"Cleanup did not settle within {MAX_CLEANUP_PASSES} passes", level=1)

        return CleanupResult(result, table, exhausted)

    def stages_run(self, text: str, table: MarkerTable) -> Tuple[str, bool]:
        """
        One pass of stages 0 to 7.

        Returns:
            The cleaned text and whether template expansion hit the nesting cap
        """
        exhausted = False

        result = self.nul_strip(text)

        if self.magic is not None:
            LOG("Stage 1: magic words", level=3)
            result = self.magic.expand(result)

        if self.options.expand_templates:
            LOG("Stage 2: templates and parser functions", level=3)
            outcome = self.templates.expand_withOutcome(result)
            result = outcome.text
            exhausted = outcome.exhausted

        LOG("Stage 3: protecting special content", level=3)
        result = self.protector.protect(result, table)

        LOG("Stage 4: entities", level=3)
        result = self.decoder.decode(result)

        LOG("Stage 5: stripping markup", level=3)
        result = self.markup_strip(result)

        LOG("Stage 6: resolving markers", level=3)
        result = self.markers_finalize(result, table)

        LOG("Stage 7: whitespace", level=3)
        result = self.whitespace_normalize(result)

        return result, exhausted

    @staticmethod
    def nul_strip(text: str) -> str:
        return text.replace("\x00", "")

    def markup_strip(self, text: str) -> str:
        """Stage 5, in order"""
        result = COMMENT_PATTERN.sub("", text)
        result = self.references_strip(result)
        result = self.links_strip(result)
        result = self.externalLinks_strip(result)
        if not self.options.preserve_unknown_templates:
            result = self.templates_strip(result)
        result = EMPHASIS_PATTERN.sub(r"\2", result)
        result = self.blocks_drop(result)
        result = self.tags_strip(result)
        result = self.switch_pattern.sub("", result)
        result = EMPTY_PARENS_PATTERN.sub("", result)
        result = RULE_PATTERN.sub("", result)
        result = self.sortword_pattern.sub("", result)
        result = INTERWIKI_PATTERN.sub("", result)
        result = self.lines_filter(result)
        result = SPACES_PATTERN.sub(r"\1 ", result)
        return result

    def references_strip(self, text: str) -> str:
        """<ref> pairs become [ref]...[/ref] with citations kept, else vanish"""
        result = REF_SELFCLOSING_PATTERN.sub("", text)

        def ref_replace(content: str) -> str:
            if not self.options.extract_citations:
                return ""
            _, bracket, inner = content.partition(">")
            inner = inner.strip() if bracket else ""
            return f"[ref]{inner}[/ref]" if inner else ""

        return self.scanner.scan(result, "<ref", "</ref>", ref_replace)

    def links_strip(self, text: str) -> str:
        """Replace [[...]] links with their display text"""
        if "[[" not in text:
            return text
        return self.scanner.scan(text, "[[", "]]", self.link_resolve)

    def link_resolve(self, content: str) -> str:
        """
        Display text of one internal link.

        File links, category links and unlabelled interlanguage links
        vanish. A label wins; an empty label applies the pipe trick.
        """
        target, pipe, label = content.partition("|")
        target = target.strip()
        escaped = target.startswith(":")
        if escaped:
            target = target[1:].strip()

        prefix, colon, _ = target.partition(":")
        prefix_key = prefix.strip().lower()
        if colon and not escaped:
            if prefix_key in self.file_names or prefix_key in self.category_names:
                return ""
            if not pipe and INTERLANGUAGE_PATTERN.fullmatch(prefix.strip()):
                return ""

        if pipe:
            label = label.strip()
            return label if label else pipeTrick_apply(target)

        page, hash_mark, anchor = target.partition("#")
        if hash_mark:
            return page.strip() or anchor.strip()
        return target

    def externalLinks_strip(self, text: str) -> str:
        if "[" not in text:
            return text
        return EXTERNAL_LINK_PATTERN.sub(lambda match: (match.group(1) or "").strip(), text)

    def templates_strip(self, text: str) -> str:
        if "{{" not in text:
            return text
        return self.scanner.scan(text, "{{", "}}", lambda content: "")

    def blocks_drop(self, text: str) -> str:
        """Drop extension blocks whose content never shows (<noinclude>, <hiero>, ...)"""
        result = text
        for tag in self.tables.dropped_blocks:
            open = f"<{tag}"
            if open in result:
                result = self.scanner.scan(result, open, f"</{tag}>", lambda content: "")
        return result

    @staticmethod
    def tags_strip(text: str) -> str:
        if "<" not in text:
            return text
        result = BREAK_PATTERN.sub("\n", text)
        return TAG_PATTERN.sub("", result)

    def lines_filter(self, text: str) -> str:
        """Drop category, authority-control and footer lines, and lone list markers"""
        result = self.category_line_pattern.sub("", text)
        lines = []
        for line in result.split("\n"):
            key = line.strip().lower()
            if key and (key in self.footer_names or key.startswith(self.footer_prefixes)):
                continue
            lines.append(line)
        return LONE_MARKER_PATTERN.sub("", "\n".join(lines))

    def markers_finalize(self, text: str, table: MarkerTable) -> str:
        """
        Resolve tokens, then tidy what deleted markers leave behind
        (empty parentheses, bare list markers, doubled spaces).
        """
        result = self.protector.finalize(text, table, self.options.enabled_markers)
        result = EMPTY_PARENS_PATTERN.sub("", result)
        result = LONE_MARKER_PATTERN.sub("", result)
        return SPACES_PATTERN.sub(r"\1 ", result)

    @staticmethod
    def whitespace_normalize(text: str) -> str:
        """
        Trailing spaces off, blank-line runs collapsed, outer whitespace
        trimmed, non-empty output ending in exactly one blank line.
        """
        lines = [line.rstrip() for line in text.split("\n")]
        result = BLANK_LINES_PATTERN.sub("\n\n", "\n".join(lines)).strip()
        return f"{result}\n\n" if result else ""
