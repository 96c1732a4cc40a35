"""
Marker protection and finalization

Content that plain text cannot represent (math, code, tables, infoboxes,
reference lists, ...) is swapped out for unique tokens before markup
stripping, so the stripping regexes never see it. After stripping, each
token resolves to a [TYPE] bracket when that type is enabled, or to ''.

Protection order:
1. Self-closing marker tags (<references/>)
2. Marker tag pairs (<math>...</math>, <syntaxhighlight ...>...</syntaxhighlight>)
3. Marker templates ({{infobox ...}}, {{reflist}}, {{IPA-en|...}})
4. {{refbegin}}...{{refend}} blocks (unwrapped when citations are kept)
5. Wiki tables, {| to the matching |} line
"""

import re
from typing import Iterable, List, Optional, Set

from ..models.markers import MarkerTable, MarkerType, token_pattern
from .log import LOG
from .scanner import NestedScanner, templateName_normalize
from .tables import LookupTables

REFBLOCK_PATTERN = re.compile(
    r"\{\{\s*refbegin[^{}]*\}\}(.*?)\{\{\s*refend\s*\}\}",
    re.DOTALL | re.IGNORECASE,
)


class MarkerProtector:
    """
    Swaps special regions for marker tokens and resolves them afterwards.

    The protector itself is stateless; every call works against the
    MarkerTable it is given, which belongs to a single document.
    """

    def __init__(
        self,
        tables: LookupTables,
        scanner: Optional[NestedScanner] = None,
        extract_citations: bool = False,
    ) -> None:
        self.tables = tables
        self.scanner = scanner or NestedScanner()
        self.extract_citations = extract_citations
        tags = "|".join(re.escape(tag) for tag in sorted(tables.marker_tags, key=len, reverse=True))
        self.selfclosing_pattern = re.compile(
            rf"<({tags})(?![\w-])[^<>]*/>", re.IGNORECASE
        )

    def protect(self, text: str, table: MarkerTable) -> str:
        """
        Replace every protected region in text with a token.

        Args:
            text: Expanded wikitext
            table: Marker table receiving one entry per region

        Returns:
            Text with protected regions replaced by tokens
        """
        result = self.selfclosing_protect(text, table)
        result = self.tags_protect(result, table)
        result = self.templates_protect(result, table)
        result = self.refblocks_protect(result, table)
        result = self.wikitables_protect(result, table)
        LOG(f"Protected {len(table)} regions", level=3)
        return result

    def selfclosing_protect(self, text: str, table: MarkerTable) -> str:
        def tag_replace(match: re.Match) -> str:
            kind = MarkerType.name_parse(self.tables.marker_tags[match.group(1).lower()])
            return table.token_issue(kind, match.group(0))

        return self.selfclosing_pattern.sub(tag_replace, text)

    def tags_protect(self, text: str, table: MarkerTable) -> str:
        """Protect <tag ...>...</tag> pairs for every marker tag"""
        result = text
        for tag, kind_name in self.tables.marker_tags.items():
            open, close = f"<{tag}", f"</{tag}>"
            if open not in result:
                continue
            kind = MarkerType.name_parse(kind_name)

            def pair_replace(content: str, open: str = open, close: str = close, kind: MarkerType = kind) -> str:
                return table.token_issue(kind, open + content + close)

            result = self.scanner.scan(result, open, close, pair_replace)
        return result

    def templates_protect(self, text: str, table: MarkerTable) -> str:
        """Protect templates whose name belongs to a marker family"""
        if "{{" not in text:
            return text

        def template_replace(content: str) -> str:
            name = templateName_normalize(content.split("|", 1)[0])
            kind_name = self.tables.markerTemplate_get(name)
            if kind_name is None:
                return "{{" + content + "}}"
            return table.token_issue(MarkerType.name_parse(kind_name), "{{" + content + "}}")

        return self.scanner.scan(text, "{{", "}}", template_replace)

    def refblocks_protect(self, text: str, table: MarkerTable) -> str:
        """{{refbegin}}...{{refend}}: unwrapped with citations, a REFERENCES marker without"""

        def block_replace(match: re.Match) -> str:
            if self.extract_citations:
                return match.group(1)
            return table.token_issue(MarkerType.REFERENCES, match.group(0))

        return REFBLOCK_PATTERN.sub(block_replace, text)

    def wikitables_protect(self, text: str, table: MarkerTable) -> str:
        """
        Protect wiki tables line by line.

        A line starting with '{|' opens a table and one starting with '|}'
        closes the innermost open table; the outermost table becomes one
        token. Unterminated tables are left alone.
        """
        if "{|" not in text:
            return text

        lines = text.split("\n")
        output: List[str] = []
        stack: List[int] = []
        pending: List[str] = []

        for line in lines:
            stripped = line.lstrip()
            if stripped.startswith("{|"):
                stack.append(len(pending))
                pending.append(line)
                continue
            if not stack:
                output.append(line)
                continue
            pending.append(line)
            if stripped.startswith("|}"):
                stack.pop()
                if not stack:
                    output.append(table.token_issue(MarkerType.TABLE, "\n".join(pending)))
                    pending = []

        output.extend(pending)
        return "\n".join(output)

    @staticmethod
    def finalize(text: str, table: MarkerTable, enabled: Iterable[MarkerType]) -> str:
        """
        Resolve tokens: [TYPE] for enabled types, '' otherwise.

        Token-shaped text with no table entry is deleted as well.
        """
        enabled_types: Set[MarkerType] = set(enabled)

        def token_resolve(match: re.Match) -> str:
            entry = table.entry_get(match.group(0))
            if entry is None or entry.marker_type not in enabled_types:
                return ""
            return entry.marker_type.bracket

        return token_pattern().sub(token_resolve, text)
