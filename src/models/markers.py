"""
Marker models for protected content

Special content (math, code, tables, infoboxes, ...) is swapped out for
unique tokens while the cleanup pipeline strips markup, then resolved to a
[TYPE] bracket or deleted. MarkerTable keeps the per-document record of
what each token stands for.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set, Union

from ..config import appsettings


class MarkerType(Enum):
    """Kinds of protected content, named as they appear in output brackets"""
    MATH = "MATH"
    CODE = "CODE"
    CHEM = "CHEM"
    TABLE = "TABLE"
    SCORE = "SCORE"
    TIMELINE = "TIMELINE"
    GRAPH = "GRAPH"
    IPA = "IPA"
    INFOBOX = "INFOBOX"
    NAVBOX = "NAVBOX"
    GALLERY = "GALLERY"
    REFERENCES = "REFERENCES"
    SIDEBAR = "SIDEBAR"
    MAPFRAME = "MAPFRAME"
    IMAGEMAP = "IMAGEMAP"

    @property
    def bracket(self) -> str:
        """Output form of an enabled marker, e.g. [MATH]"""
        return f"[{self.value}]"

    @classmethod
    def name_parse(cls, name: Union[str, "MarkerType"]) -> "MarkerType":
        """
        Resolve a marker name (case-insensitive) to its enum member.

        Raises:
            ValueError: If the name is not a marker type
        """
        if isinstance(name, cls):
            return name
        key = str(name).strip().upper()
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown marker type: {name!r}") from None

    @classmethod
    def set_parse(cls, value: Union[None, bool, str, Iterable]) -> Set["MarkerType"]:
        """
        Normalize a marker selection to a set of marker types.

        Accepts "all"/True (every type), "none"/False/None (no types), a
        comma separated string ("math,code") or an iterable of names or
        members.

        Example:
            >>> MarkerType.set_parse("math, table") == {MarkerType.MATH, MarkerType.TABLE}
            True
        """
        if value is None or value is False:
            return set()
        if value is True:
            return set(cls)
        if isinstance(value, cls):
            return {value}
        if isinstance(value, str):
            keyword = value.strip().lower()
            if keyword == "all":
                return set(cls)
            if keyword in ("none", ""):
                return set()
            value = [part for part in value.split(",") if part.strip()]
        return {cls.name_parse(item) for item in value}


@dataclass
class MarkerEntry:
    """
    What a token stands for.

    Attributes:
        marker_type: Kind of protected content
        original_content: Exact source bytes of the protected region
    """
    marker_type: MarkerType
    original_content: str


@dataclass
class MarkerTable:
    """
    Per-document token registry.

    Tokens are issued with increasing indices so they are unique within a
    document. When an outer region is protected after inner regions were
    already swapped out, the recorded content has the inner tokens restored,
    so every entry holds the region's original bytes.
    """
    entries: Dict[str, MarkerEntry] = field(default_factory=dict)

    def token_issue(self, marker_type: MarkerType, content: str) -> str:
        """
        Record a protected region and return its token.

        Args:
            marker_type: Kind of content being protected
            content: Region text (may contain tokens of inner regions)

        Returns:
            Fresh token (e.g., "\\x00MARKER_5\\x00")
        """
        token = appsettings.markerToken_make(len(self.entries))
        self.entries[token] = MarkerEntry(marker_type, self.content_restore(content))
        return token

    def content_restore(self, text: str) -> str:
        """Replace every known token in text with its original content"""
        if appsettings.marker_prefix not in text:
            return text

        def token_replace(match: re.Match) -> str:
            entry = self.entries.get(match.group(0))
            return entry.original_content if entry else match.group(0)

        return token_pattern().sub(token_replace, text)

    def entry_get(self, token: str) -> Optional[MarkerEntry]:
        return self.entries.get(token)

    def entries_ofType(self, marker_type: MarkerType) -> list[MarkerEntry]:
        return [entry for entry in self.entries.values() if entry.marker_type == marker_type]

    def __len__(self) -> int:
        return len(self.entries)


def token_pattern() -> re.Pattern:
    """Regex matching any token shaped by the current settings"""
    return re.compile(
        re.escape(appsettings.marker_prefix) + r"\d+" + re.escape(appsettings.marker_suffix)
    )
