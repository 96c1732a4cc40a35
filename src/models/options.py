"""
Cleanup options and results

The flat option set consumed by CleanupPipeline, and the result bundle it
returns when callers want the marker table alongside the text.
"""

from datetime import date, datetime
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Set

from .markers import MarkerTable, MarkerType


@dataclass
class CleanupOptions:
    """
    Options for one cleanup run.

    Attributes:
        title: Page title; magic-word expansion only runs when set
        namespace: Namespace of the page ("" for articles)
        dump_date: Reference date for date words, ages and #time
                   (None means the current time)
        expand_templates: Run template and parser-function expansion
        extract_citations: Render citation templates and keep <ref> content
        markers: Marker types rendered as [TYPE]; other protected content is
                 deleted. Accepts anything MarkerType.set_parse accepts.
        preserve_unknown_templates: Pass unknown templates through verbatim
                                    instead of deleting them
    """
    title: Optional[str] = None
    namespace: str = ""
    dump_date: Optional[date] = None
    expand_templates: bool = True
    extract_citations: bool = False
    markers: Any = "all"
    preserve_unknown_templates: bool = False
    enabled_markers: Set[MarkerType] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.enabled_markers = MarkerType.set_parse(self.markers)

    def referenceDate_get(self) -> datetime:
        """Reference moment as a datetime (midnight for plain dates)"""
        if self.dump_date is None:
            return datetime.now()
        if isinstance(self.dump_date, datetime):
            return self.dump_date
        return datetime(self.dump_date.year, self.dump_date.month, self.dump_date.day)

    def with_overrides(self, **overrides: Any) -> "CleanupOptions":
        """Copy of these options with some fields replaced"""
        return replace(self, **overrides)


@dataclass
class CleanupResult:
    """
    Output of CleanupPipeline.clean_withMarkers().

    Attributes:
        text: Cleaned text
        markers: Table of every region protected during the run
        exhausted: True if any rescan loop hit the nesting cap
    """
    text: str
    markers: MarkerTable
    exhausted: bool = False
