"""
Element and article models

Defines the typed elements produced by the ElementClassifier and the
Article container handed to external formatters.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional


class ElementType(Enum):
    """
    Closed set of structural element kinds recognized in page markup.

    Every line of a page ends up in exactly one element of one of these
    kinds; multi-line constructs (tables, templates spanning lines, tag
    blocks) are gathered into a single element.
    """
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TABLE = "table"                             # {| ... |}
    HTML_TABLE = "html_table"                   # <table> ... </table>
    QUOTE = "quote"                             # <blockquote> ... </blockquote>
    PRE = "pre"                                 # leading-space line
    UNORDERED_ITEM = "unordered_item"           # *
    ORDERED_ITEM = "ordered_item"               # #
    DEFINITION_ITEM = "definition_item"         # ; or :
    LINK = "link"                               # line wholly in brackets
    MULTILINE_LINK = "multiline_link"           # [[ ... spanning lines ]]
    REDIRECT = "redirect"
    TEMPLATE = "template"                       # line of several templates
    MULTILINE_TEMPLATE = "multiline_template"   # {{ ... spanning lines }}
    ISOLATED_TEMPLATE = "isolated_template"     # line that is one template
    ISOLATED_TAG = "isolated_tag"               # line that is one tag pair
    SOURCE_BLOCK = "source_block"               # <source>, <syntaxhighlight>
    MATH_BLOCK = "math_block"                   # <math>
    INPUTBOX = "inputbox"
    BLANK = "blank"


# Elements that gather several source lines until a closing construct
MULTILINE_TYPES = frozenset({
    ElementType.TABLE,
    ElementType.HTML_TABLE,
    ElementType.QUOTE,
    ElementType.MULTILINE_LINK,
    ElementType.MULTILINE_TEMPLATE,
    ElementType.SOURCE_BLOCK,
    ElementType.MATH_BLOCK,
    ElementType.INPUTBOX,
})


@dataclass
class Element:
    """
    A single classified unit of page markup.

    Attributes:
        type: Element kind
        content: Source text of the element (lines joined with newlines for
                 multi-line kinds; heading text without fences; redirect target
                 for redirects)
        level: Heading level 2..6, None for every other kind
    """
    type: ElementType
    content: str
    level: Optional[int] = None

    def is_multiline(self) -> bool:
        """True if this element kind spans lines"""
        return self.type in MULTILINE_TYPES


@dataclass
class ClassifiedPage:
    """
    Result of classifying one page.

    Attributes:
        elements: Elements in source line order
        categories: Category names in first-seen order, no duplicates
        redirect_target: Target of a redirect page, None otherwise
    """
    elements: List[Element] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    redirect_target: Optional[str] = None


@dataclass
class Article:
    """
    A page as seen by downstream formatters.

    A redirect article carries exactly one element (the redirect) and no
    other structure.

    Attributes:
        title: Page title
        raw_text: Original page markup
        elements: Classified elements in source order
        categories: Deduplicated category names in insertion order
        redirect_target: Redirect destination, or None
    """
    title: str
    raw_text: str
    elements: List[Element] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    redirect_target: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_target is not None

    def elements_ofType(self, element_type: ElementType) -> List[Element]:
        """Elements of one kind, in source order"""
        return [element for element in self.elements if element.type == element_type]
