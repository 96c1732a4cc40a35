"""
Template specification and invocation models

Defines the families of templates the expander knows, the registry
metadata for each, and the parsed form of a single {{...}} invocation.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional


class TemplateCategory(Enum):
    """
    Families of expandable templates

    Used for organization and for listing what the registry covers.
    """
    DATE = "date"              # {{birth date}}, {{start date}}, ...
    AGE = "age"                # {{age}}, {{age in days}}, {{time ago}}
    CONVERT = "convert"        # {{convert}}, {{cvt}}
    ERA = "era"                # {{circa}}, {{floruit}}, {{reign}}, {{marriage}}
    COORD = "coord"            # {{coord}}
    LANGUAGE = "language"      # {{lang}}, {{lang-fr}}, {{transl}}, {{nihongo}}
    FORMATTING = "formatting"  # {{nowrap}}, {{small}}, {{abbr}}, dashes
    CITATION = "citation"      # {{cite book}}, {{citation}}


@dataclass
class TemplateSpec:
    """
    Specification for an expandable template

    Attributes:
        name: Canonical template name (lowercase, single spaces)
        category: Family for organization
        description: Human-readable description
        handler: Expansion function (invocation, expander) -> str
        is_wildcard: Whether the name is a prefix pattern (e.g., 'lang-*')
        examples: Example invocations
        aliases: Alternative names for the template
    """
    name: str
    category: TemplateCategory
    description: str
    handler: Callable
    is_wildcard: bool = False
    examples: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)

    def matches(self, template_name: str) -> bool:
        """
        Check if this spec handles a normalized template name

        Handles wildcards (e.g., 'lang-*' matches 'lang-fr')
        """
        if self.name == template_name:
            return True

        if template_name in self.aliases:
            return True

        if self.is_wildcard and self.name.endswith('*'):
            prefix = self.name[:-1]
            if template_name.startswith(prefix) and len(template_name) > len(prefix):
                return True

        return False


@dataclass
class TemplateInvocation:
    """
    A parsed {{name|arg|key=value}} form.

    Numbered named arguments (1=foo) fill the matching positional slot.

    Attributes:
        name: Template name as written (trimmed)
        positional_args: Unnamed arguments in order, trimmed
        named_args: Named arguments keyed by lowercase name, values trimmed
    """
    name: str
    positional_args: List[str] = field(default_factory=list)
    named_args: Dict[str, str] = field(default_factory=dict)

    def positional(self, index: int, default: str = "") -> str:
        """Positional argument at index, or default when absent or empty"""
        if 0 <= index < len(self.positional_args) and self.positional_args[index] != "":
            return self.positional_args[index]
        return default

    def named(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.named_args.get(key.lower())
        return value if value else default

    def flag(self, *keys: str) -> bool:
        """True if any of the named arguments is set to a yes-like value"""
        for key in keys:
            value = (self.named_args.get(key) or "").strip().lower()
            if value in ("yes", "y", "true", "1", "on"):
                return True
        return False
