"""
Lookup-table loader for the wikitext engine.

All language- and wiki-specific vocabulary (redirect keywords, namespace
aliases, behaviour switches, marker families, template aliases, language
names, ...) lives in a YAML file so the engine code stays data-free:
  - data/lookup.yaml: packaged defaults
  - WIKIDISTILL_TABLES_PATH: optional replacement file

Tables are loaded once by the caller and shared read-only by every
component built from them.
"""

import html.entities
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import appsettings
from .log import LOG


class TableError(Exception):
    """Raised when lookup tables are missing, unreadable or malformed"""
    pass


DEFAULT_TABLES_PATH: Path = Path(__file__).parent.parent / "data" / "lookup.yaml"

# Tables every engine component relies on; each must be present and a list
REQUIRED_LISTS: tuple[str, ...] = (
    "redirect_keywords",
    "category_aliases",
    "file_aliases",
    "behavior_switches",
    "sort_magic_words",
    "authority_control",
    "footer_lines",
    "footer_prefixes",
    "dropped_blocks",
    "passthrough_templates",
)

REQUIRED_MAPPINGS: tuple[str, ...] = (
    "marker_tags",
    "marker_templates",
    "template_aliases",
    "languages",
    "namespaces",
    "entity_overrides",
)


class LookupTables:
    """
    Read-only vocabulary shared by the engine components.

    Attributes mirror the top-level keys of the YAML file, e.g.
    `tables.redirect_keywords`, `tables.marker_tags`. Template and tag names
    are normalized to lowercase on load.
    """

    def __init__(self, config: Dict[str, Any], source: str = "<memory>"):
        """
        Build tables from an already-parsed mapping.

        Args:
            config: Mapping with every required table
            source: Where the mapping came from (for error messages)

        Raises:
            TableError: If a required table is missing or has the wrong shape
        """
        self.source = source
        self.config = config
        self._tables_validate()

        self.redirect_keywords: List[str] = [str(k) for k in config["redirect_keywords"]]
        self.category_aliases: List[str] = [str(k) for k in config["category_aliases"]]
        self.file_aliases: List[str] = [str(k) for k in config["file_aliases"]]
        self.behavior_switches: List[str] = [str(k) for k in config["behavior_switches"]]
        self.sort_magic_words: List[str] = [str(k) for k in config["sort_magic_words"]]
        self.authority_control: List[str] = [str(k) for k in config["authority_control"]]
        self.footer_lines: List[str] = [str(k) for k in config["footer_lines"]]
        self.footer_prefixes: List[str] = [str(k) for k in config["footer_prefixes"]]
        self.dropped_blocks: List[str] = [str(k).lower() for k in config["dropped_blocks"]]
        self.passthrough_templates: set[str] = {
            str(k).lower() for k in config["passthrough_templates"]
        }

        self.marker_tags: Dict[str, str] = {
            str(tag).lower(): str(kind).upper() for tag, kind in config["marker_tags"].items()
        }
        self.marker_templates: Dict[str, str] = {
            str(name).lower(): str(kind).upper()
            for name, kind in config["marker_templates"].items()
        }
        self.template_aliases: Dict[str, List[str]] = {
            str(name).lower(): [str(alias).lower() for alias in (aliases or [])]
            for name, aliases in config["template_aliases"].items()
        }
        self.languages: Dict[str, str] = {
            str(code).lower(): str(name) for code, name in config["languages"].items()
        }
        self.namespaces: Dict[str, int] = {
            str(name).lower(): int(number) for name, number in config["namespaces"].items()
        }

        self.entities: Dict[str, str] = {
            name.rstrip(";"): value
            for name, value in html.entities.html5.items()
            if name.endswith(";")
        }
        for name, value in config["entity_overrides"].items():
            self.entities[str(name)] = "" if value is None else str(value)

    def _tables_validate(self) -> None:
        """Check that every required table exists with the right shape"""
        if not isinstance(self.config, dict):
            raise TableError(f"Lookup tables in {self.source} must be a mapping")
        for key in REQUIRED_LISTS:
            if not isinstance(self.config.get(key), list):
                raise TableError(f"Lookup table '{key}' missing or not a list in {self.source}")
        for key in REQUIRED_MAPPINGS:
            if not isinstance(self.config.get(key), dict):
                raise TableError(f"Lookup table '{key}' missing or not a mapping in {self.source}")

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "LookupTables":
        """
        Load tables from YAML.

        Args:
            path: YAML file; defaults to WIKIDISTILL_TABLES_PATH, then the
                  packaged data/lookup.yaml

        Returns:
            LookupTables instance

        Raises:
            TableError: If the file is missing, unparsable or incomplete
        """
        table_path = Path(path or appsettings.tables_path or DEFAULT_TABLES_PATH)
        if not table_path.exists():
            raise TableError(f"Lookup tables not found: {table_path}")

        try:
            with open(table_path, 'r', encoding='utf-8') as f:
                config: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TableError(f"Failed to parse {table_path.name}: {e}")
        except OSError as e:
            raise TableError(f"Failed to load {table_path.name}: {e}")

        if config is None:
            config = {}
        tables = cls(config, source=str(table_path))
        LOG(f"Loaded lookup tables from {table_path}", level=2)
        return tables

    def markerTemplate_get(self, name: str) -> Optional[str]:
        """
        Marker type name for a normalized template name, if it is protected.

        A trailing '*' in the table matches by prefix ('infobox*' covers
        'infobox person').
        """
        if name in self.marker_templates:
            return self.marker_templates[name]
        for pattern, kind in self.marker_templates.items():
            if pattern.endswith("*") and name.startswith(pattern[:-1]):
                return kind
        return None

    def templateAliases_get(self, name: str) -> List[str]:
        return self.template_aliases.get(name.lower(), [])

    def languageName_get(self, code: str) -> Optional[str]:
        return self.languages.get(code.lower())

    def namespaceNumber_get(self, namespace: str) -> int:
        """Namespace number, 0 for the main namespace or unknown names"""
        if not namespace:
            return 0
        return self.namespaces.get(namespace.strip().replace("_", " ").lower(), 0)

    def __repr__(self) -> str:
        return f"LookupTables(source='{self.source}')"
