"""
wikidistill - Wikitext transformation engine

Template expansion, element classification and plain-text cleanup for
Wikipedia dump markup.
"""

__version__ = "1.0.0"

from .scanner import NestedScanner, ScanOutcome
from .classifier import ElementClassifier
from .parserfunctions import ExpressionEvaluator
from .magicwords import MagicWordExpander
from .templates import TemplateExpander, TemplateRegistry
from .cleanup import CleanupPipeline
from .engine import WikitextEngine
from .tables import LookupTables, TableError
from .log import LOG, state_connectToLogger

__all__ = [
    "NestedScanner",
    "ScanOutcome",
    "ElementClassifier",
    "ExpressionEvaluator",
    "MagicWordExpander",
    "TemplateExpander",
    "TemplateRegistry",
    "CleanupPipeline",
    "WikitextEngine",
    "LookupTables",
    "TableError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
