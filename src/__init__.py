"""
wikidistill - Wikitext transformation engine

Turns Wikipedia dump markup into clean text and typed structural elements.
"""

__version__ = "1.0.0"

from .lib import CleanupPipeline, ElementClassifier, LookupTables, WikitextEngine, LOG, state_connectToLogger

__all__ = [
    "CleanupPipeline",
    "ElementClassifier",
    "LookupTables",
    "WikitextEngine",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
