"""
Models package for wikidistill

Contains data structures and type definitions for the transformation engine
and the conversion pipeline.
"""

from .state import ProgramState, pipeline
from .elements import Article, ClassifiedPage, Element, ElementType
from .markers import MarkerEntry, MarkerTable, MarkerType
from .templates import TemplateCategory, TemplateInvocation, TemplateSpec
from .expressions import BinaryOp, Comparison, ExpressionError, Logical, Number, UnaryMinus
from .options import CleanupOptions, CleanupResult

__all__ = [
    "ProgramState",
    "pipeline",
    "Article",
    "ClassifiedPage",
    "Element",
    "ElementType",
    "MarkerEntry",
    "MarkerTable",
    "MarkerType",
    "TemplateCategory",
    "TemplateInvocation",
    "TemplateSpec",
    "BinaryOp",
    "Comparison",
    "ExpressionError",
    "Logical",
    "Number",
    "UnaryMinus",
    "CleanupOptions",
    "CleanupResult",
]
