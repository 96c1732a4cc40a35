"""
WikitextEngine: composition root for the transformation components

Holds what is shared across documents (lookup tables, settings, scanner,
classifier, template registry) and builds the per-document expanders and
cleanup pipeline from a CleanupOptions value.

Usage:
    engine = WikitextEngine(LookupTables.load())
    article = engine.article_parse("Albert Einstein", raw)
    text = engine.text_clean(raw, title="Albert Einstein", dump_date=date(2024, 6, 15))
    document = engine.article_render(article, text)
"""

from typing import Any, Optional

from ..config import AppSettings, appsettings
from ..models.elements import Article
from ..models.options import CleanupOptions, CleanupResult
from .arithmetic import ArithmeticEvaluator
from .classifier import ElementClassifier
from .cleanup import CleanupPipeline
from .entities import EntityDecoder
from .magicwords import MagicWordExpander
from .markers import MarkerProtector
from .parserfunctions import ExpressionEvaluator
from .scanner import NestedScanner
from .tables import LookupTables
from .templates import TemplateExpander, TemplateRegistry


class WikitextEngine:
    """
    Explicitly wired set of engine components.

    Everything held here is read-only after construction, so one engine
    can clean any number of documents.
    """

    def __init__(
        self,
        tables: Optional[LookupTables] = None,
        options: Optional[CleanupOptions] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        """
        Args:
            tables: Lookup tables (loaded from the default location if omitted)
            options: Default cleanup options for text_clean()
            settings: Application settings (the module singleton if omitted)
        """
        self.settings = settings or appsettings
        self.tables = tables or LookupTables.load(self.settings.tables_path)
        self.options = options or CleanupOptions()
        self.scanner = NestedScanner(max_iterations=self.settings.max_nesting_iterations)
        self.classifier = ElementClassifier(self.tables, self.scanner)
        self.registry = TemplateRegistry(self.tables)
        self.decoder = EntityDecoder(self.tables)

    def pipeline_build(self, options: Optional[CleanupOptions] = None) -> CleanupPipeline:
        """
        Build the per-document components for one option set.

        Args:
            options: Cleanup options (engine defaults if omitted)

        Returns:
            CleanupPipeline wired to this engine's tables and scanner
        """
        options = options or self.options
        reference_date = options.referenceDate_get()

        magic = None
        if options.title:
            magic = MagicWordExpander(
                options.title,
                namespace=options.namespace,
                reference_date=reference_date,
                scanner=self.scanner,
                tables=self.tables,
            )
        evaluator = ExpressionEvaluator(
            reference_date,
            self.scanner,
            ArithmeticEvaluator(self.settings.expr_precision),
        )
        templates = TemplateExpander(
            self.tables,
            evaluator=evaluator,
            reference_date=reference_date,
            preserve_unknown=options.preserve_unknown_templates,
            extract_citations=options.extract_citations,
            scanner=self.scanner,
            registry=self.registry,
        )
        protector = MarkerProtector(
            self.tables, self.scanner, extract_citations=options.extract_citations
        )
        return CleanupPipeline(
            self.tables,
            options,
            scanner=self.scanner,
            magic=magic,
            templates=templates,
            protector=protector,
            decoder=self.decoder,
        )

    def article_parse(self, title: str, raw_text: str) -> Article:
        """Classify a page into an Article"""
        page = self.classifier.classify(raw_text, title)
        return Article(
            title=title,
            raw_text=raw_text,
            elements=page.elements,
            categories=page.categories,
            redirect_target=page.redirect_target,
        )

    def text_clean(self, raw_text: str, title: Optional[str] = None, **overrides: Any) -> str:
        """
        Clean one page to plain text.

        Args:
            raw_text: Page markup
            title: Page title (enables magic words)
            **overrides: CleanupOptions fields replacing the engine defaults

        Returns:
            Cleaned text
        """
        return self.text_cleanWithMarkers(raw_text, title, **overrides).text

    def text_cleanWithMarkers(
        self, raw_text: str, title: Optional[str] = None, **overrides: Any
    ) -> CleanupResult:
        if title is not None:
            overrides["title"] = title
        options = self.options.with_overrides(**overrides) if overrides else self.options
        return self.pipeline_build(options).clean_withMarkers(raw_text)

    @staticmethod
    def article_render(article: Article, text: str, categories: bool = True) -> str:
        """
        Plain-text document for one article.

        Redirects render as 'REDIRECT: target'. Otherwise the cleaned text,
        followed by a 'CATEGORIES: a, b' line when the article has
        categories and they are requested.
        """
        if article.is_redirect:
            return f"REDIRECT: {article.redirect_target}\n"
        document = text
        if categories and article.categories:
            document = f"{document}CATEGORIES: {', '.join(article.categories)}\n"
        return document
