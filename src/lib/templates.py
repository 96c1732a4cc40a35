"""
Template expansion for wikitext

Each supported template family turns a parsed invocation into plain text.
Uses TemplateSpec for metadata and a registry keyed by normalized names,
with alias names supplied by the lookup tables.

Handlers receive (invocation, expander) and return the expansion. They
recover from malformed arguments locally (an impossible date expands to
'' rather than raising).
"""

import re
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from ..models.templates import TemplateCategory, TemplateInvocation, TemplateSpec
from .citations import citation_render
from .convert import convert_render
from .dates import (
    age_compute,
    date_format,
    date_parse,
    date_safe,
    integer_parse,
    month_parse,
    yearsAndDays_compute,
)
from .log import LOG
from .parserfunctions import ExpressionEvaluator
from .scanner import NestedScanner, ScanOutcome, invocation_parse, templateName_normalize
from .tables import LookupTables

PARAMETER_PATTERN = re.compile(r"\{\{\{([^{}|]*)(?:\|([^{}]*))?\}\}\}")

HEMISPHERES = {"N", "S", "E", "W"}


def plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


class TemplateRegistry:
    """
    Registry of template specifications and handlers

    Maps normalized template names to TemplateSpec objects containing
    metadata and expansion handlers.
    """

    def __init__(self, tables: Optional[LookupTables] = None) -> None:
        """Initialize the registry and register all built-in template families"""
        self.tables = tables
        self.specs: Dict[str, TemplateSpec] = {}
        self.dateTemplates_register()
        self.ageTemplates_register()
        self.convertTemplates_register()
        self.eraTemplates_register()
        self.coordTemplates_register()
        self.languageTemplates_register()
        self.formattingTemplates_register()
        self.citationTemplates_register()

    def register(self, spec: TemplateSpec) -> None:
        """Register a template specification under its name and aliases"""
        if self.tables is not None:
            for alias in self.tables.templateAliases_get(spec.name):
                if alias not in spec.aliases:
                    spec.aliases.append(alias)
        self.specs[spec.name] = spec
        for alias in spec.aliases:
            self.specs[alias] = spec

    def get(self, name: str) -> Optional[Callable[[TemplateInvocation, "TemplateExpander"], str]]:
        """
        Get template handler by normalized name

        Supports wildcard matching for prefix families (lang-*, cite *)
        """
        spec = self.spec_get(name)
        return spec.handler if spec else None

    def spec_get(self, name: str) -> Optional[TemplateSpec]:
        """Get full template specification by normalized name"""
        if name in self.specs:
            return self.specs[name]

        for spec in self.specs.values():
            if spec.is_wildcard and spec.matches(name):
                return spec

        return None

    def templates_listByCategory(self, category: TemplateCategory) -> list[TemplateSpec]:
        """Distinct specs in a category"""
        seen: Dict[str, TemplateSpec] = {}
        for spec in self.specs.values():
            if spec.category == category:
                seen[spec.name] = spec
        return list(seen.values())

    def dateTemplates_register(self) -> None:
        """Register date display templates"""

        def date_parts(invocation: TemplateInvocation, offset: int = 0) -> Optional[tuple]:
            """(year, month, day) from positional args; month/day may be None"""
            year = integer_parse(invocation.positional(offset))
            if year is None:
                return None
            month = month_parse(invocation.positional(offset + 1)) if invocation.positional(offset + 1) else None
            day = integer_parse(invocation.positional(offset + 2)) if month else None
            if date_safe(year, month or 1, day or 1) is None:
                return None
            return year, month, day

        def day_first(invocation: TemplateInvocation) -> bool:
            return invocation.flag("df") and not invocation.flag("mf")

        def simple_date_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{birth date|1990|5|15}} -> 'May 15, 1990'"""
            parts = date_parts(invocation)
            if parts is None:
                return ""
            return date_format(*parts, day_first=day_first(invocation))

        def date_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{date|2024-06-15}} -> '15 June 2024'; 'mdy' as second arg for month first"""
            if integer_parse(invocation.positional(0)) is not None and invocation.positional(1):
                return simple_date_handler(invocation, expander)
            moment = date_parse(invocation.positional(0))
            if moment is None:
                return invocation.positional(0)
            month_first = invocation.positional(1).lower() in ("mdy", "md")
            return date_format(moment.year, moment.month, moment.day, day_first=not month_first)

        def birth_date_and_age_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{birth date and age|1990|5|15}} -> 'May 15, 1990 (age 34)'"""
            parts = date_parts(invocation)
            if parts is None:
                return ""
            year, month, day = parts
            born = date(year, month or 1, day or 1)
            age = age_compute(born, expander.reference_day)
            return f"{date_format(year, month, day, day_first=day_first(invocation))} (age {age})"

        def death_date_and_age_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{death date and age|2020|3|1|1950|6|15}} -> 'March 1, 2020 (aged 69)'"""
            died = date_parts(invocation)
            born = date_parts(invocation, 3)
            if died is None:
                return ""
            text = date_format(*died, day_first=day_first(invocation))
            if born is None:
                return text
            age = age_compute(
                date(born[0], born[1] or 1, born[2] or 1),
                date(died[0], died[1] or 1, died[2] or 1),
            )
            return f"{text} (aged {age})"

        def birth_year_and_age_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{birth year and age|1990}} -> '1990 (age 33–34)'"""
            year = integer_parse(invocation.positional(0))
            if year is None or date_safe(year) is None:
                return ""
            reference = expander.reference_day
            month = month_parse(invocation.positional(1)) if invocation.positional(1) else None
            if month is None:
                upper = reference.year - year
                return f"{year} (age {upper - 1}–{upper})"
            age = age_compute(date(year, month, 1), reference)
            return f"{year} (age {age})"

        for name, aliases in (
            ("birth date", []),
            ("death date", []),
            ("start date", []),
            ("end date", []),
        ):
            self.register(TemplateSpec(
                name=name,
                category=TemplateCategory.DATE,
                description="Formatted date; df=yes for day-first",
                handler=simple_date_handler,
                examples=[f"{{{{{name}|1990|5|15}}}}"],
                aliases=list(aliases),
            ))

        self.register(TemplateSpec(
            name="date",
            category=TemplateCategory.DATE,
            description="Reformat a written date",
            handler=date_handler,
            examples=["{{date|2024-06-15}}"],
        ))

        self.register(TemplateSpec(
            name="birth date and age",
            category=TemplateCategory.DATE,
            description="Birth date with age at the reference date",
            handler=birth_date_and_age_handler,
            examples=["{{birth date and age|1990|5|15}}"],
        ))

        self.register(TemplateSpec(
            name="death date and age",
            category=TemplateCategory.DATE,
            description="Death date with age at death",
            handler=death_date_and_age_handler,
            examples=["{{death date and age|2020|3|1|1950|6|15}}"],
        ))

        self.register(TemplateSpec(
            name="birth year and age",
            category=TemplateCategory.DATE,
            description="Birth year with age range at the reference date",
            handler=birth_year_and_age_handler,
            examples=["{{birth year and age|1990}}"],
        ))

    def ageTemplates_register(self) -> None:
        """Register age and elapsed-time templates"""

        def dates_get(invocation: TemplateInvocation, expander: "TemplateExpander") -> Optional[tuple]:
            """(start, end) from y|m|d[|y2|m2|d2]; end defaults to the reference date"""
            start_year = integer_parse(invocation.positional(0))
            if start_year is None:
                return None
            start = date_safe(
                start_year,
                month_parse(invocation.positional(1, "1")) or 1,
                integer_parse(invocation.positional(2, "1")) or 1,
            )
            end_year = integer_parse(invocation.positional(3))
            if end_year is None:
                end = expander.reference_day
            else:
                end = date_safe(
                    end_year,
                    month_parse(invocation.positional(4, "1")) or 1,
                    integer_parse(invocation.positional(5, "1")) or 1,
                )
            if start is None or end is None:
                return None
            return start, end

        def age_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{age|1990|5|15}} -> '34'"""
            span = dates_get(invocation, expander)
            return str(age_compute(*span)) if span else ""

        def age_in_days_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{age in days|2024|1|1|2024|1|10}} -> '9'"""
            span = dates_get(invocation, expander)
            return str((span[1] - span[0]).days) if span else ""

        def age_in_years_and_days_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{age in years and days|1990|5|15}} -> '34 years, 31 days'"""
            span = dates_get(invocation, expander)
            if not span:
                return ""
            elapsed = yearsAndDays_compute(*span)
            if elapsed is None:
                return ""
            years, days = elapsed
            return f"{plural(years, 'year')}, {plural(days, 'day')}"

        def time_ago_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{time ago|2024|1|1}} -> '6 months ago'"""
            span = dates_get(invocation, expander)
            if not span:
                return ""
            days = (span[1] - span[0]).days
            if days < 0:
                return ""
            if days == 0:
                return "today"
            if days < 31:
                return f"{plural(days, 'day')} ago"
            if days < 365:
                return f"{plural(max(round(days / 30.44), 1), 'month')} ago"
            return f"{plural(age_compute(*span), 'year')} ago"

        self.register(TemplateSpec(
            name="age",
            category=TemplateCategory.AGE,
            description="Completed years since a date (or between two dates)",
            handler=age_handler,
            examples=["{{age|1990|5|15}}", "{{age|1990|5|15|2000|5|14}}"],
        ))
        self.register(TemplateSpec(
            name="age in years",
            category=TemplateCategory.AGE,
            description="Completed years between two dates",
            handler=age_handler,
            examples=["{{age in years|1990|5|15|2024|6|15}}"],
        ))
        self.register(TemplateSpec(
            name="age in days",
            category=TemplateCategory.AGE,
            description="Days between two dates",
            handler=age_in_days_handler,
            examples=["{{age in days|2024|1|1|2024|1|10}}"],
        ))
        self.register(TemplateSpec(
            name="age in years and days",
            category=TemplateCategory.AGE,
            description="Years and remaining days between two dates",
            handler=age_in_years_and_days_handler,
            examples=["{{age in years and days|1990|5|15}}"],
        ))
        self.register(TemplateSpec(
            name="time ago",
            category=TemplateCategory.AGE,
            description="Elapsed time in days, months or years",
            handler=time_ago_handler,
            examples=["{{time ago|2024|1|1}}"],
        ))

    def convertTemplates_register(self) -> None:
        """Register unit conversion"""

        def convert_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            return convert_render(invocation)

        self.register(TemplateSpec(
            name="convert",
            category=TemplateCategory.CONVERT,
            description="Quantity with its conversion to another unit",
            handler=convert_handler,
            examples=["{{convert|100|km|mi}}", "{{convert|0|°C|°F}}"],
        ))

    def eraTemplates_register(self) -> None:
        """Register approximate-date and life-event templates"""

        def circa_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{circa|1500}} -> 'c. 1500'; two values -> 'c. 1500 – c. 1550'"""
            first, second = invocation.positional(0), invocation.positional(1)
            if not first:
                return "c."
            return f"c. {first} – c. {second}" if second else f"c. {first}"

        def span_handler(prefix: str) -> Callable:
            def handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
                first, second = invocation.positional(0), invocation.positional(1)
                if not first:
                    return prefix
                if prefix == "r." and not second:
                    return f"r. {first}–"
                return f"{prefix} {first}–{second}" if second else f"{prefix} {first}"
            return handler

        def marriage_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{marriage|Jane Doe|1990|2020|reason=div}} -> 'Jane Doe (m. 1990; div. 2020)'"""
            spouse = invocation.positional(0)
            married = invocation.positional(1)
            ended = invocation.positional(2)
            reason = (invocation.named("reason") or invocation.named("end") or "").lower()
            if not married:
                return spouse
            if ended:
                label = {
                    "divorce": "div.", "divorced": "div.", "div": "div.", "div.": "div.",
                    "died": "died", "death": "died", "d": "died", "d.": "died",
                    "widowed": "wid.", "wid": "wid.", "wid.": "wid.",
                    "separated": "sep.", "sep": "sep.", "sep.": "sep.",
                }.get(reason)
                detail = f"m. {married}; {label} {ended}" if label else f"m. {married}–{ended}"
            else:
                detail = f"m. {married}"
            return f"{spouse} ({detail})" if spouse else f"({detail})"

        def played_years_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            first, second = invocation.positional(0), invocation.positional(1)
            return f"{first}–{second}" if second else first

        self.register(TemplateSpec(
            name="circa",
            category=TemplateCategory.ERA,
            description="Approximate date",
            handler=circa_handler,
            examples=["{{circa|1500}}"],
        ))
        self.register(TemplateSpec(
            name="floruit",
            category=TemplateCategory.ERA,
            description="Period of activity",
            handler=span_handler("fl."),
            examples=["{{floruit|1500|1550}}"],
        ))
        self.register(TemplateSpec(
            name="reign",
            category=TemplateCategory.ERA,
            description="Period of rule",
            handler=span_handler("r."),
            examples=["{{reign|1500|1550}}"],
        ))
        self.register(TemplateSpec(
            name="marriage",
            category=TemplateCategory.ERA,
            description="Spouse with marriage years",
            handler=marriage_handler,
            examples=["{{marriage|Jane Doe|1990}}"],
        ))
        self.register(TemplateSpec(
            name="played years",
            category=TemplateCategory.ERA,
            description="Year range",
            handler=played_years_handler,
            examples=["{{played years|2000|2020}}"],
        ))

    def coordTemplates_register(self) -> None:
        """Register geographic coordinates"""

        def component_format(parts: List[str], hemisphere: str) -> str:
            symbols = ("°", "′", "″")
            rendered = "".join(f"{part}{symbol}" for part, symbol in zip(parts, symbols))
            return f"{rendered}{hemisphere}"

        def signed_format(value: str, positive: str, negative: str) -> str:
            text = value.strip().replace("−", "-")
            if text.startswith("-"):
                return f"{text[1:]}°{negative}"
            return f"{text.lstrip('+')}°{positive}"

        def coord_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """
            {{coord|40.7128|N|74.0060|W}}     -> '40.7128°N 74.0060°W'
            {{coord|40|42|46|N|74|0|22|W}}    -> '40°42′46″N 74°0′22″W'
            {{coord|35.6762|139.6503}}        -> '35.6762°N 139.6503°E'
            """
            args = [arg.strip() for arg in invocation.positional_args if arg.strip() and ":" not in arg]
            upper = [arg.upper() for arg in args]
            lat_index = next((i for i, arg in enumerate(upper) if arg in ("N", "S")), None)
            lon_index = next((i for i, arg in enumerate(upper) if arg in ("E", "W")), None)

            if lat_index is not None and lon_index is not None and 0 < lat_index < lon_index:
                latitude = component_format(args[:lat_index], upper[lat_index])
                longitude = component_format(args[lat_index + 1 : lon_index], upper[lon_index])
                return f"{latitude} {longitude}"

            numbers = [arg for arg in args if arg.upper() not in HEMISPHERES]
            if len(numbers) >= 2:
                return f"{signed_format(numbers[0], 'N', 'S')} {signed_format(numbers[1], 'E', 'W')}"
            return ""

        self.register(TemplateSpec(
            name="coord",
            category=TemplateCategory.COORD,
            description="Latitude and longitude",
            handler=coord_handler,
            examples=["{{coord|40.7128|N|74.0060|W}}"],
        ))

    def languageTemplates_register(self) -> None:
        """Register language and script templates"""

        def literal_get(invocation: TemplateInvocation) -> Optional[str]:
            return invocation.named("lit") or invocation.named("literal")

        def lang_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{lang|fr|Bonjour}} -> 'Bonjour'"""
            text = invocation.positional(1)
            literal = literal_get(invocation)
            return f"{text} (lit. '{literal}')" if literal else text

        def lang_xx_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{lang-fr|Bonjour}} -> 'French: Bonjour'"""
            code = templateName_normalize(invocation.name)[len("lang-"):]
            language = None
            if expander.tables is not None:
                language = expander.tables.languageName_get(code)
            text = invocation.positional(0)
            rendered = f"{language or code}: {text}"
            literal = literal_get(invocation)
            return f"{rendered}, lit. '{literal}'" if literal else rendered

        def transl_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{transl|ru|Moskva}} -> 'Moskva' (last positional argument)"""
            args = [arg for arg in invocation.positional_args if arg]
            return args[-1] if len(args) > 1 else ""

        def nihongo_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            """{{nihongo|Tokyo|東京|Tōkyō}} -> 'Tokyo (東京, Tōkyō)'"""
            english = invocation.positional(0)
            kanji = invocation.positional(1)
            romaji = invocation.positional(2)
            details = ", ".join(part for part in (kanji, romaji) if part)
            if english and details:
                return f"{english} ({details})"
            return english or details

        self.register(TemplateSpec(
            name="lang",
            category=TemplateCategory.LANGUAGE,
            description="Foreign-language text",
            handler=lang_handler,
            examples=["{{lang|fr|Bonjour}}"],
        ))
        self.register(TemplateSpec(
            name="lang-*",
            category=TemplateCategory.LANGUAGE,
            description="Foreign-language text labelled with the language name",
            handler=lang_xx_handler,
            is_wildcard=True,
            examples=["{{lang-fr|Bonjour}}"],
        ))
        self.register(TemplateSpec(
            name="transl",
            category=TemplateCategory.LANGUAGE,
            description="Transliterated text",
            handler=transl_handler,
            examples=["{{transl|ru|Moskva}}"],
        ))
        self.register(TemplateSpec(
            name="nihongo",
            category=TemplateCategory.LANGUAGE,
            description="English name with Japanese script and romanization",
            handler=nihongo_handler,
            examples=["{{nihongo|Tokyo|東京|Tōkyō}}"],
        ))

    def formattingTemplates_register(self) -> None:
        """Register presentation-only templates that reduce to their text"""

        def text_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            return invocation.positional(0)

        def literal_handler(text: str) -> Callable:
            def handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
                return text
            return handler

        for name in ("nowrap", "small", "big", "em", "strong", "abbr"):
            self.register(TemplateSpec(
                name=name,
                category=TemplateCategory.FORMATTING,
                description="Formatting wrapper; expands to its first argument",
                handler=text_handler,
                examples=[f"{{{{{name}|text}}}}"],
            ))

        for name, text in (("ndash", "–"), ("mdash", "—"), ("snd", " – ")):
            self.register(TemplateSpec(
                name=name,
                category=TemplateCategory.FORMATTING,
                description="Dash character",
                handler=literal_handler(text),
                examples=[f"{{{{{name}}}}}"],
            ))

    def citationTemplates_register(self) -> None:
        """Register citation templates (rendered only when extraction is on)"""

        def citation_handler(invocation: TemplateInvocation, expander: "TemplateExpander") -> str:
            if not expander.extract_citations:
                return ""
            return citation_render(invocation)

        self.register(TemplateSpec(
            name="cite *",
            category=TemplateCategory.CITATION,
            description="Citation of a book, web page, article, ...",
            handler=citation_handler,
            is_wildcard=True,
            examples=["{{cite book|last=Smith|title=The Book|year=2020}}"],
        ))
        self.register(TemplateSpec(
            name="citation",
            category=TemplateCategory.CITATION,
            description="Generic citation",
            handler=citation_handler,
            examples=["{{citation|title=Report|year=2019}}"],
        ))


class TemplateExpander:
    """
    Expander for {{template}} and {{#function:}} forms.

    Spans are resolved innermost-first in one dispatch: parser functions go
    to the ExpressionEvaluator, known templates to their handlers, marker
    families pass through for later protection, and unknown templates are
    dropped or kept verbatim depending on configuration.
    """

    def __init__(
        self,
        tables: Optional[LookupTables] = None,
        evaluator: Optional[ExpressionEvaluator] = None,
        reference_date: Optional[datetime] = None,
        preserve_unknown: bool = False,
        extract_citations: bool = False,
        scanner: Optional[NestedScanner] = None,
        registry: Optional[TemplateRegistry] = None,
    ) -> None:
        """
        Args:
            tables: Lookup tables (marker families, aliases, language names)
            evaluator: Parser-function evaluator sharing the reference date
            reference_date: Moment ages and relative dates are computed against
            preserve_unknown: Keep unknown templates verbatim instead of deleting
            extract_citations: Render citation templates instead of deleting
            scanner: Nested scanner
            registry: Template registry (built from tables if omitted)
        """
        self.tables = tables
        self.reference_date = reference_date or datetime.now()
        self.scanner = scanner or NestedScanner()
        self.evaluator = evaluator or ExpressionEvaluator(self.reference_date, self.scanner)
        self.preserve_unknown = preserve_unknown
        self.extract_citations = extract_citations
        self.registry = registry or TemplateRegistry(tables)

    @property
    def reference_day(self) -> date:
        return self.reference_date.date()

    def expand(self, text: str) -> str:
        return self.expand_withOutcome(text).text

    def expand_withOutcome(self, text: str) -> ScanOutcome:
        """
        Expand every template and parser function in text.

        Rescans until nothing changes, at most max_nesting_iterations passes.
        """
        result = self.parameters_resolve(text)
        spans = 0
        for _ in range(self.scanner.max_iterations):
            if "{{" not in result:
                return ScanOutcome(result, spans, False)
            outcome = self.scanner.scan_withOutcome(result, "{{", "}}", self.form_expand)
            spans += outcome.spans
            if outcome.exhausted:
                return ScanOutcome(outcome.text, spans, True)
            if outcome.text == result:
                return ScanOutcome(result, spans, False)
            result = outcome.text
        LOG("Template rescan cap reached; returning partial text", level=1)
        return ScanOutcome(result, spans, True)

    def parameters_resolve(self, text: str) -> str:
        """Replace {{{name|default}}} parameter references with their default"""
        if "{{{" not in text:
            return text
        result = text
        for _ in range(self.scanner.max_iterations):
            resolved = PARAMETER_PATTERN.sub(lambda match: match.group(2) or "", result)
            if resolved == result:
                break
            result = resolved
        return result

    def form_expand(self, content: str) -> str:
        """Expand the content of one {{...}} span"""
        if content.lstrip().startswith("#"):
            return self.evaluator.function_call(content)

        invocation = invocation_parse(content)
        name = templateName_normalize(invocation.name)

        if self.tables is not None and (
            name in self.tables.passthrough_templates or self.tables.markerTemplate_get(name)
        ):
            return "{{" + content + "}}"

        spec = self.registry.spec_get(name)
        if spec is not None:
            return spec.handler(invocation, self)

        if self.preserve_unknown:
            return "{{" + content + "}}"
        LOG(f"Dropping unknown template {invocation.name!r}", level=3)
        return ""
