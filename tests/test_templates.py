"""
Template expansion tests

Tests the built-in template families, unknown-template policy, parameter
defaults and the registry lookup rules.
"""

import pytest
from datetime import date, datetime

from wikidistill.lib.dates import MAX_INTEGER_DIGITS, anniversary_get, integer_parse, yearsAndDays_compute
from wikidistill.lib.scanner import NestedScanner
from wikidistill.lib.tables import LookupTables
from wikidistill.lib.templates import TemplateExpander, TemplateRegistry
from wikidistill.models.templates import TemplateCategory


REFERENCE = datetime(2024, 6, 15, 14, 30, 45)
TABLES = LookupTables.load()


def expand(text, **kwargs):
    return TemplateExpander(TABLES, reference_date=REFERENCE, **kwargs).expand(text)


class TestDateTemplates:
    """Test date display and age-at-date templates"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{birth date|1990|5|15}}", "May 15, 1990"),
            ("{{birth date|1990|5|15|df=yes}}", "15 May 1990"),
            ("{{Birth_Date|1990|5|15}}", "May 15, 1990"),
            ("{{dob|1990|5|15}}", "May 15, 1990"),
            ("{{start date|2001|9}}", "September 2001"),
            ("{{date|2024-06-15}}", "15 June 2024"),
            ("{{birth date and age|1990|5|15}}", "May 15, 1990 (age 34)"),
            ("{{bda|1990|7|1}}", "July 1, 1990 (age 33)"),
            ("{{death date and age|2020|3|1|1950|6|15}}", "March 1, 2020 (aged 69)"),
            ("{{birth year and age|1990}}", "1990 (age 33–34)"),
        ],
    )
    def test_date(self, source, expected):
        assert expand(source) == expected

    def test_impossible_date_expands_to_empty(self):
        assert expand("{{birth date|1990|2|30}}") == ""


class TestAgeTemplates:
    """Test ages and elapsed time against the reference date"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{age|1990|5|15}}", "34"),
            ("{{age|1990|5|15|2000|5|14}}", "9"),
            ("{{age in days|2024|1|1|2024|1|10}}", "9"),
            ("{{age in years and days|2023|6|10}}", "1 year, 5 days"),
            ("{{time ago|2024|6|15}}", "today"),
            ("{{time ago|2024|6|10}}", "5 days ago"),
            ("{{time ago|2024|3|1}}", "3 months ago"),
            ("{{time ago|2020|1|1}}", "4 years ago"),
        ],
    )
    def test_age(self, source, expected):
        assert expand(source) == expected


class TestOutOfRangeDates:
    """Test that dates outside the calendar's range render empty"""

    @pytest.mark.parametrize(
        "source",
        [
            "{{birth year and age|0|5}}",
            "{{birth year and age|99999|5}}",
            "{{birth year and age|0}}",
            "{{age in years and days|5|5|15|1|1|1}}",
            "{{birth date|" + "1" * 5000 + "|5|15}}",
            "{{birth date and age|0|1|1}}",
            "{{age|99999|1|1}}",
            "{{time ago|" + "9" * 5000 + "}}",
        ],
    )
    def test_empty(self, source):
        assert expand(source) == ""

    def test_age_before_start(self):
        assert expand("{{age|2000|5|15|1990|5|15}}") == "-10"

    def test_integer_parse_saturates(self):
        assert integer_parse("1" * 5000) == int("9" * MAX_INTEGER_DIGITS)
        assert integer_parse("-" + "1" * 5000) == -int("9" * MAX_INTEGER_DIGITS)
        assert integer_parse(" 0042 ") == 42

    def test_anniversary_outside_calendar(self):
        assert anniversary_get(date(5, 5, 15), 0) is None
        assert anniversary_get(date(2000, 2, 29), 2001) == date(2001, 2, 28)
        assert yearsAndDays_compute(date(5, 5, 15), date(1, 1, 1)) is None

    def test_numbered_argument_beyond_slots(self):
        assert expand("{{birth date|1990|5|15|1000000000=x}}") == "May 15, 1990"


class TestConvert:
    """Test unit conversion"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{convert|100|km|mi}}", "100 km (62.1 mi)"),
            ("{{cvt|0|°C|°F}}", "0 °C (32 °F)"),
            ("{{convert|10|to|20|km}}", "10 to 20 km (6.2 to 12.4 mi)"),
            ("{{convert|100|km|mi|disp=or}}", "100 km or 62.1 mi"),
            ("{{convert|5|furlongs}}", "5 furlongs"),
        ],
    )
    def test_convert(self, source, expected):
        assert expand(source) == expected


class TestEraTemplates:
    """Test approximate dates, reigns and marriages"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{circa|1500}}", "c. 1500"),
            ("{{c.|1500|1550}}", "c. 1500 – c. 1550"),
            ("{{fl.|1500|1550}}", "fl. 1500–1550"),
            ("{{reign|1500}}", "r. 1500–"),
            ("{{marriage|Jane Doe|1990}}", "Jane Doe (m. 1990)"),
            ("{{marriage|Jane Doe|1990|2020|reason=div}}", "Jane Doe (m. 1990; div. 2020)"),
            ("{{played years|2000|2020}}", "2000–2020"),
        ],
    )
    def test_era(self, source, expected):
        assert expand(source) == expected


class TestCoord:
    """Test coordinate rendering"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{coord|40.7128|N|74.0060|W}}", "40.7128°N 74.0060°W"),
            ("{{coord|40|42|46|N|74|0|22|W}}", "40°42′46″N 74°0′22″W"),
            ("{{coord|35.6762|139.6503|type:city}}", "35.6762°N 139.6503°E"),
            ("{{coord|-33.8688|151.2093|display=inline}}", "33.8688°S 151.2093°E"),
        ],
    )
    def test_coord(self, source, expected):
        assert expand(source) == expected


class TestLanguageTemplates:
    """Test language labels and transliterations"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{lang|fr|Bonjour}}", "Bonjour"),
            ("{{lang|la|Carpe diem|lit=seize the day}}", "Carpe diem (lit. 'seize the day')"),
            ("{{lang-fr|Bonjour}}", "French: Bonjour"),
            ("{{lang-xx|Text}}", "xx: Text"),
            ("{{transl|ru|Moskva}}", "Moskva"),
            ("{{nihongo|Tokyo|東京|Tōkyō}}", "Tokyo (東京, Tōkyō)"),
        ],
    )
    def test_language(self, source, expected):
        assert expand(source) == expected


class TestFormatting:
    """Test wrappers and dashes"""

    def test_wrappers(self):
        assert expand("{{nowrap|10 km}}") == "10 km"
        assert expand("{{small|note}}") == "note"

    def test_dashes(self):
        assert expand("1990{{ndash}}2000") == "1990–2000"
        assert expand("a{{snd}}b") == "a – b"


class TestCitations:
    """Test citation templates with and without extraction"""

    SOURCE = "{{cite book|last=Smith|first=John|title=The Book|publisher=Pub|year=2020}}"

    def test_dropped_by_default(self):
        assert expand(self.SOURCE) == ""

    def test_rendered_when_extracting(self):
        assert expand(self.SOURCE, extract_citations=True) == "Smith, John. The Book. Pub, 2020."

    def test_generic_citation(self):
        assert expand("{{citation|title=Report|year=2019}}", extract_citations=True) == "Report. 2019."


class TestUnknownTemplates:
    """Test what happens to templates nobody handles"""

    def test_dropped(self):
        assert expand("a {{nosuch|x}} b") == "a  b"

    def test_preserved(self):
        assert expand("a {{nosuch|x}} b", preserve_unknown=True) == "a {{nosuch|x}} b"

    def test_marker_templates_pass_through(self):
        source = "{{Infobox person|name={{nowrap|X}}}}"
        assert expand(source) == "{{Infobox person|name=X}}"

    def test_refbegin_passes_through(self):
        assert expand("{{refbegin}}") == "{{refbegin}}"


class TestNesting:
    """Test inner forms resolving before outer ones"""

    def test_template_in_argument(self):
        assert expand("{{lang|fr|{{nowrap|Bonjour}}}}") == "Bonjour"

    def test_parser_function_around_template(self):
        assert expand("{{#if:x|{{ndash}}}}") == "–"

    def test_parameter_defaults(self):
        assert expand("{{{1|default}}}") == "default"
        assert expand("[{{{name}}}]") == "[]"
        assert expand("{{{1|{{{2|x}}}}}}") == "x"

    def test_cap_reports_exhaustion(self):
        expander = TemplateExpander(
            TABLES, reference_date=REFERENCE, scanner=NestedScanner(max_iterations=1)
        )
        outcome = expander.expand_withOutcome("{{ndash}}{{ndash}}")
        assert outcome.exhausted
        assert outcome.text == "–{{ndash}}"


class TestRegistry:
    """Test registry lookups"""

    def test_alias_from_tables(self):
        registry = TemplateRegistry(TABLES)
        assert registry.spec_get("cvt") is registry.spec_get("convert")

    def test_wildcard(self):
        registry = TemplateRegistry(TABLES)
        assert registry.spec_get("lang-de").name == "lang-*"
        assert registry.spec_get("cite web").name == "cite *"
        assert registry.spec_get("lang-") is None

    def test_list_by_category(self):
        registry = TemplateRegistry(TABLES)
        names = {spec.name for spec in registry.templates_listByCategory(TemplateCategory.CITATION)}
        assert names == {"cite *", "citation"}
