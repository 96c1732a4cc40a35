"""
End-to-end engine tests

Tests the full path: wikitext page -> WikitextEngine -> Article and
plain-text document.
"""

import pytest
from datetime import date, datetime

from wikidistill.config import AppSettings
from wikidistill.lib.engine import WikitextEngine
from wikidistill.lib.tables import LookupTables
from wikidistill.models.elements import ElementType
from wikidistill.models.options import CleanupOptions


REFERENCE = datetime(2024, 6, 15, 14, 30, 45)
TABLES = LookupTables.load()

EINSTEIN = """{{Infobox scientist
| name = Albert Einstein
| birth_date = {{birth date|1879|3|14}}
}}
'''{{PAGENAME}}''' ({{lang-de|Albert Einstein}}; {{birth date|1879|3|14}} {{ndash}} {{death date|1955|4|18}}) was a [[theoretical physicist|physicist]].<ref>{{cite book|title=Subtle is the Lord}}</ref>

== Work ==
He wrote <math>E = mc^2</math> in 1905.{{citation needed}}

{| class="wikitable"
| 1905 || Annus mirabilis
|}

[[Category:Physicists]]
[[Category:Nobel laureates in Physics]]
"""


def engine_make(**options):
    options.setdefault("dump_date", REFERENCE)
    return WikitextEngine(TABLES, options=CleanupOptions(**options))


class TestArticle:
    """Test article parsing"""

    def test_structure(self):
        article = engine_make().article_parse("Albert Einstein", EINSTEIN)
        assert not article.is_redirect
        assert article.categories == ["Physicists", "Nobel laureates in Physics"]
        assert article.elements[0].type == ElementType.MULTILINE_TEMPLATE
        assert [e.content for e in article.elements_ofType(ElementType.HEADING)] == ["Work"]
        assert len(article.elements_ofType(ElementType.TABLE)) == 1

    def test_redirect(self):
        engine = engine_make()
        article = engine.article_parse("Einstein", "#REDIRECT [[Albert Einstein]]")
        assert article.is_redirect
        assert engine.article_render(article, "") == "REDIRECT: Albert Einstein\n"


class TestCleaning:
    """Test the full cleanup of a realistic page"""

    def test_document(self):
        engine = engine_make()
        article = engine.article_parse("Albert Einstein", EINSTEIN)
        text = engine.text_clean(EINSTEIN, title="Albert Einstein")
        assert text == (
            "[INFOBOX]\n"
            "Albert Einstein (German: Albert Einstein; March 14, 1879 – April 18, 1955)"
            " was a physicist.\n"
            "\n"
            "== Work ==\n"
            "He wrote [MATH] in 1905.\n"
            "\n"
            "[TABLE]\n"
            "\n"
        )
        document = engine.article_render(article, text)
        assert document.endswith("[TABLE]\n\nCATEGORIES: Physicists, Nobel laureates in Physics\n")
        assert engine.article_render(article, text, categories=False) == text

    def test_overrides(self):
        engine = engine_make()
        text = engine.text_clean(EINSTEIN, title="Albert Einstein", markers="none")
        assert "[" not in text
        assert text.startswith("Albert Einstein (German")
        assert engine.options.markers == "all"

    def test_citations(self):
        text = engine_make(extract_citations=True).text_clean(EINSTEIN, title="Albert Einstein")
        assert "[ref]Subtle is the Lord.[/ref]" in text

    def test_plain_date(self):
        engine = WikitextEngine(TABLES, options=CleanupOptions(dump_date=date(2024, 6, 15)))
        assert engine.text_clean("{{age|1879|3|14}}") == "145\n\n"

    def test_convert(self):
        assert engine_make().text_clean("{{convert|0|°C|°F}}") == "0 °C (32 °F)\n\n"


class TestHostileInput:
    """Test that malformed or oversized markup still cleans to text"""

    @pytest.mark.parametrize(
        "source",
        [
            "{{#time:Y|0000}} {{birth year and age|0|5}}",
            "{{#expr:" + "1+" * 2000 + "1}}",
            "{{#expr:" + "(" * 2000 + "1" + ")" * 2000 + "}}",
            "{{formatnum:" + "1" * 5000 + "}}",
            "{{#padleft:x|1000000000}}",
            "&#91;{{reflist}}]]\n----__NOTOC__\n()Category:Foo\n{|<br>|}",
            "[[" * 500 + "{{" * 500 + "<ref>" * 100,
        ],
    )
    def test_cleans_without_error(self, source):
        engine = engine_make()
        text = engine.text_clean(source, title="Sample")
        assert engine.text_clean(text, title="Sample") == text


class TestSettings:
    """Test settings flowing into the engine"""

    def test_nesting_cap(self):
        engine = WikitextEngine(TABLES, settings=AppSettings(max_nesting_iterations=7))
        assert engine.scanner.max_iterations == 7

    def test_cap_exhaustion_reported(self):
        engine = WikitextEngine(
            TABLES,
            options=CleanupOptions(dump_date=REFERENCE),
            settings=AppSettings(max_nesting_iterations=1),
        )
        result = engine.text_cleanWithMarkers("{{ndash}}{{ndash}}")
        assert result.exhausted
