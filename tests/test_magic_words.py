"""
Magic word tests

Tests page-context words, date words and string functions.
"""

import pytest
from datetime import datetime

from wikidistill.lib.magicwords import MAX_PAD_LENGTH, MagicWordExpander, anchorencode, formatnum
from wikidistill.lib.tables import LookupTables


REFERENCE = datetime(2024, 6, 15, 14, 30, 45)
TABLES = LookupTables.load()


def expand(text, title="Main Page/Sub/Deep", namespace=""):
    expander = MagicWordExpander(title, namespace=namespace, reference_date=REFERENCE, tables=TABLES)
    return expander.expand(text)


class TestPageWords:
    """Test words derived from the title"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{PAGENAME}}", "Main Page/Sub/Deep"),
            ("{{BASEPAGENAME}}", "Main Page/Sub"),
            ("{{ROOTPAGENAME}}", "Main Page"),
            ("{{SUBPAGENAME}}", "Deep"),
            ("{{PAGENAMEE}}", "Main_Page/Sub/Deep"),
            ("{{FULLPAGENAME}}", "Main Page/Sub/Deep"),
            ("{{TALKPAGENAME}}", "Talk:Main Page/Sub/Deep"),
            ("{{NAMESPACE}}", ""),
            ("{{NAMESPACENUMBER}}", "0"),
            ("{{SITENAME}}", "Wikipedia"),
            ("{{ pagename }}", "Main Page/Sub/Deep"),
        ],
    )
    def test_article_namespace(self, source, expected):
        assert expand(source) == expected

    def test_other_namespace(self):
        assert expand("{{FULLPAGENAME}}", "Contents", "Help") == "Help:Contents"
        assert expand("{{TALKPAGENAME}}", "Contents", "Help") == "Help talk:Contents"
        assert expand("{{NAMESPACENUMBER}}", "Contents", "Help") == "12"
        assert expand("{{SUBJECTSPACE}}", "Contents", "Help talk") == "Help"

    def test_title_argument(self):
        """A :title argument replaces the page title"""
        assert expand("{{PAGENAME:Foo_bar/Baz}}") == "Foo bar/Baz"
        assert expand("{{SUBPAGENAME:Foo/Bar}}") == "Bar"


class TestDateWords:
    """Test CURRENT* and LOCAL* words"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{CURRENTYEAR}}", "2024"),
            ("{{CURRENTMONTH}}", "06"),
            ("{{CURRENTMONTH1}}", "6"),
            ("{{CURRENTMONTHNAME}}", "June"),
            ("{{CURRENTMONTHABBREV}}", "Jun"),
            ("{{CURRENTDAY}}", "15"),
            ("{{CURRENTDAY2}}", "15"),
            ("{{CURRENTDOW}}", "6"),
            ("{{CURRENTDAYNAME}}", "Saturday"),
            ("{{CURRENTTIME}}", "14:30"),
            ("{{CURRENTHOUR}}", "14"),
            ("{{CURRENTWEEK}}", "24"),
            ("{{CURRENTTIMESTAMP}}", "20240615143045"),
            ("{{LOCALYEAR}}", "2024"),
        ],
    )
    def test_date_word(self, source, expected):
        assert expand(source) == expected


class TestStringFunctions:
    """Test lc, uc, urlencode, padleft, formatnum and friends"""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{lc:HeLLo}}", "hello"),
            ("{{uc:hello}}", "HELLO"),
            ("{{lcfirst:ABC}}", "aBC"),
            ("{{ucfirst:abc}}", "Abc"),
            ("{{urlencode:a b}}", "a+b"),
            ("{{urlencode:a b|WIKI}}", "a_b"),
            ("{{urlencode:a b|PATH}}", "a%20b"),
            ("{{anchorencode:hello world}}", "hello_world"),
            ("{{padleft:7|3}}", "007"),
            ("{{padleft:7|3|ab}}", "ab7"),
            ("{{padright:7|3}}", "700"),
            ("{{formatnum:1234567.89}}", "1,234,567.89"),
            ("{{formatnum:1,234|R}}", "1234"),
            ("{{formatnum:1234|NOSEP}}", "1234"),
            ("{{plural:1|item|items}}", "item"),
            ("{{plural:3|item|items}}", "items"),
        ],
    )
    def test_function(self, source, expected):
        assert expand(source) == expected

    def test_nested(self):
        assert expand("{{uc:{{PAGENAME}}}}") == "MAIN PAGE/SUB/DEEP"

    def test_unknown_left_verbatim(self):
        assert expand("{{foo|bar}} {{DEFAULTSORT:Smith}}") == "{{foo|bar}} {{DEFAULTSORT:Smith}}"


class TestHelpers:
    """Test the encoding helpers directly"""

    def test_formatnum_negative(self):
        assert formatnum("-1234") == "-1,234"

    def test_formatnum_not_a_number(self):
        assert formatnum("abc") == "abc"

    def test_anchorencode_escapes(self):
        assert anchorencode("a&b") == "a.26b"

    def test_formatnum_long_digit_run(self):
        digits = "1" * 5000
        grouped = formatnum(digits)
        assert grouped.replace(",", "") == digits
        assert grouped.startswith("11,111,")

    def test_formatnum_leading_zeros_kept(self):
        assert formatnum("007") == "007"


class TestPadLimits:
    """Test that padding never grows past MAX_PAD_LENGTH"""

    @pytest.mark.parametrize(
        "source",
        [
            "{{padleft:7|1000000000}}",
            "{{padright:7|1000000000|ab}}",
            "{{padleft:7|" + "1" * 5000 + "}}",
        ],
    )
    def test_capped(self, source):
        assert len(expand(source)) == MAX_PAD_LENGTH

    def test_bad_width_left_alone(self):
        assert expand("{{padleft:7|wide}}") == "7"
