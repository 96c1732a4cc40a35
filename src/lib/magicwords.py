"""
Magic words: {{PAGENAME}}, {{CURRENTYEAR}}, {{lc:...}}, {{formatnum:...}}

MagicWordExpander substitutes page-context words derived from the title,
date words derived from the reference date, and the core string functions.
Word names are case-insensitive and whitespace-tolerant ({{ pagename }}).
Anything it does not recognize is left verbatim for later stages.

Title parts are computed by splitting on '/':
    root = first segment, base = all but the last, sub = last segment

Example:
    >>> expander = MagicWordExpander("Main Page/Sub/Deep", reference_date=datetime(2024, 6, 15))
    >>> expander.expand("{{BASEPAGENAME}} / {{SUBPAGENAME}} / {{CURRENTYEAR}}")
    'Main Page/Sub / Deep / 2024'
"""

import re
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

from .dates import DAY_NAMES, MONTH_ABBREVS, MONTH_NAMES, integer_parse
from .log import LOG
from .scanner import NestedScanner, arguments_split
from .tables import LookupTables

NUMBER_PATTERN = re.compile(r"([+-]?)(\d+)(\.\d+)?")

# Widest result {{padleft:}} and {{#padleft:}} produce
MAX_PAD_LENGTH = 500


def wikiencode(text: str) -> str:
    """URL-encode a title the way ...E magic words do (spaces as '_')"""
    return quote(text.replace(" ", "_"), safe="/:_-.~")


def anchorencode(text: str) -> str:
    """
    Section-anchor encoding.

    Spaces become '_', characters outside word characters and '-.:'
    become '.XX' hex sequences of their UTF-8 bytes.

    Example:
        >>> anchorencode("hello world")
        'hello_world'
    """
    encoded: list[str] = []
    for char in text.strip().replace(" ", "_"):
        if char.isalnum() or char in "_-.:":
            encoded.append(char)
        else:
            encoded.extend(f".{byte:02X}" for byte in char.encode("utf-8"))
    return "".join(encoded)


def formatnum(number: str, mode: str = "") -> str:
    """
    Insert or strip thousands separators.

    Args:
        number: Numeric text
        mode: '' to insert separators, 'R' to strip them, 'NOSEP' to leave
              the number as is

    Example:
        >>> formatnum("1234.56")
        '1,234.56'
        >>> formatnum("1,234,567", "R")
        '1234567'
    """
    text = number.strip()
    mode = mode.strip().upper()
    if mode == "R":
        return text.replace(",", "")
    if mode == "NOSEP":
        return text
    match = NUMBER_PATTERN.fullmatch(text)
    if match is None:
        return text
    sign, digits, fraction = match.group(1), match.group(2), match.group(3) or ""
    # Keep leading zeros the reader wrote
    if digits.startswith("0") and len(digits) > 1:
        return f"{sign}{digits}{fraction}"
    head = len(digits) % 3 or 3
    groups = [digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)]
    grouped = ",".join(groups)
    return f"{sign}{grouped}{fraction}"


class MagicWordExpander:
    """
    Expander for page-context words, date words and string functions.

    One instance serves one page; it carries the title, namespace and
    reference date the words are computed from.
    """

    def __init__(
        self,
        title: str,
        namespace: str = "",
        reference_date: Optional[datetime] = None,
        scanner: Optional[NestedScanner] = None,
        tables: Optional[LookupTables] = None,
    ) -> None:
        """
        Args:
            title: Page title without namespace prefix
            namespace: Page namespace ('' for articles)
            reference_date: Moment used by date words (defaults to now)
            scanner: Nested scanner (a default one is built if omitted)
            tables: Lookup tables, used for namespace numbers
        """
        self.title = title.replace("_", " ").strip()
        self.namespace = namespace.replace("_", " ").strip()
        self.reference_date = reference_date or datetime.now()
        self.scanner = scanner or NestedScanner()
        self.tables = tables
        self.variables: Dict[str, Callable[[str], str]] = {}
        self.pageWords_register()
        self.dateWords_register()
        self.functions: Dict[str, Callable[[List[str]], str]] = {
            "lc": lambda args: self.arg_get(args, 0).lower(),
            "uc": lambda args: self.arg_get(args, 0).upper(),
            "lcfirst": self.lcfirst_apply,
            "ucfirst": self.ucfirst_apply,
            "urlencode": self.urlencode_apply,
            "anchorencode": lambda args: anchorencode(self.arg_get(args, 0)),
            "padleft": lambda args: self.pad_apply(args, left=True),
            "padright": lambda args: self.pad_apply(args, left=False),
            "formatnum": lambda args: formatnum(self.arg_get(args, 0), self.arg_get(args, 1)),
            "plural": self.plural_apply,
            "gender": lambda args: self.arg_get(args, 1),
            "grammar": lambda args: self.arg_get(args, 1),
            "int": lambda args: self.arg_get(args, 0),
        }

    @staticmethod
    def arg_get(args: List[str], index: int, default: str = "") -> str:
        return args[index].strip() if index < len(args) else default

    def pageWords_register(self) -> None:
        """Register words derived from the page title"""

        def full_title(title: str) -> str:
            return f"{self.namespace}:{title}" if self.namespace else title

        def talk_space() -> str:
            if not self.namespace:
                return "Talk"
            if self.namespace.lower().endswith("talk"):
                return self.namespace
            return f"{self.namespace} talk"

        def subject_space() -> str:
            if self.namespace.lower() == "talk":
                return ""
            if self.namespace.lower().endswith(" talk"):
                return self.namespace[: -len(" talk")]
            return self.namespace

        def subject_page(title: str) -> str:
            space = subject_space()
            return f"{space}:{title}" if space else title

        words: Dict[str, Callable[[str], str]] = {
            "PAGENAME": lambda title: title,
            "FULLPAGENAME": full_title,
            "BASEPAGENAME": lambda title: title.rsplit("/", 1)[0],
            "ROOTPAGENAME": lambda title: title.split("/", 1)[0],
            "SUBPAGENAME": lambda title: title.rsplit("/", 1)[-1],
            "TALKPAGENAME": lambda title: f"{talk_space()}:{title}",
            "SUBJECTPAGENAME": subject_page,
            "ARTICLEPAGENAME": subject_page,
            "NAMESPACE": lambda title: self.namespace,
            "TALKSPACE": lambda title: talk_space(),
            "SUBJECTSPACE": lambda title: subject_space(),
            "ARTICLESPACE": lambda title: subject_space(),
        }
        for name, word in words.items():
            self.variables[name] = word
            self.variables[name + "E"] = lambda title, word=word: wikiencode(word(title))

        self.variables["NAMESPACENUMBER"] = lambda title: str(
            self.tables.namespaceNumber_get(self.namespace) if self.tables else 0
        )
        self.variables["SITENAME"] = lambda title: "Wikipedia"

    def dateWords_register(self) -> None:
        """Register CURRENT* and LOCAL* words computed from the reference date"""
        moment = self.reference_date
        values: Dict[str, str] = {
            "YEAR": str(moment.year),
            "MONTH": f"{moment.month:02d}",
            "MONTH1": str(moment.month),
            "MONTH2": f"{moment.month:02d}",
            "MONTHNAME": MONTH_NAMES[moment.month - 1],
            "MONTHNAMEGEN": MONTH_NAMES[moment.month - 1],
            "MONTHABBREV": MONTH_ABBREVS[moment.month - 1],
            "DAY": str(moment.day),
            "DAY2": f"{moment.day:02d}",
            "DOW": str(moment.isoweekday() % 7),
            "DAYNAME": DAY_NAMES[moment.weekday()],
            "TIME": moment.strftime("%H:%M"),
            "HOUR": f"{moment.hour:02d}",
            "WEEK": str(moment.isocalendar()[1]),
            "TIMESTAMP": moment.strftime("%Y%m%d%H%M%S"),
        }
        for suffix, value in values.items():
            for prefix in ("CURRENT", "LOCAL"):
                self.variables[prefix + suffix] = lambda title, value=value: value

    def expand(self, text: str) -> str:
        """
        Substitute every recognized magic word in text.

        Forms are resolved innermost-first, so {{uc:{{PAGENAME}}}} works.
        """
        if "{{" not in text:
            return text
        return self.scanner.scan(text, "{{", "}}", self.word_expand)

    def word_expand(self, content: str) -> str:
        """Expand one {{...}} form, or return it verbatim"""
        stripped = content.strip()
        name, separator, argument = stripped.partition(":")
        key = name.strip().upper()

        if not separator:
            word = self.variables.get(key)
            if word is not None:
                return word(self.title)
            return "{{" + content + "}}"

        function = self.functions.get(name.strip().lower())
        if function is not None:
            return function(arguments_split(argument))

        # Page words accept another title: {{PAGENAME:Foo/Bar}}
        word = self.variables.get(key)
        if word is not None and not key.startswith(("CURRENT", "LOCAL")):
            return word(argument.strip().replace("_", " "))

        LOG(f"Leaving unrecognized magic word {name.strip()!r}", level=3)
        return "{{" + content + "}}"

    # String functions

    def lcfirst_apply(self, args: List[str]) -> str:
        text = self.arg_get(args, 0)
        return text[:1].lower() + text[1:]

    def ucfirst_apply(self, args: List[str]) -> str:
        text = self.arg_get(args, 0)
        return text[:1].upper() + text[1:]

    def urlencode_apply(self, args: List[str]) -> str:
        """
        {{urlencode:text|style}}

        QUERY (default) encodes spaces as '+', WIKI as '_', PATH as '%20'.
        """
        text = self.arg_get(args, 0)
        style = self.arg_get(args, 1).upper()
        if style == "WIKI":
            return quote(text.replace(" ", "_"), safe="/:_-.~")
        if style == "PATH":
            return quote(text, safe="-_.~")
        return quote(text, safe="-_.~ ").replace(" ", "+")

    def pad_apply(self, args: List[str], left: bool) -> str:
        """{{padleft:text|width|pad}} - pad string defaults to '0', width caps at MAX_PAD_LENGTH"""
        text = self.arg_get(args, 0)
        width = integer_parse(self.arg_get(args, 1) or "0")
        if width is None:
            return text
        width = min(width, MAX_PAD_LENGTH)
        pad = args[2] if len(args) > 2 and args[2] != "" else "0"
        missing = width - len(text)
        if missing <= 0:
            return text
        padding = (pad * (missing // len(pad) + 1))[:missing]
        return padding + text if left else text + padding

    def plural_apply(self, args: List[str]) -> str:
        """{{plural:n|singular|plural}} - singular only for exactly 1"""
        try:
            count = float(self.arg_get(args, 0).replace(",", ""))
        except ValueError:
            count = 0
        if count == 1:
            return self.arg_get(args, 1)
        return self.arg_get(args, 2, self.arg_get(args, 1))
