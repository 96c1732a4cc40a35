"""
Character and entity reference decoding.

Named references come from the lookup tables (the HTML5 set with local
overrides such as &nbsp; -> space). Numeric references decode any code
point in U+0001..U+10FFFF except surrogates; anything else decodes to ''.
Unknown named references are left as written.
"""

import re
from typing import Dict, Optional

from ..config import appsettings
from .tables import LookupTables

ENTITY_PATTERN = re.compile(r"&(?:#([0-9]+)|#[xX]([0-9a-fA-F]+)|([A-Za-z][A-Za-z0-9]*));")


def codepoint_decode(number: int) -> str:
    """Character for a numeric reference, '' when the code point is not valid"""
    if number < 1 or number > 0x10FFFF:
        return ""
    if 0xD800 <= number <= 0xDFFF:
        return ""
    return chr(number)


class EntityDecoder:
    """Decoder for &name;, &#NNN; and &#xHHH; references"""

    def __init__(self, tables: Optional[LookupTables] = None) -> None:
        self.entities: Dict[str, str] = tables.entities if tables is not None else {}

    def reference_decode(self, match: re.Match) -> str:
        decimal, hexadecimal, name = match.groups()
        if decimal is not None:
            # Avoid int() on absurd digit runs
            return codepoint_decode(int(decimal)) if len(decimal) <= 8 else ""
        if hexadecimal is not None:
            return codepoint_decode(int(hexadecimal, 16)) if len(hexadecimal) <= 7 else ""
        if name in self.entities:
            return self.entities[name]
        return match.group(0)

    def decode_once(self, text: str) -> str:
        return ENTITY_PATTERN.sub(self.reference_decode, text)

    def decode(self, text: str) -> str:
        """
        Decode references repeatedly until the text stops changing.

        Every pass shortens the text, so the loop ends well before the
        nesting cap on real input.

        Example:
            >>> EntityDecoder(LookupTables.load()).decode("&amp;lt;b&#x26;gt;")
            '<b>'
        """
        result = text
        for _ in range(appsettings.max_nesting_iterations):
            if "&" not in result:
                break
            decoded = self.decode_once(result)
            if decoded == result:
                break
            result = decoded
        return result
