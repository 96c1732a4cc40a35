"""
Citation templates rendered as plain text

{{cite book}}, {{cite web}}, {{cite news}}, {{cite journal}} and friends,
plus {{citation}}, collapse to a short reference line:

    Author. Title. Container. Publisher, Date.

Missing parts are skipped. When citation extraction is off the expander
drops these templates instead of calling render().
"""

from typing import List

from ..models.templates import TemplateInvocation

# Named arguments that hold the work a citation appears in
CONTAINER_KEYS: tuple[str, ...] = (
    "journal", "newspaper", "magazine", "periodical", "website", "work", "encyclopedia",
)


def authors_collect(invocation: TemplateInvocation) -> List[str]:
    """
    Author names in citation order.

    Reads author/authorN and last/first, lastN/firstN pairs; stops at the
    first missing number.
    """
    authors: List[str] = []
    for suffix in [""] + [str(number) for number in range(1, 10)]:
        author = invocation.named(f"author{suffix}")
        last = invocation.named(f"last{suffix}") or invocation.named(f"surname{suffix}")
        first = invocation.named(f"first{suffix}") or invocation.named(f"given{suffix}")
        if author:
            authors.append(author)
        elif last:
            authors.append(f"{last}, {first}" if first else last)
        elif suffix not in ("", "1"):
            break
    return authors


def citation_render(invocation: TemplateInvocation) -> str:
    """
    Render one citation template.

    Example:
        {{cite book|last=Smith|first=John|title=The Book|publisher=Pub|year=2020}}
        -> 'Smith, John. The Book. Pub, 2020.'
    """
    parts: List[str] = []

    authors = authors_collect(invocation)
    if authors:
        parts.append("; ".join(authors))

    title = invocation.named("title") or invocation.named("chapter")
    if title:
        parts.append(title)

    for key in CONTAINER_KEYS:
        container = invocation.named(key)
        if container:
            parts.append(container)
            break

    published = invocation.named("date") or invocation.named("year")
    publisher = invocation.named("publisher")
    if publisher and published:
        parts.append(f"{publisher}, {published}")
    elif publisher or published:
        parts.append(publisher or published)

    if not parts:
        return ""
    return ". ".join(part.rstrip(".") for part in parts) + "."
