"""
Date helpers shared by magic words, #time and the date templates.

Everything here is pure: dates come in as arguments (the reference date
of the dump), never from the clock.
"""

import re
from datetime import date, datetime
from typing import Optional

MONTH_NAMES: list[str] = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
MONTH_ABBREVS: list[str] = [name[:3] for name in MONTH_NAMES]
DAY_NAMES: list[str] = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %Y",
    "%Y-%m",
)


# Longest digit run read at face value; longer runs saturate
MAX_INTEGER_DIGITS = 18


def digits_int(text: str) -> int:
    """
    int() of a signed digit string that never trips the interpreter's
    conversion limit: runs longer than MAX_INTEGER_DIGITS saturate to
    the largest value of that width.

    Example:
        >>> digits_int("-007")
        -7
    """
    sign = "-" if text.startswith("-") else ""
    digits = text.lstrip("+-").lstrip("0") or "0"
    if len(digits) > MAX_INTEGER_DIGITS:
        digits = "9" * MAX_INTEGER_DIGITS
    return int(sign + digits)


def integer_parse(text: Optional[str]) -> Optional[int]:
    """
    Lenient integer parsing for template arguments.

    Accepts surrounding whitespace, a sign, leading zeros and thousands
    separators. Returns None for anything else.

    Example:
        >>> integer_parse(" 05 ")
        5
        >>> integer_parse("May") is None
        True
    """
    if text is None:
        return None
    cleaned = text.strip().replace(",", "").replace("−", "-")
    if not re.fullmatch(r"[+-]?\d+", cleaned):
        return None
    return digits_int(cleaned)


def month_parse(text: Optional[str]) -> Optional[int]:
    """Month number from '5', '05', 'May' or 'may'; None if not a month"""
    number = integer_parse(text)
    if number is not None:
        return number if 1 <= number <= 12 else None
    if not text:
        return None
    key = text.strip().lower()
    for index, name in enumerate(MONTH_NAMES):
        if key in (name.lower(), name[:3].lower()):
            return index + 1
    return None


def date_safe(year: int, month: int = 1, day: int = 1) -> Optional[date]:
    """A date, or None for impossible combinations (month 13, Feb 30, ...)"""
    try:
        return date(year, month, day)
    except (ValueError, OverflowError):
        return None


def anniversary_get(birth: date, year: int) -> Optional[date]:
    """
    Anniversary of a date in another year (Feb 29 falls back to Feb 28).

    None when the year is outside the calendar's range.
    """
    return date_safe(year, birth.month, birth.day) or date_safe(year, birth.month, 28)


def age_compute(birth: date, reference: date) -> int:
    """
    Completed years between two dates.

    The age only increments once the anniversary has been reached.

    Example:
        >>> age_compute(date(1990, 5, 15), date(2024, 6, 15))
        34
        >>> age_compute(date(1990, 7, 1), date(2024, 6, 15))
        33
    """
    years = reference.year - birth.year
    anniversary = anniversary_get(birth, reference.year)
    if anniversary is not None and reference < anniversary:
        years -= 1
    return years


def yearsAndDays_compute(start: date, end: date) -> Optional[tuple[int, int]]:
    """
    Completed years plus the remaining days since the last anniversary.

    None when that anniversary falls outside the calendar's range, as it
    can for an end date before the start date.
    """
    years = age_compute(start, end)
    last = anniversary_get(start, start.year + years)
    if last is None:
        return None
    return years, (end - last).days


def date_format(
    year: int, month: Optional[int] = None, day: Optional[int] = None, day_first: bool = False
) -> str:
    """
    Human-readable date, leaving out missing parts.

    Example:
        >>> date_format(1990, 5, 15)
        'May 15, 1990'
        >>> date_format(1990, 5, 15, day_first=True)
        '15 May 1990'
        >>> date_format(2024, 6)
        'June 2024'
    """
    if month is None or not 1 <= month <= 12:
        return str(year)
    month_name = MONTH_NAMES[month - 1]
    if day is None:
        return f"{month_name} {year}"
    if day_first:
        return f"{day} {month_name} {year}"
    return f"{month_name} {day}, {year}"


def date_parse(text: str) -> Optional[datetime]:
    """
    Parse the date forms accepted by #time.

    Tries ISO-like and English long forms, then a bare year.
    """
    cleaned = " ".join(text.strip().split())
    if not cleaned:
        return None
    for pattern in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, pattern)
        except ValueError:
            continue
    if re.fullmatch(r"\d{4}", cleaned):
        day = date_safe(int(cleaned))
        return datetime(day.year, 1, 1) if day else None
    return None


def ordinal_suffix(day: int) -> str:
    """English ordinal suffix: 1 -> 'st', 12 -> 'th', 22 -> 'nd'"""
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def time_format(moment: datetime, format_string: str) -> str:
    """
    Render a moment with MediaWiki #time format codes.

    Supported codes:
        Y y  - year (4 / 2 digits)          L   - 1 if leap year
        F M  - month name / abbreviation    m n - month (padded / unpadded)
        t    - days in month                d j - day (padded / unpadded)
        S    - ordinal suffix of the day    z   - day of year (0-based)
        l D  - weekday name / abbreviation  N w - ISO weekday / 0=Sunday
        W    - ISO week number              H G - hour 24h (padded / unpadded)
        h g  - hour 12h (padded / unpadded) i s - minutes / seconds
        a A  - am/pm, AM/PM                 T   - timezone (UTC)
        U    - Unix timestamp

    A backslash escapes the next character and "double quoted" text is
    copied literally. Other characters pass through.

    Example:
        >>> time_format(datetime(2024, 6, 15), "jS F Y")
        '15th June 2024'
    """
    day_of_year = moment.timetuple().tm_yday
    hour12 = moment.hour % 12 or 12
    leap = (moment.year % 4 == 0 and moment.year % 100 != 0) or moment.year % 400 == 0
    month_days = [31, 29 if leap else 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
    codes = {
        "Y": f"{moment.year:04d}",
        "y": f"{moment.year % 100:02d}",
        "L": "1" if leap else "0",
        "F": MONTH_NAMES[moment.month - 1],
        "M": MONTH_ABBREVS[moment.month - 1],
        "m": f"{moment.month:02d}",
        "n": str(moment.month),
        "t": str(month_days[moment.month - 1]),
        "d": f"{moment.day:02d}",
        "j": str(moment.day),
        "S": ordinal_suffix(moment.day),
        "z": str(day_of_year - 1),
        "l": DAY_NAMES[moment.weekday()],
        "D": DAY_NAMES[moment.weekday()][:3],
        "N": str(moment.isoweekday()),
        "w": str(moment.isoweekday() % 7),
        "W": f"{moment.isocalendar()[1]:02d}",
        "H": f"{moment.hour:02d}",
        "G": str(moment.hour),
        "h": f"{hour12:02d}",
        "g": str(hour12),
        "i": f"{moment.minute:02d}",
        "s": f"{moment.second:02d}",
        "a": "am" if moment.hour < 12 else "pm",
        "A": "AM" if moment.hour < 12 else "PM",
        "T": "UTC",
        "U": str(int((moment.replace(tzinfo=None) - datetime(1970, 1, 1)).total_seconds())),
    }

    output: list[str] = []
    index = 0
    while index < len(format_string):
        char = format_string[index]
        if char == "\\" and index + 1 < len(format_string):
            output.append(format_string[index + 1])
            index += 2
            continue
        if char == '"':
            closing = format_string.find('"', index + 1)
            if closing != -1:
                output.append(format_string[index + 1 : closing])
                index = closing + 1
                continue
        output.append(codes.get(char, char))
        index += 1
    return "".join(output)
