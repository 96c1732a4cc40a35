"""
Unit conversion for {{convert}} / {{cvt}}

Units are grouped by dimension and stored as factors to one base unit per
dimension, so any two units of the same dimension convert both ways.
Temperature is affine and converts through Celsius.

Output forms:
    {{convert|100|km|mi}}          -> '100 km (62.1 mi)'
    {{convert|10|to|20|km}}        -> '10 to 20 km (6.2 to 12.4 mi)'
    {{convert|100|km|mi|disp=or}}  -> '100 km or 62.1 mi'
    {{convert|100|km|mi|disp=flip}}-> '62.1 mi (100 km)'
    {{convert|100|km|mi|disp=out}} -> '62.1 mi'

Unknown units render as 'value unit' with no conversion.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models.templates import TemplateInvocation


@dataclass(frozen=True)
class Unit:
    """
    Attributes:
        dimension: 'length', 'mass', 'temperature', 'area', 'speed', 'volume'
        factor: Multiplier to the dimension's base unit (unused for temperature)
        display: Symbol shown in output
        default_target: Unit converted to when the invocation names none
    """
    dimension: str
    factor: float
    display: str
    default_target: str


UNITS: Dict[str, Unit] = {
    # length, base metre
    "m": Unit("length", 1.0, "m", "ft"),
    "km": Unit("length", 1000.0, "km", "mi"),
    "cm": Unit("length", 0.01, "cm", "in"),
    "mm": Unit("length", 0.001, "mm", "in"),
    "mi": Unit("length", 1609.344, "mi", "km"),
    "ft": Unit("length", 0.3048, "ft", "m"),
    "in": Unit("length", 0.0254, "in", "cm"),
    "yd": Unit("length", 0.9144, "yd", "m"),
    "nmi": Unit("length", 1852.0, "nmi", "km"),
    # mass, base kilogram
    "kg": Unit("mass", 1.0, "kg", "lb"),
    "g": Unit("mass", 0.001, "g", "oz"),
    "t": Unit("mass", 1000.0, "t", "LT"),
    "lb": Unit("mass", 0.45359237, "lb", "kg"),
    "oz": Unit("mass", 0.028349523125, "oz", "g"),
    "st": Unit("mass", 6.35029318, "st", "kg"),
    "LT": Unit("mass", 1016.0469088, "long tons", "t"),
    "ST": Unit("mass", 907.18474, "short tons", "t"),
    # temperature, converted through Celsius
    "C": Unit("temperature", 1.0, "°C", "F"),
    "F": Unit("temperature", 1.0, "°F", "C"),
    "K": Unit("temperature", 1.0, "K", "C"),
    # area, base square metre
    "m2": Unit("area", 1.0, "m²", "sqft"),
    "km2": Unit("area", 1e6, "km²", "sqmi"),
    "ha": Unit("area", 1e4, "ha", "acre"),
    "acre": Unit("area", 4046.8564224, "acres", "ha"),
    "sqmi": Unit("area", 2589988.110336, "sq mi", "km2"),
    "sqft": Unit("area", 0.09290304, "sq ft", "m2"),
    # speed, base metre per second
    "m/s": Unit("speed", 1.0, "m/s", "ft/s"),
    "ft/s": Unit("speed", 0.3048, "ft/s", "m/s"),
    "km/h": Unit("speed", 1 / 3.6, "km/h", "mph"),
    "mph": Unit("speed", 0.44704, "mph", "km/h"),
    "kn": Unit("speed", 1852 / 3600, "kn", "km/h"),
    # volume, base litre
    "l": Unit("volume", 1.0, "L", "USgal"),
    "ml": Unit("volume", 0.001, "mL", "USoz"),
    "m3": Unit("volume", 1000.0, "m³", "cuft"),
    "cuft": Unit("volume", 28.316846592, "cu ft", "m3"),
    "USgal": Unit("volume", 3.785411784, "US gal", "l"),
    "impgal": Unit("volume", 4.54609, "imp gal", "l"),
    "USoz": Unit("volume", 0.0295735295625, "US fl oz", "ml"),
}

UNIT_ALIASES: Dict[str, str] = {
    "metre": "m", "meter": "m", "metres": "m", "meters": "m",
    "kilometre": "km", "kilometer": "km", "kilometres": "km", "kilometers": "km",
    "mile": "mi", "miles": "mi",
    "foot": "ft", "feet": "ft",
    "inch": "in", "inches": "in",
    "yard": "yd", "yards": "yd",
    "kilogram": "kg", "kilograms": "kg",
    "gram": "g", "grams": "g",
    "tonne": "t", "tonnes": "t",
    "lbs": "lb", "pound": "lb", "pounds": "lb",
    "ounce": "oz", "ounces": "oz",
    "°c": "C", "c": "C", "degc": "C",
    "°f": "F", "f": "F", "degf": "F",
    "k": "K",
    "m²": "m2", "sqm": "m2",
    "km²": "km2", "sqkm": "km2",
    "acres": "acre", "hectare": "ha", "hectares": "ha",
    "sq mi": "sqmi", "mi2": "sqmi", "mi²": "sqmi",
    "sq ft": "sqft", "ft2": "sqft", "ft²": "sqft",
    "kph": "km/h", "kmh": "km/h", "km/hr": "km/h",
    "knot": "kn", "knots": "kn", "kt": "kn",
    "l": "l", "litre": "l", "liter": "l", "litres": "l", "liters": "l",
    "ml": "ml", "millilitre": "ml",
    "m³": "m3", "cuft": "cuft", "ft3": "cuft",
    "gal": "USgal", "usgal": "USgal", "impgal": "impgal",
    "floz": "USoz", "usoz": "USoz",
}

RANGE_WORDS: tuple[str, ...] = ("to", "-", "–", "and", "or", "by", "x", "×", "+")


def unit_resolve(name: str) -> Optional[str]:
    """Canonical unit key for a unit as written, or None if unknown"""
    text = name.strip()
    if text in UNITS:
        return text
    lowered = text.lower()
    if lowered in UNIT_ALIASES:
        return UNIT_ALIASES[lowered]
    if lowered in UNITS:
        return lowered
    return None


def number_parse(text: str) -> Optional[float]:
    cleaned = text.strip().replace(",", "").replace("−", "-")
    try:
        return float(cleaned)
    except ValueError:
        return None


def quantity_format(value: float) -> str:
    """
    Round a converted value for display.

    One decimal place, two below 1, trailing '.0' dropped.

    Example:
        >>> quantity_format(62.137)
        '62.1'
        >>> quantity_format(32.0)
        '32'
    """
    places = 2 if abs(value) < 1 else 1
    rendered = f"{round(value, places):.{places}f}".rstrip("0").rstrip(".")
    return "0" if rendered in ("-0", "") else rendered


def temperature_convert(value: float, source: str, target: str) -> float:
    if source == "F":
        celsius = (value - 32) * 5 / 9
    elif source == "K":
        celsius = value - 273.15
    else:
        celsius = value
    if target == "F":
        return celsius * 9 / 5 + 32
    if target == "K":
        return celsius + 273.15
    return celsius


def quantity_convert(value: float, source: str, target: str) -> Optional[float]:
    """Convert between two canonical units; None across dimensions"""
    source_unit, target_unit = UNITS[source], UNITS[target]
    if source_unit.dimension != target_unit.dimension:
        return None
    if source_unit.dimension == "temperature":
        return temperature_convert(value, source, target)
    return value * source_unit.factor / target_unit.factor


def convert_render(invocation: TemplateInvocation) -> str:
    """
    Expand a {{convert}} invocation.

    Positional layout: value | [range word | value ...] | unit | [target]
    """
    args = list(invocation.positional_args)
    if not args:
        return ""

    values: List[str] = [args[0]]
    joiners: List[str] = []
    index = 1
    while index + 1 < len(args) and args[index].strip() in RANGE_WORDS and number_parse(args[index + 1]) is not None:
        joiners.append(args[index].strip())
        values.append(args[index + 1])
        index += 2

    source_text = args[index] if index < len(args) else ""
    target_text = args[index + 1] if index + 1 < len(args) else ""

    source = unit_resolve(source_text)
    numbers = [number_parse(value) for value in values]
    if source is None or any(number is None for number in numbers):
        return f"{range_join(values, joiners)} {source_text}".strip()

    target = unit_resolve(target_text) if target_text else UNITS[source].default_target
    if target is None:
        return f"{range_join(values, joiners)} {UNITS[source].display}"

    converted: List[str] = []
    for number in numbers:
        result = quantity_convert(number, source, target)
        if result is None:
            return f"{range_join(values, joiners)} {UNITS[source].display}"
        converted.append(quantity_format(result))

    original = f"{range_join(values, joiners)} {UNITS[source].display}"
    output = f"{range_join(converted, joiners)} {UNITS[target].display}"

    display = (invocation.named("disp") or "").lower()
    if display == "or":
        return f"{original} or {output}"
    if display == "flip":
        return f"{output} ({original})"
    if display in ("out", "output only", "number"):
        return output
    return f"{original} ({output})"


def range_join(values: List[str], joiners: List[str]) -> str:
    """'10', ['to'], '20' -> '10 to 20'; hyphen ranges render with an en dash"""
    parts: List[str] = [values[0].strip()]
    for joiner, value in zip(joiners, values[1:]):
        if joiner in ("-", "–"):
            parts.append(f"–{value.strip()}")
        else:
            parts.append(f" {joiner} {value.strip()}")
    return "".join(parts)

