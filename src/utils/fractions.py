"""Quantity helpers: coerce model-written quantities to numbers and format
numbers back into kitchen-friendly fractions for display."""

import math
import re
from typing import Any


MIXED_NUMBER = re.compile(r"^\s*(\d+)\s+(\d+)\s*/\s*(\d+)\s*$")
LEADING_FLOAT = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")

DISPLAY_FRACTIONS = {
    0.25: "¼",
    0.5: "½",
    0.75: "¾",
    0.33: "⅓",
    0.67: "⅔",
    0.2: "⅕",
    0.4: "⅖",
    0.6: "⅗",
    0.8: "⅘",
    0.17: "⅙",
    0.83: "⅚",
    0.125: "⅛",
    0.375: "⅜",
    0.625: "⅝",
    0.875: "⅞",
}


def _leading_float(text: str) -> float:
    """Float value of the numeric prefix of `text`, NaN when there is none."""
    match = LEADING_FLOAT.match(text)
    if not match:
        return math.nan
    return float(match.group(0))


def parse_quantity(value: Any) -> Any:
    """Coerce a quantity to a number.

    Numbers pass through unchanged (so the coercion is idempotent). Strings
    are read as a mixed number ("1 1/2"), a fraction ("1/2") or a float;
    anything unreadable becomes 0. Other values are returned as-is and left
    for schema validation to reject.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return value

    mixed = MIXED_NUMBER.match(value)
    if mixed:
        whole, numerator, denominator = (int(g) for g in mixed.groups())
        if denominator == 0:
            return 0
        return whole + numerator / denominator

    if "/" in value:
        numerator_text, _, denominator_text = value.partition("/")
        numerator = _leading_float(numerator_text)
        denominator = _leading_float(denominator_text)
        if math.isnan(numerator) or math.isnan(denominator) or denominator == 0:
            return 0
        return numerator / denominator

    number = _leading_float(value)
    if math.isnan(number) or math.isinf(number):
        return 0
    return number


def decimal_to_fraction(value: float) -> str:
    """Render a quantity for display, e.g. 1.5 -> "1 ½", 0.3 -> "0.3".

    Whole numbers print without decimals; parts close to a common fraction
    use the vulgar-fraction glyph; everything else keeps two decimals with
    trailing zeros trimmed.
    """
    if float(value).is_integer():
        return str(int(value))

    whole = math.floor(value)
    part = round(value - whole, 3)

    for decimal, glyph in DISPLAY_FRACTIONS.items():
        if abs(part - decimal) < 0.01:
            return f"{whole} {glyph}" if whole > 0 else glyph

    text = f"{value:.2f}"
    if text.endswith(".00"):
        return text[:-3]
    if text.endswith("0"):
        return text[:-1]
    return text
