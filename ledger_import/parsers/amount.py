"""Locale-ambiguous amount parsing.

Bank exports write amounts in either convention without saying which:
"1,234.56" (English) or "1 234,56" / "1.234,56" (French, German). The
parser resolves the decimal separator from the string itself:

- both '.' and ',' present: the right-most one is the decimal separator
- only ',' present: decimal when the value ends in ',' plus exactly two
  digits ("10,50"), otherwise a thousands separator ("1,234")
- several '.' and no ',': thousands separators ("1.234.567")

Known limitation: a comma-grouped value whose last group has two digits is
read as a decimal, and "10,5" is read as 105. Saved mappings rely on this
behavior, so it is kept as is.
"""

from __future__ import annotations

import re
import unicodedata
from decimal import Decimal, InvalidOperation

_NUMBER_RE = re.compile(r"[0-9]+(\.[0-9]+)?|\.[0-9]+")
_DECIMAL_COMMA_RE = re.compile(r",[0-9]{2}$")
_CURRENCY_CODE_RE = re.compile(r"([A-Z]{3})?(.*?)([A-Z]{3})?")
_GROUPING_MARKS = {"'", "’"}


def _strip_decorations(value: str) -> str:
    """Drop whitespace, currency symbols, ISO currency codes and apostrophes."""
    text = "".join(
        ch for ch in value
        if not ch.isspace()
        and unicodedata.category(ch) != "Sc"
        and ch not in _GROUPING_MARKS
    )
    match = _CURRENCY_CODE_RE.fullmatch(text.upper())
    if match and (match.group(1) or match.group(3)):
        text = match.group(2)
    return text


def _normalize_separators(text: str) -> str:
    """Return text with thousands separators removed and '.' as decimal point."""
    last_dot = text.rfind(".")
    last_comma = text.rfind(",")

    if last_dot >= 0 and last_comma >= 0:
        if last_comma > last_dot:
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    if last_comma >= 0:
        if _DECIMAL_COMMA_RE.search(text):
            head, _, tail = text.rpartition(",")
            return head.replace(",", "") + "." + tail
        return text.replace(",", "")

    if text.count(".") > 1:
        return text.replace(".", "")
    return text


def parse_amount(value: str | None) -> Decimal | None:
    """Parse a raw amount field into a signed Decimal.

    Returns None for empty or non-numeric input instead of raising, so a bad
    cell degrades one row rather than the whole import.

    >>> parse_amount("(45,67)")
    Decimal('-45.67')
    >>> parse_amount("$1,234.56")
    Decimal('1234.56')
    """
    if value is None:
        return None
    text = _strip_decorations(value)
    if not text:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    if text.startswith("-"):
        negative = True
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]
    if text.endswith("-"):
        negative = True
        text = text[:-1]

    text = _normalize_separators(text)
    if not _NUMBER_RE.fullmatch(text):
        return None

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return -amount if negative else amount


def format_amount(
    amount: Decimal,
    decimal_separator: str = ".",
    thousands_separator: str | None = None,
) -> str:
    """Render an amount in the given convention, readable by parse_amount.

    At least two fraction digits are always written so that a comma decimal
    separator is never mistaken for a thousands separator. The thousands
    separator defaults to the other of '.' and ','.
    """
    if thousands_separator is None:
        thousands_separator = "." if decimal_separator == "," else ","

    exponent = amount.as_tuple().exponent
    places = max(2, -exponent) if isinstance(exponent, int) and exponent < 0 else 2
    quantized = abs(amount).quantize(Decimal(1).scaleb(-places))
    text = f"{quantized:,.{places}f}"
    text = text.translate(str.maketrans({",": "\0", ".": decimal_separator}))
    text = text.replace("\0", thousands_separator)
    return f"-{text}" if amount < 0 else text
