"""CSV dialect detection and row tokenizing.

Bank exports come in two common dialects: comma separated (US/UK banks) and
semicolon separated (French and other continental banks, where the comma is
the decimal separator). Both use double quotes around fields that contain
the separator.
"""

from __future__ import annotations

import csv
import logging

logger = logging.getLogger(__name__)

COMMA = ","
SEMICOLON = ";"
QUOTE = '"'


def detect_separator(header_line: str) -> str:
    """Pick the field separator from the header line.

    Counts ';' and ',' outside quoted spans. Semicolon wins only when it is
    strictly more frequent; ties and headers with neither fall back to comma.
    """
    semicolons = 0
    commas = 0
    in_quotes = False
    for ch in header_line:
        if ch == QUOTE:
            in_quotes = not in_quotes
        elif in_quotes:
            continue
        elif ch == SEMICOLON:
            semicolons += 1
        elif ch == COMMA:
            commas += 1

    separator = SEMICOLON if semicolons > commas else COMMA
    logger.debug(
        "Separator detection: %d semicolons, %d commas -> %r",
        semicolons, commas, separator,
    )
    return separator


def tokenize_row(line: str, separator: str = COMMA) -> list[str]:
    """Split one record into trimmed field values.

    Quoted fields may contain the separator or a newline; the quotes are
    removed and a doubled quote inside a quoted field is a literal quote.
    Malformed quoting never raises: the csv reader is lenient, and if it
    still rejects the line (e.g. NUL bytes) a plain split is returned.
    """
    line = line.rstrip("\r\n")
    try:
        reader = csv.reader(
            [line], delimiter=separator, quotechar=QUOTE, skipinitialspace=True,
        )
        fields = next(reader, [])
    except csv.Error as e:
        logger.debug("csv reader rejected line (%s), using plain split", e)
        fields = [f.replace(QUOTE, "") for f in line.split(separator)]

    if not fields:
        # csv yields [] for an empty line; keep the separators+1 guarantee
        fields = [""]
    return [f.strip() for f in fields]


def split_records(text: str) -> list[str]:
    """Split a document into raw records, keeping quoted newlines inside.

    An unterminated quote would otherwise swallow the rest of the file, so
    in that case the tail is split on plain line breaks.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    records: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in text:
        if ch == QUOTE:
            in_quotes = not in_quotes
        if ch == "\n" and not in_quotes:
            records.append("".join(current))
            current = []
            continue
        current.append(ch)

    tail = "".join(current)
    if in_quotes:
        records.extend(tail.split("\n"))
    elif tail:
        records.append(tail)
    return records
