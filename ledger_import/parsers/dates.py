"""Transaction date parsing across day-first, month-first and ISO formats."""

from __future__ import annotations

from datetime import date, datetime

# Order matters only for error messages; every format is tried so that
# ambiguous strings can be detected.
DEFAULT_DATE_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%m-%d-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d/%m/%y",
    "%m/%d/%y",
)


class DateParseError(ValueError):
    """Raised when a date string matches no format, or several that disagree."""

    def __init__(self, value: str, ambiguous: bool = False,
                 candidates: tuple[date, ...] = ()):
        self.value = value
        self.ambiguous = ambiguous
        self.candidates = candidates
        if ambiguous:
            readings = ", ".join(d.isoformat() for d in candidates)
            message = f"Ambiguous date '{value}' (could be {readings})"
        else:
            message = f"Unrecognized date '{value}'"
        super().__init__(message)


def parse_date(
    value: str | None, formats: tuple[str, ...] | list[str] | None = None
) -> date:
    """Parse a date field into a calendar date.

    A time part after the first space ("15/03/2024 14:02") is ignored. All
    formats are tried; when several succeed with different results (day and
    month both <= 12) the string is ambiguous and DateParseError is raised
    with ambiguous=True rather than guessing. Pass a single format to force
    one reading.
    """
    text = (value or "").strip()
    if " " in text:
        text = text.split(" ", 1)[0]
    if not text:
        raise DateParseError(value or "")

    results: list[date] = []
    for fmt in formats or DEFAULT_DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        if parsed not in results:
            results.append(parsed)

    if not results:
        raise DateParseError(text)
    if len(results) > 1:
        raise DateParseError(text, ambiguous=True, candidates=tuple(results))
    return results[0]
