"""Row classification: tokenized CSV row + column mapping -> candidate.

Steps for one row:
1. Description (blank is allowed) and optional category
2. Amount: single signed column, or a debit/credit pair
3. Date, optionally restricted to the mapping's date format
4. Exact duplicate lookup against the transaction store
5. Otherwise VALID

Bad data never raises: it becomes a PARSE_ERROR candidate so the rest of
the batch keeps going. A row rejected for its date keeps the parsed amount
so a manual date correction can complete it. Errors from the duplicate
lookup do propagate.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal

from ledger_import.parsers.amount import parse_amount
from ledger_import.parsers.dates import DateParseError, parse_date

from .models import (
    DUPLICATE,
    EXPENSE,
    INCOME,
    PARSE_ERROR,
    VALID,
    ColumnMapping,
    TransactionCandidate,
)

FindDuplicate = Callable[[str, date, Decimal, str], "str | None"]


class _RowRejected(Exception):
    """Internal signal: the row is a PARSE_ERROR for the given field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def resolve_amount(row: list[str], mapping: ColumnMapping) -> tuple[Decimal, str]:
    """Return (signed amount, transaction type) for a row.

    Single column: the sign decides the type. Debit/credit columns: a
    populated debit is an expense, a populated credit is income; a cell
    that parses to zero counts as empty.
    """
    if not mapping.uses_debit_credit:
        raw = _cell(row, mapping.amount_column)
        if not raw:
            raise _RowRejected("amount", "No amount")
        amount = parse_amount(raw)
        if amount is None:
            raise _RowRejected("amount", f"Invalid amount '{raw}'")
        return amount, (EXPENSE if amount < 0 else INCOME)

    debit = _side(row, mapping.debit_column, "debit")
    credit = _side(row, mapping.credit_column, "credit")
    if debit is not None and credit is not None:
        raise _RowRejected(
            "amount", "Both debit and credit are populated; manual validation required"
        )
    if debit is not None:
        return -abs(debit), EXPENSE
    if credit is not None:
        return abs(credit), INCOME
    raise _RowRejected("amount", "No amount")


def _side(row: list[str], index: int | None, name: str) -> Decimal | None:
    raw = _cell(row, index)
    if not raw:
        return None
    amount = parse_amount(raw)
    if amount is None:
        raise _RowRejected(name, f"Invalid {name} amount '{raw}'")
    if amount == 0:
        return None
    return amount


def resolve_date(row: list[str], mapping: ColumnMapping,
                 formats: tuple[str, ...] | None = None) -> date:
    raw = _cell(row, mapping.date_column)
    if not raw:
        raise _RowRejected("date", "No date")
    if mapping.date_format:
        formats = (mapping.date_format,)
    try:
        return parse_date(raw, formats)
    except DateParseError as e:
        raise _RowRejected("date", str(e)) from e


def classify_row(
    row: list[str],
    row_index: int,
    mapping: ColumnMapping,
    account_id: str,
    find_duplicate: FindDuplicate,
    date_formats: tuple[str, ...] | None = None,
) -> TransactionCandidate:
    """Classify one data row as VALID, PARSE_ERROR or DUPLICATE."""
    description = _cell(row, mapping.description_column)
    category = _cell(row, mapping.category_column) or None
    raw = tuple(row)
    amount = txn_type = None

    try:
        amount, txn_type = resolve_amount(row, mapping)
        txn_date = resolve_date(row, mapping, date_formats)
    except _RowRejected as e:
        return TransactionCandidate(
            row_index=row_index,
            classification=PARSE_ERROR,
            raw=raw,
            amount=amount,
            description=description,
            category=category,
            txn_type=txn_type,
            error_field=e.field,
            error=e.message,
        )

    existing_id = find_duplicate(account_id, txn_date, amount, description)
    return TransactionCandidate(
        row_index=row_index,
        classification=DUPLICATE if existing_id else VALID,
        raw=raw,
        date=txn_date,
        amount=amount,
        description=description,
        category=category,
        txn_type=txn_type,
        duplicate_of=existing_id,
    )
