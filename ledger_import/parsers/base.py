"""Shared helpers for parsed transaction data: canonical amounts and hashes."""

from __future__ import annotations

import hashlib
from datetime import date
from decimal import Decimal


def canonical_amount(amount: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros.

    Decimal("10.50") and Decimal("10.5") both become "10.5"; Decimal("1E+2")
    becomes "100". Used wherever amounts are compared as text.
    """
    text = format(amount.normalize(), "f")
    if text == "-0":
        return "0"
    return text


def compute_import_hash(
    account_id: str, txn_date: date | str, amount: Decimal, description: str
) -> str:
    """Exact-content dedup key: SHA256(account|date|amount|description)."""
    if isinstance(txn_date, date):
        txn_date = txn_date.isoformat()
    key = f"{account_id}|{txn_date}|{canonical_amount(amount)}|{description}"
    return hashlib.sha256(key.encode()).hexdigest()


def compute_file_hash(data: bytes) -> str:
    """SHA256 of an uploaded document's raw bytes."""
    return hashlib.sha256(data).hexdigest()
