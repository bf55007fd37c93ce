"""Exact-content duplicate detection for wizard imports.

A row is a duplicate when an existing transaction on the same account has
the same date, signed amount and description. Matching goes through the
import hash, SHA256(account|date|amount|description), with the amount in
canonical form so "10.5" and "10.50" match. There is no fuzzy tier:
near-matches are a categorization concern, not an import one.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from ledger_import.database.repository import Repository

logger = logging.getLogger(__name__)


class DuplicateDetector:
    """Look up exact duplicates in the transaction store.

    Store errors are not caught or retried; they reach the caller.
    """

    def __init__(self, repo: Repository):
        self.repo = repo

    def find_duplicate(
        self, account_id: str, txn_date: date, amount: Decimal, description: str
    ) -> str | None:
        """Return the id of the matching existing transaction, or None."""
        existing_id = self.repo.find_duplicate_transaction(
            account_id, txn_date, amount, description
        )
        if existing_id is not None:
            logger.debug(
                "Duplicate of %s: %s %s %s", existing_id, txn_date, amount, description
            )
        return existing_id
