"""Commit approved candidates as transactions, row by row.

Finalize is not atomic across rows: a store failure on one row is counted
as a failed import and the rows already written stay committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from ledger_import.parsers.amount import parse_amount
from ledger_import.parsers.dates import DateParseError, parse_date

from .models import (
    EXPENSE,
    INCOME,
    ImportResult,
    ManualCorrection,
    TransactionCandidate,
    ValidationDecision,
)

logger = logging.getLogger(__name__)

CreateTransaction = Callable[..., str]


class _Unimportable(Exception):
    pass


def effective_rows(
    candidates: Sequence[TransactionCandidate], decision: ValidationDecision
) -> set[int]:
    """Row indices to import.

    No explicit approvals means every VALID row not rejected; otherwise the
    approved rows minus the rejected ones (which may include duplicates the
    user chose to keep).
    """
    rejected = set(decision.rejected_rows)
    if not decision.approved_rows:
        return {c.row_index for c in candidates if c.is_valid} - rejected

    known = {c.row_index for c in candidates}
    approved = set(decision.approved_rows) - rejected
    unknown = approved - known
    if unknown:
        logger.warning("Ignoring approval of unknown rows: %s", sorted(unknown))
    return approved & known


def resolve_candidate(
    candidate: TransactionCandidate, correction: ManualCorrection | None
) -> tuple[date, Decimal, str, str]:
    """Return (date, signed amount, type, description), applying corrections."""
    txn_date = candidate.date
    amount = candidate.amount
    txn_type = candidate.txn_type
    description = candidate.description

    if correction is not None:
        if correction.date is not None:
            try:
                txn_date = parse_date(correction.date)
            except DateParseError as e:
                raise _Unimportable(f"Invalid corrected date: {e}") from e
        if correction.amount is not None:
            amount = parse_amount(correction.amount)
            if amount is None:
                raise _Unimportable(f"Invalid corrected amount '{correction.amount}'")
            txn_type = EXPENSE if amount < 0 else INCOME
        if correction.description is not None:
            description = correction.description.strip()

    if txn_date is None or amount is None or txn_type is None:
        raise _Unimportable(candidate.error or "Incomplete row")
    return txn_date, amount, txn_type, description


def finalize_candidates(
    session_id: str,
    candidates: Sequence[TransactionCandidate],
    decision: ValidationDecision,
    account_id: str,
    create_transaction: CreateTransaction,
    import_id: str | None = None,
) -> ImportResult:
    """Create a transaction for every effective row and report the outcome."""
    result = ImportResult(session_id=session_id, total_processed=len(candidates))
    selected = effective_rows(candidates, decision)

    for candidate in sorted(candidates, key=lambda c: c.row_index):
        row = candidate.row_index
        if row not in selected:
            result.skipped += 1
            continue

        try:
            txn_date, amount, txn_type, description = resolve_candidate(
                candidate, decision.corrections.get(row)
            )
        except _Unimportable as e:
            result.failed += 1
            result.errors.append(f"Row {row}: {e}")
            continue

        try:
            txn_id = create_transaction(
                account_id, txn_date, amount, txn_type, description,
                category=candidate.category, import_id=import_id,
            )
        except Exception as e:
            logger.warning("Row %d failed to import: %s", row, e)
            result.failed += 1
            result.errors.append(f"Row {row}: {e}")
            continue

        result.successful += 1
        result.transaction_ids.append(txn_id)

    logger.info(
        "Session %s finalized: %d imported, %d failed, %d skipped",
        session_id, result.successful, result.failed, result.skipped,
    )
    return result
