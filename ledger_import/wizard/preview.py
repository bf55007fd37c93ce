"""Balanced preview sampling of VALID candidates."""

from __future__ import annotations

from collections.abc import Sequence

from .models import EXPENSE, INCOME, TransactionCandidate

DEFAULT_PREVIEW_SIZE = 4


def balanced_preview(
    candidates: Sequence[TransactionCandidate], size: int = DEFAULT_PREVIEW_SIZE
) -> list[TransactionCandidate]:
    """Pick up to size candidates, split evenly between income and expense.

    When one type has fewer than half the slots, the remainder comes from
    the other type. Selection is deterministic (first rows of each type)
    and the result keeps the original row order. The input is not modified.
    """
    if len(candidates) <= size:
        return list(candidates)

    income = [c for c in candidates if c.txn_type == INCOME]
    expense = [c for c in candidates if c.txn_type == EXPENSE]
    half = size // 2

    take_income = min(len(income), half)
    take_expense = min(len(expense), half)
    remaining = size - take_income - take_expense
    if remaining > 0:
        # Fill from the more abundant type first
        if len(income) - take_income >= len(expense) - take_expense:
            extra = min(remaining, len(income) - take_income)
            take_income += extra
            take_expense += min(remaining - extra, len(expense) - take_expense)
        else:
            extra = min(remaining, len(expense) - take_expense)
            take_expense += extra
            take_income += min(remaining - extra, len(income) - take_income)

    chosen = income[:take_income] + expense[:take_expense]
    return sorted(chosen, key=lambda c: c.row_index)
