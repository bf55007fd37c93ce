"""Tests for committing approved candidates."""

from datetime import date
from decimal import Decimal

import pytest

from ledger_import.wizard.finalizer import effective_rows, finalize_candidates
from ledger_import.wizard.models import (
    DUPLICATE,
    EXPENSE,
    INCOME,
    PARSE_ERROR,
    VALID,
    ManualCorrection,
    TransactionCandidate,
    ValidationDecision,
)


def _valid(row_index, amount="-10.00", description="Coffee"):
    amount = Decimal(amount)
    return TransactionCandidate(
        row_index=row_index, classification=VALID, date=date(2024, 1, row_index),
        amount=amount, description=description,
        txn_type=EXPENSE if amount < 0 else INCOME,
    )


def _duplicate(row_index):
    return TransactionCandidate(
        row_index=row_index, classification=DUPLICATE, date=date(2024, 1, 1),
        amount=Decimal("-5"), description="Dup", txn_type=EXPENSE,
        duplicate_of="txn-old",
    )


def _error(row_index):
    return TransactionCandidate(
        row_index=row_index, classification=PARSE_ERROR,
        raw=("", "Broken", "x"), description="Broken",
        error_field="date", error="No date",
    )


class RecordingStore:
    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def __call__(self, account_id, txn_date, amount, txn_type, description,
                 category=None, import_id=None):
        if description in self.fail_on:
            raise RuntimeError(f"cannot store {description}")
        self.calls.append((account_id, txn_date, amount, txn_type, description))
        return f"txn-{len(self.calls)}"


@pytest.fixture
def candidates():
    return [_valid(2), _valid(3, "2500.00", "Salary"), _duplicate(4), _error(5)]


class TestEffectiveRows:
    def test_default_is_all_valid(self, candidates):
        assert effective_rows(candidates, ValidationDecision()) == {2, 3}

    def test_default_minus_rejected(self, candidates):
        decision = ValidationDecision(rejected_rows={3})
        assert effective_rows(candidates, decision) == {2}

    def test_explicit_approval_may_include_duplicates(self, candidates):
        decision = ValidationDecision(approved_rows={2, 4})
        assert effective_rows(candidates, decision) == {2, 4}

    def test_rejection_wins_over_approval(self, candidates):
        decision = ValidationDecision(approved_rows={2, 3}, rejected_rows={3})
        assert effective_rows(candidates, decision) == {2}

    def test_unknown_rows_ignored(self, candidates):
        decision = ValidationDecision(approved_rows={2, 99})
        assert effective_rows(candidates, decision) == {2}


class TestFinalizeCandidates:
    def test_imports_all_valid_by_default(self, candidates):
        store = RecordingStore()
        result = finalize_candidates("s1", candidates, ValidationDecision(), "checking", store)
        assert result.session_id == "s1"
        assert result.total_processed == 4
        assert result.successful == 2
        assert result.failed == 0
        assert result.skipped == 2
        assert result.transaction_ids == ["txn-1", "txn-2"]
        assert store.calls[0] == (
            "checking", date(2024, 1, 2), Decimal("-10.00"), EXPENSE, "Coffee"
        )
        assert store.calls[1][3] == INCOME

    def test_counts_add_up(self, candidates):
        decision = ValidationDecision(approved_rows={2, 4, 5})
        result = finalize_candidates("s1", candidates, decision, "checking", RecordingStore())
        assert result.successful + result.failed + result.skipped == result.total_processed

    def test_approved_parse_error_fails(self, candidates):
        decision = ValidationDecision(approved_rows={5})
        result = finalize_candidates("s1", candidates, decision, "checking", RecordingStore())
        assert result.failed == 1
        assert result.errors == ["Row 5: No date"]

    def test_correction_completes_parse_error(self, candidates):
        decision = ValidationDecision(
            approved_rows={5},
            corrections={5: ManualCorrection(date="2024-01-20", amount="-7,50")},
        )
        store = RecordingStore()
        result = finalize_candidates("s1", candidates, decision, "checking", store)
        assert result.successful == 1
        assert store.calls == [
            ("checking", date(2024, 1, 20), Decimal("-7.50"), EXPENSE, "Broken")
        ]

    def test_correction_overrides_valid_row(self, candidates):
        decision = ValidationDecision(
            corrections={2: ManualCorrection(description=" Espresso ", amount="12.00")},
        )
        store = RecordingStore()
        finalize_candidates("s1", candidates, decision, "checking", store)
        assert store.calls[0][2:] == (Decimal("12.00"), INCOME, "Espresso")

    def test_invalid_correction_fails_row(self, candidates):
        decision = ValidationDecision(
            approved_rows={2}, corrections={2: ManualCorrection(amount="lots")}
        )
        result = finalize_candidates("s1", candidates, decision, "checking", RecordingStore())
        assert result.failed == 1
        assert result.errors == ["Row 2: Invalid corrected amount 'lots'"]

    def test_store_failure_counts_as_failed_and_continues(self, candidates):
        store = RecordingStore(fail_on={"Coffee"})
        result = finalize_candidates("s1", candidates, ValidationDecision(), "checking", store)
        assert result.successful == 1
        assert result.failed == 1
        assert result.errors == ["Row 2: cannot store Coffee"]

    def test_passes_import_id_and_category(self):
        seen = {}

        def store(account_id, txn_date, amount, txn_type, description,
                  category=None, import_id=None):
            seen.update(category=category, import_id=import_id)
            return "txn-1"

        candidate = TransactionCandidate(
            row_index=2, classification=VALID, date=date(2024, 1, 1),
            amount=Decimal("1"), description="x", category="Food", txn_type=INCOME,
        )
        finalize_candidates("s1", [candidate], ValidationDecision(), "checking",
                            store, import_id="imp-1")
        assert seen == {"category": "Food", "import_id": "imp-1"}
