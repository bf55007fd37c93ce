"""Tests for exact-content duplicate detection."""

import sqlite3
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_import.database.dedup import DuplicateDetector
from ledger_import.database.repository import Repository

MIGRATIONS_DIR = Path(__file__).parent.parent.parent / "ledger_import" / "database" / "migrations"


@pytest.fixture
def repo():
    r = Repository(":memory:")
    r.apply_migrations(MIGRATIONS_DIR)
    yield r
    r.close()


@pytest.fixture
def detector(repo):
    return DuplicateDetector(repo)


class TestDuplicateDetector:
    def test_no_existing_transactions(self, detector):
        assert detector.find_duplicate(
            "checking", date(2024, 1, 15), Decimal("-3.50"), "Coffee"
        ) is None

    def test_finds_existing(self, repo, detector):
        txn_id = repo.create_transaction(
            "checking", date(2024, 1, 15), Decimal("-3.50"), "EXPENSE", "Coffee"
        )
        assert detector.find_duplicate(
            "checking", date(2024, 1, 15), Decimal("-3.5"), "Coffee"
        ) == txn_id

    def test_returns_earliest_of_several(self, repo, detector):
        first = repo.create_transaction(
            "checking", date(2024, 1, 15), Decimal("-3.50"), "EXPENSE", "Coffee"
        )
        repo.create_transaction(
            "checking", date(2024, 1, 15), Decimal("-3.50"), "EXPENSE", "Coffee"
        )
        assert detector.find_duplicate(
            "checking", date(2024, 1, 15), Decimal("-3.50"), "Coffee"
        ) == first

    def test_sign_matters(self, repo, detector):
        repo.create_transaction(
            "checking", date(2024, 1, 15), Decimal("-3.50"), "EXPENSE", "Refund"
        )
        assert detector.find_duplicate(
            "checking", date(2024, 1, 15), Decimal("3.50"), "Refund"
        ) is None

    def test_store_errors_propagate(self, repo, detector):
        repo.conn.execute("DROP TABLE transactions")
        with pytest.raises(sqlite3.OperationalError):
            detector.find_duplicate(
                "checking", date(2024, 1, 15), Decimal("-3.50"), "Coffee"
            )
