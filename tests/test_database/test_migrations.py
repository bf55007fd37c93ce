"""Tests for schema migration system."""

import sqlite3
from pathlib import Path

import pytest

from ledger_import.database.repository import Repository

MIGRATIONS_DIR = Path(__file__).parent.parent.parent / "ledger_import" / "database" / "migrations"


@pytest.fixture
def repo():
    r = Repository(":memory:")
    yield r
    r.close()


class TestMigrationApply:
    def test_creates_all_tables(self, repo):
        repo.apply_migrations(MIGRATIONS_DIR)
        tables = {
            row[0]
            for row in repo.conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert {"schema_version", "imports", "transactions", "mapping_templates"} <= tables

    def test_tracks_version(self, repo):
        repo.apply_migrations(MIGRATIONS_DIR)
        row = repo.conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        assert row[0] == 2

    def test_idempotent(self, repo):
        repo.apply_migrations(MIGRATIONS_DIR)
        repo.apply_migrations(MIGRATIONS_DIR)  # second run
        row = repo.conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()
        assert row[0] == 2  # one record per migration

    def test_template_unique_per_user_and_bank(self, repo):
        repo.apply_migrations(MIGRATIONS_DIR)
        insert = (
            "INSERT INTO mapping_templates (id, user_id, bank_name, date_column,"
            " description_column, amount_column, created_at, updated_at)"
            " VALUES (?, 'alice', 'BNP', 0, 1, 2, 'now', 'now')"
        )
        repo.conn.execute(insert, ("t1",))
        with pytest.raises(sqlite3.IntegrityError):
            repo.conn.execute(insert, ("t2",))


class TestMigrationFailure:
    def test_failed_migration_is_rolled_back(self, repo, tmp_path):
        (tmp_path / "001_good.sql").write_text("CREATE TABLE good (id TEXT)")
        (tmp_path / "002_bad.sql").write_text(
            "CREATE TABLE half (id TEXT);\nNOT VALID SQL"
        )
        with pytest.raises(sqlite3.OperationalError):
            repo.apply_migrations(tmp_path)

        versions = [
            r[0] for r in repo.conn.execute("SELECT version FROM schema_version")
        ]
        assert versions == [1]
        tables = {
            r[0] for r in repo.conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }
        assert "half" not in tables

    def test_retry_after_fix(self, repo, tmp_path):
        bad = tmp_path / "001_first.sql"
        bad.write_text("NOT VALID SQL")
        with pytest.raises(sqlite3.OperationalError):
            repo.apply_migrations(tmp_path)
        bad.write_text("CREATE TABLE first (id TEXT)")
        repo.apply_migrations(tmp_path)
        row = repo.conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        assert row[0] == 1
