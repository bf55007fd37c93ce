"""Repository: CRUD operations against SQLite using raw SQL.

All methods take/return dataclass instances from models.py. Connection
management uses a single connection with WAL mode and foreign keys enabled.
The repository plays three collaborator roles for the import wizard: the
transaction store, the mapping template store and the import audit log.
"""

from __future__ import annotations

import sqlite3
from datetime import date
from decimal import Decimal
from pathlib import Path

from ledger_import.parsers.base import canonical_amount, compute_import_hash

from .models import Import, MappingTemplateRecord, Transaction


class Repository:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ── Migrations ──────────────────────────────────────────

    def apply_migrations(self, migrations_dir: Path):
        """Apply all pending SQL migrations in order.

        Each migration runs in a transaction: if the SQL fails, the
        schema_version row is not inserted, allowing retry on next startup.
        """
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version ("
            "  version INTEGER PRIMARY KEY,"
            "  description TEXT,"
            "  applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP"
            ")"
        )
        self.conn.commit()

        row = self.conn.execute(
            "SELECT MAX(version) FROM schema_version"
        ).fetchone()
        current = row[0] or 0

        for sql_file in sorted(Path(migrations_dir).glob("*.sql")):
            version = int(sql_file.name.split("_")[0])
            if version > current:
                try:
                    self.conn.execute("BEGIN")
                    # executescript auto-commits, so we split statements manually
                    for statement in sql_file.read_text().split(";"):
                        statement = statement.strip()
                        if statement:
                            self.conn.execute(statement)
                    self.conn.execute(
                        "INSERT INTO schema_version (version, description) VALUES (?, ?)",
                        (version, sql_file.stem),
                    )
                    self.conn.commit()
                except Exception:
                    self.conn.rollback()
                    raise

    # ── Imports ─────────────────────────────────────────────

    def insert_import(self, imp: Import) -> Import:
        self.conn.execute(
            "INSERT INTO imports (id, file_name, file_hash, account_id,"
            " record_count, status, error_message, created_at, completed_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (imp.id, imp.file_name, imp.file_hash, imp.account_id,
             imp.record_count, imp.status, imp.error_message,
             imp.created_at, imp.completed_at),
        )
        self.conn.commit()
        return imp

    def get_imports_by_hash(self, file_hash: str) -> list[Import]:
        rows = self.conn.execute(
            "SELECT * FROM imports WHERE file_hash = ? ORDER BY created_at",
            (file_hash,),
        ).fetchall()
        return [self._row_to_import(r) for r in rows]

    _IMPORT_UPDATE_COLS = frozenset({"record_count", "error_message", "completed_at"})

    def update_import_status(self, import_id: str, status: str, **kwargs):
        # Reject unknown column names to prevent silent bugs
        unknown = set(kwargs.keys()) - self._IMPORT_UPDATE_COLS
        if unknown:
            raise ValueError(f"Unknown columns for update_import_status: {unknown}")

        sets = ["status = ?"]
        vals: list = [status]
        for col in ("record_count", "error_message", "completed_at"):
            if col in kwargs:
                sets.append(f"{col} = ?")
                vals.append(kwargs[col])
        vals.append(import_id)
        self.conn.execute(
            f"UPDATE imports SET {', '.join(sets)} WHERE id = ?", vals
        )
        self.conn.commit()

    # ── Transactions ────────────────────────────────────────

    def insert_transaction(self, txn: Transaction) -> Transaction:
        self.conn.execute(
            "INSERT INTO transactions"
            " (id, account_id, date, amount, txn_type, description,"
            "  category, import_id, import_hash, created_at)"
            " VALUES (?,?,?,?,?,?,?,?,?,?)",
            (txn.id, txn.account_id, txn.date, canonical_amount(txn.amount),
             txn.txn_type, txn.description, txn.category, txn.import_id,
             txn.import_hash, txn.created_at),
        )
        self.conn.commit()
        return txn

    def create_transaction(
        self,
        account_id: str,
        txn_date: date,
        amount: Decimal,
        txn_type: str,
        description: str,
        category: str | None = None,
        import_id: str | None = None,
    ) -> str:
        """Persist one transaction and return its id.

        amount is signed: negative for expenses, positive for income.
        """
        txn = Transaction(
            account_id=account_id,
            date=txn_date.isoformat(),
            amount=amount,
            txn_type=txn_type,
            description=description,
            category=category,
            import_id=import_id,
            import_hash=compute_import_hash(account_id, txn_date, amount, description),
        )
        return self.insert_transaction(txn).id

    def find_duplicate_transaction(
        self, account_id: str, txn_date: date, amount: Decimal, description: str
    ) -> str | None:
        """Return the id of a transaction matching all four fields exactly."""
        import_hash = compute_import_hash(account_id, txn_date, amount, description)
        rows = self.conn.execute(
            "SELECT * FROM transactions"
            " WHERE import_hash = ? AND account_id = ? AND date = ?"
            " AND description = ?"
            " ORDER BY created_at, rowid",
            (import_hash, account_id, txn_date.isoformat(), description),
        ).fetchall()
        for row in rows:
            if Decimal(row["amount"]) == amount:
                return row["id"]
        return None

    def get_transaction(self, txn_id: str) -> Transaction | None:
        row = self.conn.execute(
            "SELECT * FROM transactions WHERE id = ?", (txn_id,)
        ).fetchone()
        return self._row_to_transaction(row) if row else None

    def get_transactions_for_account(
        self, account_id: str, date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[Transaction]:
        sql = "SELECT * FROM transactions WHERE account_id = ?"
        params: list = [account_id]
        if date_from:
            sql += " AND date >= ?"
            params.append(date_from)
        if date_to:
            sql += " AND date <= ?"
            params.append(date_to)
        sql += " ORDER BY date, rowid"
        rows = self.conn.execute(sql, params).fetchall()
        return [self._row_to_transaction(r) for r in rows]

    def get_transactions_by_import_id(self, import_id: str) -> list[Transaction]:
        rows = self.conn.execute(
            "SELECT * FROM transactions WHERE import_id = ?"
            " ORDER BY date, rowid",
            (import_id,),
        ).fetchall()
        return [self._row_to_transaction(r) for r in rows]

    # ── Mapping Templates ───────────────────────────────────

    def save_mapping_template(
        self, user_id: str, bank_name: str, mapping
    ) -> MappingTemplateRecord:
        """Insert or replace the (user, bank) template from a column mapping.

        mapping is any object with date_column, description_column,
        amount_column, debit_column, credit_column, category_column and
        date_format attributes.
        """
        record = MappingTemplateRecord(
            user_id=user_id,
            bank_name=bank_name,
            date_column=mapping.date_column,
            description_column=mapping.description_column,
            amount_column=mapping.amount_column,
            debit_column=mapping.debit_column,
            credit_column=mapping.credit_column,
            category_column=mapping.category_column,
            date_format=mapping.date_format,
        )
        self.conn.execute(
            "INSERT INTO mapping_templates"
            " (id, user_id, bank_name, date_column, description_column,"
            "  amount_column, debit_column, credit_column, category_column,"
            "  date_format, created_at, updated_at)"
            " VALUES (?,?,?,?,?,?,?,?,?,?,?,?)"
            " ON CONFLICT(user_id, bank_name) DO UPDATE SET"
            "  date_column = excluded.date_column,"
            "  description_column = excluded.description_column,"
            "  amount_column = excluded.amount_column,"
            "  debit_column = excluded.debit_column,"
            "  credit_column = excluded.credit_column,"
            "  category_column = excluded.category_column,"
            "  date_format = excluded.date_format,"
            "  updated_at = excluded.updated_at",
            (record.id, record.user_id, record.bank_name, record.date_column,
             record.description_column, record.amount_column,
             record.debit_column, record.credit_column,
             record.category_column, record.date_format,
             record.created_at, record.updated_at),
        )
        self.conn.commit()
        return self.find_mapping_template(user_id, bank_name)

    def find_mapping_template(
        self, user_id: str, bank_name: str
    ) -> MappingTemplateRecord | None:
        row = self.conn.execute(
            "SELECT * FROM mapping_templates WHERE user_id = ? AND bank_name = ?",
            (user_id, bank_name),
        ).fetchone()
        return self._row_to_template(row) if row else None

    def list_mapping_templates(self, user_id: str) -> list[MappingTemplateRecord]:
        rows = self.conn.execute(
            "SELECT * FROM mapping_templates WHERE user_id = ?"
            " ORDER BY bank_name",
            (user_id,),
        ).fetchall()
        return [self._row_to_template(r) for r in rows]

    # ── Row Converters ──────────────────────────────────────

    @staticmethod
    def _row_to_import(row: sqlite3.Row) -> Import:
        return Import(
            id=row["id"], file_name=row["file_name"],
            file_hash=row["file_hash"], account_id=row["account_id"],
            record_count=row["record_count"], status=row["status"],
            error_message=row["error_message"],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
        )

    @staticmethod
    def _row_to_transaction(row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"], account_id=row["account_id"],
            date=row["date"], amount=Decimal(row["amount"]),
            txn_type=row["txn_type"], description=row["description"],
            category=row["category"], import_id=row["import_id"],
            import_hash=row["import_hash"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_template(row: sqlite3.Row) -> MappingTemplateRecord:
        return MappingTemplateRecord(
            id=row["id"], user_id=row["user_id"], bank_name=row["bank_name"],
            date_column=row["date_column"],
            description_column=row["description_column"],
            amount_column=row["amount_column"],
            debit_column=row["debit_column"],
            credit_column=row["credit_column"],
            category_column=row["category_column"],
            date_format=row["date_format"],
            created_at=row["created_at"], updated_at=row["updated_at"],
        )
