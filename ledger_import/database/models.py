"""Dataclass models matching the SQLite schema.

Each dataclass corresponds to one table. Fields match column names exactly.
All primary keys are TEXT (UUID strings generated via uuid4()). Amounts are
Decimals in Python and canonical decimal TEXT in SQLite.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4


def _new_id() -> str:
    return str(uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Import:
    file_name: str
    file_hash: str
    id: str = field(default_factory=_new_id)
    account_id: str | None = None
    record_count: int | None = None
    status: str = "pending"
    error_message: str | None = None
    created_at: str = field(default_factory=_now)
    completed_at: str | None = None


@dataclass
class Transaction:
    account_id: str
    date: str
    amount: Decimal
    txn_type: str
    description: str
    import_hash: str
    id: str = field(default_factory=_new_id)
    category: str | None = None
    import_id: str | None = None
    created_at: str = field(default_factory=_now)


@dataclass
class MappingTemplateRecord:
    user_id: str
    bank_name: str
    date_column: int
    description_column: int
    id: str = field(default_factory=_new_id)
    amount_column: int | None = None
    debit_column: int | None = None
    credit_column: int | None = None
    category_column: int | None = None
    date_format: str | None = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
