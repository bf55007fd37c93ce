"""Data carried between wizard stages.

Row indices are the row numbers a user sees when opening the file in a
spreadsheet: the header is row 1 and the first data row is row 2.
Column indices are zero-based.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from .errors import InvalidMappingError

# Session stages
UPLOADED = "UPLOADED"
MAPPED = "MAPPED"
FINALIZED = "FINALIZED"

# Candidate classifications
VALID = "VALID"
PARSE_ERROR = "PARSE_ERROR"
DUPLICATE = "DUPLICATE"

# Transaction types
INCOME = "INCOME"
EXPENSE = "EXPENSE"

FIRST_DATA_ROW = 2


@dataclass
class ColumnMapping:
    """User-declared correspondence between CSV columns and transaction fields.

    Either amount_column is set, or both debit_column and credit_column are.
    """
    date_column: int
    description_column: int
    amount_column: int | None = None
    debit_column: int | None = None
    credit_column: int | None = None
    category_column: int | None = None
    bank_name: str | None = None
    save_template: bool = False
    date_format: str | None = None

    @property
    def uses_debit_credit(self) -> bool:
        return self.amount_column is None

    def validate(self, column_count: int) -> None:
        """Raise InvalidMappingError unless the mapping fits a file with column_count columns."""
        if self.amount_column is not None:
            if self.debit_column is not None or self.credit_column is not None:
                raise InvalidMappingError(
                    "Map either an amount column or debit/credit columns, not both"
                )
        elif self.debit_column is None or self.credit_column is None:
            raise InvalidMappingError(
                "Map an amount column, or both a debit and a credit column"
            )

        columns = {
            "date": self.date_column,
            "description": self.description_column,
            "amount": self.amount_column,
            "debit": self.debit_column,
            "credit": self.credit_column,
            "category": self.category_column,
        }
        seen: dict[int, str] = {}
        for name, index in columns.items():
            if index is None:
                continue
            if index < 0 or index >= column_count:
                raise InvalidMappingError(
                    f"{name} column {index} is out of range "
                    f"(file has {column_count} columns)"
                )
            if index in seen:
                raise InvalidMappingError(
                    f"Column {index} is mapped to both {seen[index]} and {name}"
                )
            seen[index] = name

        if self.save_template and not (self.bank_name or "").strip():
            raise InvalidMappingError("A bank name is required to save a template")
        if self.date_format is not None and "%" not in self.date_format:
            raise InvalidMappingError(
                f"Invalid date format '{self.date_format}' (expected e.g. %d/%m/%Y)"
            )

    @classmethod
    def from_template(cls, template) -> ColumnMapping:
        """Build a mapping from a saved MappingTemplateRecord."""
        return cls(
            date_column=template.date_column,
            description_column=template.description_column,
            amount_column=template.amount_column,
            debit_column=template.debit_column,
            credit_column=template.credit_column,
            category_column=template.category_column,
            bank_name=template.bank_name,
            date_format=template.date_format,
        )


@dataclass(frozen=True)
class TransactionCandidate:
    """One classified data row. Never mutated after classification."""
    row_index: int
    classification: str
    raw: tuple[str, ...] = ()
    date: date | None = None
    amount: Decimal | None = None  # signed: negative=expense
    description: str = ""
    category: str | None = None
    txn_type: str | None = None
    error_field: str | None = None
    error: str | None = None
    duplicate_of: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.classification == VALID

    @property
    def is_duplicate(self) -> bool:
        return self.classification == DUPLICATE

    @property
    def is_error(self) -> bool:
        return self.classification == PARSE_ERROR


@dataclass
class ManualCorrection:
    """User-entered replacement values for one row, applied at finalize."""
    date: str | None = None
    amount: str | None = None
    description: str | None = None


@dataclass
class ValidationDecision:
    """Rows the user approved or rejected.

    An empty approved_rows means every VALID row that is not rejected.
    """
    approved_rows: set[int] = field(default_factory=set)
    rejected_rows: set[int] = field(default_factory=set)
    corrections: dict[int, ManualCorrection] = field(default_factory=dict)


@dataclass
class ImportSession:
    headers: list[str]
    rows: list[tuple[int, list[str]]]  # (row_index, fields)
    separator: str
    file_hash: str
    file_name: str = "upload.csv"
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stage: str = UPLOADED
    account_id: str | None = None
    mapping: ColumnMapping | None = None
    candidates: list[TransactionCandidate] = field(default_factory=list)
    last_access: float = 0.0


@dataclass
class RowError:
    row_index: int
    field: str | None
    message: str
    raw: str


@dataclass
class DuplicateDetail:
    row_index: int
    date: date
    amount: Decimal
    description: str
    existing_transaction_id: str


@dataclass
class UploadResult:
    session_id: str
    separator: str
    headers: list[str]
    total_rows: int
    preview_rows: list[list[str]]
    previous_imports: int = 0


@dataclass
class PreviewResult:
    session_id: str
    total_processed: int
    valid_count: int
    error_count: int
    duplicate_count: int
    preview: list[TransactionCandidate]
    errors: list[RowError]
    duplicates: list[DuplicateDetail]


@dataclass
class ImportResult:
    session_id: str
    total_processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    transaction_ids: list[str] = field(default_factory=list)
