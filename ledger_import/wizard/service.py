"""Import wizard: the transport-agnostic entry points of the CSV pipeline.

    upload(raw bytes)              -> UploadResult   (session UPLOADED)
    apply_mapping(id, acct, map)   -> PreviewResult  (session MAPPED)
    finalize(id, decision)         -> ImportResult   (session FINALIZED)

Each call is one independent request. State between calls lives in the
session store under the session id returned by upload().
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ledger_import.config import Config
from ledger_import.database.dedup import DuplicateDetector
from ledger_import.database.models import Import, MappingTemplateRecord
from ledger_import.database.repository import Repository
from ledger_import.parsers.base import compute_file_hash
from ledger_import.parsers.dialect import detect_separator, split_records, tokenize_row

from .classifier import classify_row
from .errors import (
    AccountNotFoundError,
    SessionStateError,
    TemplateNotFoundError,
    UploadError,
)
from .finalizer import finalize_candidates
from .models import (
    FINALIZED,
    MAPPED,
    UPLOADED,
    ColumnMapping,
    DuplicateDetail,
    ImportResult,
    ImportSession,
    PreviewResult,
    RowError,
    UploadResult,
    ValidationDecision,
)
from .preview import DEFAULT_PREVIEW_SIZE, balanced_preview
from .session_store import DEFAULT_TTL_SECONDS, InMemorySessionStore

logger = logging.getLogger(__name__)

# Tried in order; latin-1 accepts any byte sequence
ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

TEMPLATE_HEADER = ["Date", "Description", "Amount", "Category"]
TEMPLATE_ROWS = [
    ["15/12/2023", "Supermarket", "-45.67", "Groceries"],
    ["20/12/2023", "Salary", "2500.00", "Income"],
    ["28/12/2023", "Electricity bill", "-89.45", "Utilities"],
]


def csv_template() -> str:
    """Downloadable example CSV matching the default column layout."""
    lines = [",".join(TEMPLATE_HEADER)]
    lines.extend(",".join(row) for row in TEMPLATE_ROWS)
    return "\n".join(lines) + "\n"


def decode_document(raw: bytes) -> str:
    for encoding in ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UploadError("File encoding not recognized")


class ImportWizard:
    """Drive uploads through mapping, preview and finalize.

    Args:
        repo: Transaction store, mapping template store and import log.
        accounts: Account store; anything with get_account(account_id).
        sessions: Session store; a private in-memory store by default.
        preview_size: Size of the balanced preview.
        raw_preview_rows: Raw rows echoed back by upload().
        date_formats: Date formats tried when a mapping has no explicit one.
    """

    def __init__(
        self,
        repo: Repository,
        accounts,
        sessions: InMemorySessionStore | None = None,
        preview_size: int = DEFAULT_PREVIEW_SIZE,
        raw_preview_rows: int = 10,
        date_formats: tuple[str, ...] | None = None,
    ):
        self.repo = repo
        self.accounts = accounts
        if sessions is None:
            sessions = InMemorySessionStore(DEFAULT_TTL_SECONDS)
        self.sessions = sessions
        self.detector = DuplicateDetector(repo)
        self.preview_size = preview_size
        self.raw_preview_rows = raw_preview_rows
        self.date_formats = date_formats

    @classmethod
    def from_config(cls, repo: Repository, config: Config) -> ImportWizard:
        return cls(
            repo,
            accounts=config,
            sessions=InMemorySessionStore(config.session_ttl_minutes * 60),
            preview_size=config.preview_size,
            raw_preview_rows=config.raw_preview_rows,
            date_formats=config.date_formats,
        )

    # ── Step 1: upload ──────────────────────────────────────

    def upload(self, raw: bytes, file_name: str | None = None) -> UploadResult:
        """Tokenize a CSV document into a new session.

        Raises:
            UploadError: empty or binary file, header without columns, or
                no data rows.
        """
        if not raw or not raw.strip():
            raise UploadError("File is empty")
        if b"\x00" in raw:
            raise UploadError("File is not a text CSV document")

        records = split_records(decode_document(raw))
        header_pos = next(
            (i for i, record in enumerate(records) if record.strip()), None
        )
        if header_pos is None:
            raise UploadError("File is empty")

        header_line = records[header_pos]
        separator = detect_separator(header_line)
        headers = tokenize_row(header_line, separator)
        if not any(headers):
            raise UploadError("Header row has no columns")

        rows: list[tuple[int, list[str]]] = []
        # Row numbers as shown by a spreadsheet: the header line is row header_pos + 1
        for row_index, record in enumerate(records[header_pos + 1:], start=header_pos + 2):
            if not record.strip():
                continue
            fields = tokenize_row(record, separator)
            if any(fields):
                rows.append((row_index, fields))
        if not rows:
            raise UploadError("File has no data rows")

        session = ImportSession(
            headers=headers,
            rows=rows,
            separator=separator,
            file_hash=compute_file_hash(raw),
            file_name=file_name or "upload.csv",
        )
        previous = self.repo.get_imports_by_hash(session.file_hash)
        if previous:
            logger.warning(
                "%s has been imported %d time(s) before (last %s)",
                session.file_name, len(previous), previous[-1].created_at,
            )
        self.sessions.put(session)
        logger.info(
            "Session %s: uploaded %s (%d rows, separator %r)",
            session.id, session.file_name, len(rows), separator,
        )
        return UploadResult(
            session_id=session.id,
            separator=separator,
            headers=headers,
            total_rows=len(rows),
            preview_rows=[fields for _, fields in rows[: self.raw_preview_rows]],
            previous_imports=len(previous),
        )

    # ── Step 2: mapping + preview ───────────────────────────

    def apply_mapping(
        self, session_id: str, account_id: str, mapping: ColumnMapping
    ) -> PreviewResult:
        """Classify every row under mapping and return a balanced preview.

        May be called again on a MAPPED session to replace the mapping.

        Raises:
            AccountNotFoundError, InvalidMappingError, SessionNotFoundError,
            SessionStateError. The session is unchanged when any is raised.
        """
        account = self.accounts.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        with self.sessions.locked(session_id) as session:
            if session.stage not in (UPLOADED, MAPPED):
                raise SessionStateError(session_id, session.stage, (UPLOADED, MAPPED))
            mapping.validate(len(session.headers))

            candidates = [
                classify_row(
                    fields, row_index, mapping, account_id,
                    self.detector.find_duplicate, self.date_formats,
                )
                for row_index, fields in session.rows
            ]

            if mapping.save_template:
                self.repo.save_mapping_template(
                    account.owner, mapping.bank_name.strip(), mapping
                )
                logger.info("Saved mapping template for bank '%s'", mapping.bank_name)

            session.account_id = account_id
            session.mapping = mapping
            session.candidates = candidates
            self.sessions.compare_and_transition(session_id, (UPLOADED, MAPPED), MAPPED)

        valid = [c for c in candidates if c.is_valid]
        errors = [
            RowError(
                row_index=c.row_index,
                field=c.error_field,
                message=c.error or "",
                raw=session.separator.join(c.raw),
            )
            for c in candidates if c.is_error
        ]
        duplicates = [
            DuplicateDetail(
                row_index=c.row_index,
                date=c.date,
                amount=c.amount,
                description=c.description,
                existing_transaction_id=c.duplicate_of,
            )
            for c in candidates if c.is_duplicate
        ]
        logger.info(
            "Session %s: %d valid, %d errors, %d duplicates",
            session_id, len(valid), len(errors), len(duplicates),
        )
        return PreviewResult(
            session_id=session_id,
            total_processed=len(candidates),
            valid_count=len(valid),
            error_count=len(errors),
            duplicate_count=len(duplicates),
            preview=balanced_preview(valid, self.preview_size),
            errors=errors,
            duplicates=duplicates,
        )

    # ── Step 3: finalize ────────────────────────────────────

    def finalize(self, session_id: str, decision: ValidationDecision) -> ImportResult:
        """Import the approved rows and close the session.

        Raises:
            SessionNotFoundError: unknown or expired session.
            SessionStateError: not mapped yet, or already finalized.
        """
        with self.sessions.locked(session_id) as session:
            if session.stage != MAPPED:
                raise SessionStateError(session_id, session.stage, (MAPPED,))

            imp = self.repo.insert_import(Import(
                file_name=session.file_name,
                file_hash=session.file_hash,
                account_id=session.account_id,
            ))
            result = finalize_candidates(
                session_id, session.candidates, decision, session.account_id,
                self.repo.create_transaction, import_id=imp.id,
            )
            self.sessions.compare_and_transition(session_id, MAPPED, FINALIZED)
            # Keep a tombstone so a second finalize is a state error
            session.rows = []
            session.candidates = []

        if result.failed == 0:
            status = "completed"
        elif result.successful:
            status = "partial"
        else:
            status = "failed"
        self.repo.update_import_status(
            imp.id, status,
            record_count=result.successful,
            error_message="; ".join(result.errors) or None,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        return result

    # ── Mapping templates ───────────────────────────────────

    def mapping_from_template(self, user_id: str, bank_name: str) -> ColumnMapping:
        template = self.repo.find_mapping_template(user_id, bank_name)
        if template is None:
            raise TemplateNotFoundError(user_id, bank_name)
        return ColumnMapping.from_template(template)

    def list_templates(self, user_id: str) -> list[MappingTemplateRecord]:
        return self.repo.list_mapping_templates(user_id)
