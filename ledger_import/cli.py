"""CLI entry point for ledger-import.

Commands:
    ledger-import import FILE --account ID [mapping options]
                                     Upload, map, preview and finalize a bank CSV
    ledger-import templates USER     List saved column mapping templates
    ledger-import csv-template       Print an example CSV in the default layout
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".csv", ".txt"}


def _setup_logging() -> None:
    """Configure logging based on LEDGER_LOG_LEVEL env var."""
    level = os.environ.get("LEDGER_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _get_config():
    """Load application config from config directory."""
    from ledger_import.config import Config

    config_dir = os.environ.get("LEDGER_CONFIG_DIR", "config")
    return Config(config_dir=config_dir)


def _get_repo():
    """Create a Repository connected to the configured database."""
    from ledger_import.database.repository import Repository

    db_path = os.environ.get("LEDGER_DB_PATH", "ledger.db")
    return Repository(db_path=db_path)


def _get_migrations_dir() -> Path:
    """Get the migrations directory path."""
    default = Path(__file__).parent / "database" / "migrations"
    return Path(os.environ.get("LEDGER_MIGRATIONS_DIR", default))


def _row_list(value: str) -> list[int]:
    """argparse type for '2,5,7'."""
    try:
        return [int(v) for v in value.split(",") if v.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Expected comma-separated row numbers, got '{value}'"
        ) from None


def _mapping_from_args(args: argparse.Namespace, wizard, config):
    """Build the ColumnMapping from --template or explicit column options."""
    from ledger_import.wizard.errors import AccountNotFoundError, InvalidMappingError
    from ledger_import.wizard.models import ColumnMapping

    if args.template:
        account = config.get_account(args.account)
        if account is None:
            raise AccountNotFoundError(args.account)
        mapping = wizard.mapping_from_template(account.owner, args.template)
        if args.date_format:
            mapping.date_format = args.date_format
        return mapping

    if args.date_col is None or args.desc_col is None:
        raise InvalidMappingError(
            "--date-col and --desc-col are required without --template"
        )
    return ColumnMapping(
        date_column=args.date_col,
        description_column=args.desc_col,
        amount_column=args.amount_col,
        debit_column=args.debit_col,
        credit_column=args.credit_col,
        category_column=args.category_col,
        bank_name=args.bank,
        save_template=args.save_template,
        date_format=args.date_format,
    )


def _print_preview(preview) -> None:
    print(
        f"Rows: {preview.total_processed}  valid={preview.valid_count}"
        f"  errors={preview.error_count}  duplicates={preview.duplicate_count}"
    )
    if preview.preview:
        print("Preview:")
        for c in preview.preview:
            print(f"  row {c.row_index:>4}  {c.date}  {c.amount:>12}  {c.txn_type:<7}  {c.description}")
    for err in preview.errors:
        print(f"  ! row {err.row_index}: {err.message}")
    for dup in preview.duplicates:
        print(
            f"  = row {dup.row_index}: duplicate of {dup.existing_transaction_id}"
            f" ({dup.date} {dup.amount} {dup.description})"
        )


# ── Command handlers ─────────────────────────────────────


def cmd_import(args: argparse.Namespace) -> int:
    """Run upload -> mapping -> finalize for one file."""
    from ledger_import.wizard.errors import ImportWizardError
    from ledger_import.wizard.models import ValidationDecision
    from ledger_import.wizard.service import ImportWizard

    filepath = args.file.resolve()
    if not filepath.exists():
        print(f"Error: File not found: {filepath}")
        return 1
    if filepath.suffix.lower() not in SUPPORTED_EXTENSIONS:
        print(f"Error: Unsupported file type: {filepath.suffix}")
        return 1

    config = _get_config()
    repo = _get_repo()
    repo.apply_migrations(_get_migrations_dir())
    wizard = ImportWizard.from_config(repo, config)

    try:
        upload = wizard.upload(filepath.read_bytes(), file_name=filepath.name)
        print(
            f"{filepath.name}: {upload.total_rows} rows,"
            f" separator {upload.separator!r}, columns: {', '.join(upload.headers)}"
        )
        if upload.previous_imports:
            print(f"Note: this file was imported {upload.previous_imports} time(s) before")

        mapping = _mapping_from_args(args, wizard, config)
        preview = wizard.apply_mapping(upload.session_id, args.account, mapping)
        _print_preview(preview)

        if args.dry_run:
            print("Dry run: nothing imported.")
            return 0

        decision = ValidationDecision(
            approved_rows=set(args.approve or []),
            rejected_rows=set(args.reject or []),
        )
        result = wizard.finalize(upload.session_id, decision)
        print(
            f"Imported {result.successful}, failed {result.failed},"
            f" skipped {result.skipped}"
        )
        for error in result.errors:
            print(f"  ! {error}")
        return 0 if result.failed == 0 else 1
    except ImportWizardError as e:
        print(f"Error: {e}")
        return 1
    finally:
        repo.close()


def cmd_templates(args: argparse.Namespace) -> int:
    """List a user's saved mapping templates."""
    repo = _get_repo()
    repo.apply_migrations(_get_migrations_dir())
    try:
        templates = repo.list_mapping_templates(args.user)
        if not templates:
            print(f"No mapping templates for {args.user}.")
            return 0
        for t in templates:
            if t.amount_column is not None:
                amount = f"amount={t.amount_column}"
            else:
                amount = f"debit={t.debit_column} credit={t.credit_column}"
            print(
                f"{t.bank_name}: date={t.date_column} description={t.description_column}"
                f" {amount}"
                + (f" category={t.category_column}" if t.category_column is not None else "")
                + (f" format={t.date_format}" if t.date_format else "")
            )
        return 0
    finally:
        repo.close()


def cmd_csv_template(args: argparse.Namespace) -> int:
    from ledger_import.wizard.service import csv_template

    print(csv_template(), end="")
    return 0


_COMMANDS = {
    "import": cmd_import,
    "templates": cmd_templates,
    "csv-template": cmd_csv_template,
}


def main(argv: list[str] | None = None):
    _setup_logging()

    parser = argparse.ArgumentParser(
        prog="ledger-import",
        description="Import bank CSV exports into the transaction ledger",
    )
    subparsers = parser.add_subparsers(dest="command")

    # import
    import_p = subparsers.add_parser("import", help="Import a bank CSV file")
    import_p.add_argument("file", type=Path, help="CSV file to import")
    import_p.add_argument("--account", required=True, help="Target account ID")
    import_p.add_argument("--template", metavar="BANK", help="Use the saved mapping for BANK")
    import_p.add_argument("--date-col", type=int, help="Date column (0-based)")
    import_p.add_argument("--desc-col", type=int, help="Description column (0-based)")
    import_p.add_argument("--amount-col", type=int, help="Signed amount column (0-based)")
    import_p.add_argument("--debit-col", type=int, help="Debit column (0-based)")
    import_p.add_argument("--credit-col", type=int, help="Credit column (0-based)")
    import_p.add_argument("--category-col", type=int, help="Category column (0-based)")
    import_p.add_argument("--date-format", help="Force one date format, e.g. %%d/%%m/%%Y")
    import_p.add_argument("--bank", help="Bank name for --save-template")
    import_p.add_argument("--save-template", action="store_true",
                          help="Save this mapping as the template for --bank")
    import_p.add_argument("--approve", type=_row_list, help="Only import these rows, e.g. 2,5,7")
    import_p.add_argument("--reject", type=_row_list, help="Skip these rows, e.g. 3,4")
    import_p.add_argument("--dry-run", action="store_true", help="Preview only, import nothing")

    # templates
    templates_p = subparsers.add_parser("templates", help="List saved mapping templates")
    templates_p.add_argument("user", help="User ID (account owner)")

    # csv-template
    subparsers.add_parser("csv-template", help="Print an example CSV")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        sys.exit(1)

    sys.exit(handler(args))


if __name__ == "__main__":
    main()
