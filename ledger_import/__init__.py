"""ledger-import: bank CSV import wizard."""

__version__ = "0.1.0"
