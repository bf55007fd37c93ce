"""Request-level errors raised by the import wizard.

Row-level problems (unparseable cells, duplicates) are never raised; they
are reported as candidate classifications.
"""

from __future__ import annotations


class ImportWizardError(Exception):
    """Base class for errors that reject a whole wizard request."""


class UploadError(ImportWizardError):
    """Raised when an uploaded document cannot become a session."""


class SessionNotFoundError(ImportWizardError):
    """Raised for an unknown or expired session id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Import session '{session_id}' not found or expired")


class SessionStateError(ImportWizardError):
    """Raised when a stage runs against a session in the wrong stage."""

    def __init__(self, session_id: str, stage: str, expected: tuple[str, ...]):
        self.session_id = session_id
        self.stage = stage
        self.expected = expected
        super().__init__(
            f"Import session '{session_id}' is {stage}, expected one of: "
            f"{', '.join(expected)}"
        )


class AccountNotFoundError(ImportWizardError):
    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account '{account_id}' not found")


class InvalidMappingError(ImportWizardError):
    """Raised for a structurally invalid column mapping."""


class TemplateNotFoundError(ImportWizardError):
    def __init__(self, user_id: str, bank_name: str):
        self.user_id = user_id
        self.bank_name = bank_name
        super().__init__(f"No mapping template for bank '{bank_name}'")
