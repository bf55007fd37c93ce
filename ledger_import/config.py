"""YAML configuration loader for ledger-import.

Loads from the config/ directory:
  accounts.yaml   accounts that imports can target (required)
  import.yaml     wizard settings (optional, defaults apply)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_PREVIEW_SIZE = 4
DEFAULT_RAW_PREVIEW_ROWS = 10
DEFAULT_SESSION_TTL_MINUTES = 30


@dataclass
class Account:
    id: str
    name: str
    owner: str
    currency: str = "EUR"


class Config:
    """Loads and provides access to all YAML configuration files."""

    def __init__(self, config_dir: Path | str = "config"):
        self.config_dir = Path(config_dir)
        if not self.config_dir.is_dir():
            raise FileNotFoundError(f"Config directory not found: {self.config_dir}")

        self._accounts: list[dict] | None = None
        self._import_settings: dict | None = None

    def _load(self, filename: str) -> dict | list:
        path = self.config_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            raise ValueError(f"Empty config file: {path}")
        return data

    @property
    def accounts(self) -> list[dict]:
        if self._accounts is None:
            data = self._load("accounts.yaml")
            self._accounts = data.get("accounts", data) if isinstance(data, dict) else data
        return self._accounts

    def account_by_id(self, account_id: str) -> dict | None:
        for acct in self.accounts:
            if acct.get("id") == account_id:
                return acct
        return None

    def get_account(self, account_id: str) -> Account | None:
        """Account store lookup used to validate an import's target account."""
        acct = self.account_by_id(account_id)
        if acct is None:
            return None
        return Account(
            id=acct["id"],
            name=acct.get("name", acct["id"]),
            owner=str(acct.get("owner", "")),
            currency=acct.get("currency", "EUR"),
        )

    @property
    def import_settings(self) -> dict:
        """Raw import.yaml contents; an absent file means all defaults."""
        if self._import_settings is None:
            if (self.config_dir / "import.yaml").exists():
                data = self._load("import.yaml")
                if not isinstance(data, dict):
                    raise ValueError(
                        f"import.yaml must be a mapping, got {type(data).__name__}"
                    )
                self._import_settings = data
            else:
                self._import_settings = {}
        return self._import_settings

    @property
    def preview_size(self) -> int:
        """Number of candidates in the balanced preview. Default: 4."""
        return int(self.import_settings.get("preview_size", DEFAULT_PREVIEW_SIZE))

    @property
    def raw_preview_rows(self) -> int:
        """Raw rows echoed back after upload. Default: 10."""
        return int(self.import_settings.get("raw_preview_rows", DEFAULT_RAW_PREVIEW_ROWS))

    @property
    def session_ttl_minutes(self) -> float:
        return float(
            self.import_settings.get("session_ttl_minutes", DEFAULT_SESSION_TTL_MINUTES)
        )

    @property
    def date_formats(self) -> tuple[str, ...] | None:
        """Override for the date formats tried on every row, or None for the built-in list."""
        formats = self.import_settings.get("date_formats")
        if not formats:
            return None
        return tuple(formats)
