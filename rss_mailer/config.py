"""Configuration management for RSS Mailer."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"

TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised for invalid configuration input."""


@dataclass
class SenderConfig:
    """Identity the mail is sent as."""

    name: str = "Default From Name"
    address: str = "default@example.com"


@dataclass
class GmailConfig:
    """Configuration for the Gmail API client."""

    credentials_file: str = "credentials.json"
    token_file: str = "token.json"
    application_name: str = "Gmail Sender"
    allow_interactive: bool = True
    scopes: list[str] = field(default_factory=lambda: [GMAIL_SEND_SCOPE])


@dataclass
class LedgerConfig:
    """Configuration for the delivery ledger."""

    path: str = "URL_Log.txt"
    record_on_total_failure: bool = True


class Config:
    """Main configuration manager.

    Values are resolved once at construction: environment variable first,
    then the optional JSON settings file, then the built-in default.
    """

    SETTINGS_FILE = "settings.json"

    def __init__(self, settings_file: str | None = None):
        """Initialize configuration from environment and settings file."""
        self.settings_file = (
            settings_file
            or os.getenv("RSS_MAILER_SETTINGS")
            or self.SETTINGS_FILE
        )
        self._settings = self._load_settings(self.settings_file)

        self.email_from_name = self._get(
            "EMAIL_FROM_NAME", "email_from_name", "Default From Name"
        )
        self.email_from_address = self._get(
            "EMAIL_FROM_ADDRESS", "email_from_address", "default@example.com"
        )
        self.rss_feed_address = self._get(
            "RSS_FEED_ADDRESS", "rss_feed_address", "https://defaultrss.com/feed"
        )
        self.ledger_file = self._get("LEDGER_FILE", "ledger_file", "URL_Log.txt")
        self.error_log_file = self._get(
            "ERROR_LOG_FILE", "error_log_file", "ErrorLog.txt"
        )
        self.credentials_file = self._get(
            "GMAIL_CREDENTIALS_FILE", "credentials_file", "credentials.json"
        )
        self.token_file = self._get("GMAIL_TOKEN_FILE", "token_file", "token.json")
        self.allow_interactive = self._get_bool(
            "GMAIL_ALLOW_INTERACTIVE", "allow_interactive", True
        )
        self.record_on_total_failure = self._get_bool(
            "RECORD_ON_TOTAL_FAILURE", "record_on_total_failure", True
        )
        self.log_level = self._get("LOG_LEVEL", "log_level", "INFO")

    @staticmethod
    def _load_settings(path: str) -> dict[str, Any]:
        settings_path = Path(path)
        if not settings_path.exists():
            return {}

        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigError(f"Invalid JSON in settings file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error reading settings file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("Settings file must contain a JSON object")
        return data

    def _get(self, env_name: str, key: str, default: str | None) -> str | None:
        value = os.getenv(env_name)
        if value is not None:
            return value
        value = self._setting(key)
        if value is not None:
            return str(value)
        return default

    def _setting(self, key: str):
        value = self._settings.get(key)
        if isinstance(value, (dict, list)):
            raise ConfigError(f"Setting {key!r} must be a string, number or boolean")
        return value

    def _get_bool(self, env_name: str, key: str, default: bool) -> bool:
        value = os.getenv(env_name)
        if value is None:
            value = self._setting(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in TRUE_VALUES

    def get_recipients_value(self) -> str | None:
        """Raw recipients string, ``Name:address;Name:address``.

        Falls back to the single-recipient keys only when the recipients
        key is absent. Returns None when nothing is configured.
        """
        value = self._get("EMAIL_RECIPIENTS", "email_recipients", None)
        if value is not None:
            return value

        to_address = self._get("EMAIL_TO_ADDRESS", "email_to_address", None)
        if to_address is None:
            return None
        to_name = self._get("EMAIL_TO_NAME", "email_to_name", "Default To Name")
        return f"{to_name}:{to_address}"

    def get_sender_config(self) -> SenderConfig:
        """Get sender configuration."""
        return SenderConfig(name=self.email_from_name, address=self.email_from_address)

    def get_gmail_config(self) -> GmailConfig:
        """Get Gmail API configuration."""
        return GmailConfig(
            credentials_file=self.credentials_file,
            token_file=self.token_file,
            allow_interactive=self.allow_interactive,
        )

    def get_ledger_config(self) -> LedgerConfig:
        """Get ledger configuration."""
        return LedgerConfig(
            path=self.ledger_file,
            record_on_total_failure=self.record_on_total_failure,
        )
