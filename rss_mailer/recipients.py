"""Recipient directory for RSS Mailer."""

from .logging_config import create_execution_logger
from .models import Recipient

ENTRY_SEPARATOR = ";"
FIELD_SEPARATOR = ":"


class RecipientDirectory:
    """Resolves the recipient list from a ``Name:address;...`` value."""

    def __init__(self, execution_id: str | None = None):
        self.logger = create_execution_logger("recipients", execution_id)
        self.malformed: list[str] = []

    def load(self, value: str | None) -> list[Recipient]:
        """Parse the configured recipients string.

        Malformed segments are skipped with a diagnostic. An empty or
        missing value returns an empty list; callers treat that as a reason
        to abort the run.

        Args:
            value: Raw configuration value, may be None

        Returns:
            Recipients in configuration order, duplicates preserved
        """
        self.malformed = []

        if value is None or not value.strip():
            self.logger.warning("No recipients configured")
            return []

        recipients = []
        for segment in value.split(ENTRY_SEPARATOR):
            if not segment.strip():
                continue

            recipient = self.parse_entry(segment)
            if recipient is None:
                self.malformed.append(segment)
                self.logger.error(
                    f"ConfigError: malformed recipient entry skipped: {segment.strip()!r}",
                    entry=segment.strip(),
                )
                continue

            recipients.append(recipient)

        self.logger.info(
            f"Loaded {len(recipients)} recipients",
            recipient_count=len(recipients),
            malformed_count=len(self.malformed),
        )
        return recipients

    @staticmethod
    def parse_entry(segment: str) -> Recipient | None:
        """Parse a single ``Name:address`` segment, None if malformed."""
        if FIELD_SEPARATOR not in segment:
            return None

        name, address = segment.split(FIELD_SEPARATOR, 1)
        name = name.strip()
        address = address.strip()

        if not name or not address or "@" not in address:
            return None

        return Recipient(name=name, address=address)
