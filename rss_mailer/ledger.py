"""Delivery ledger for RSS Mailer."""

import os
from pathlib import Path

from .logging_config import create_execution_logger


class LedgerWriteError(OSError):
    """Raised when an identity could not be durably recorded."""


class DeliveryLedger:
    """Append-only record of dispatched feed item identities.

    The on-disk format is plain UTF-8 text with one identity per line.
    Lookups use exact line matching, so an identity that happens to be a
    substring of another stored identity is not treated as delivered.
    """

    def __init__(self, path: str, execution_id: str | None = None):
        """Initialize the ledger.

        Args:
            path: Path of the ledger file
            execution_id: Execution ID for logging context
        """
        self.path = Path(path)
        self.logger = create_execution_logger("ledger", execution_id)
        self._identities: set[str] | None = None

    def load(self) -> str | None:
        """Read all stored identities into memory.

        A missing file means nothing has been delivered yet. An unreadable
        file is logged and treated the same way.

        Returns:
            Description of the read failure, or None when the ledger loaded
        """
        identities: set[str] = set()
        read_error = None

        if not self.path.exists():
            self.logger.info("Ledger file not found, starting empty", path=str(self.path))
            self._identities = identities
            return None

        try:
            # Only "\n" separates entries; other Unicode line breaks are data
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                for line in f.read().split("\n"):
                    entry = line.rstrip("\r").strip()
                    if entry:
                        identities.add(entry)
        except (OSError, UnicodeDecodeError) as e:
            read_error = f"Could not read ledger {self.path}: {e}"
            self.logger.error(
                f"LedgerReadFailure: {read_error}",
                path=str(self.path),
                error=str(e),
            )
            identities = set()

        self._identities = identities
        self.logger.info(
            "Ledger loaded", path=str(self.path), entry_count=len(identities)
        )
        return read_error

    def contains(self, identity: str) -> bool:
        """Check whether an identity was previously recorded."""
        if self._identities is None:
            self.load()
        return identity.strip() in self._identities

    def record(self, identity: str) -> None:
        """Durably append an identity.

        Args:
            identity: Feed item identity to record

        Raises:
            LedgerWriteError: If the identity cannot be stored as a single
                line or the append fails
        """
        entry = identity.strip()
        if not entry:
            raise LedgerWriteError("Cannot record an empty identity")
        if "\n" in entry or "\r" in entry:
            raise LedgerWriteError(f"Identity contains a line break: {entry!r}")

        if self._identities is None:
            self.load()

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="\n") as f:
                f.write(entry + "\n")
                f.flush()
                os.fsync(f.fileno())
        except (OSError, ValueError) as e:
            self.logger.error(
                f"LedgerWriteFailure: could not record {entry}: {e}",
                identity=entry,
                error=str(e),
            )
            raise LedgerWriteError(f"Failed to record {entry}: {e}") from e

        self._identities.add(entry)
        self.logger.debug("Recorded identity", identity=entry)

    def __contains__(self, identity: str) -> bool:
        return self.contains(identity)

    def __len__(self) -> int:
        if self._identities is None:
            self.load()
        return len(self._identities)
