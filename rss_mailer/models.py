"""Data models for RSS Mailer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class FeedItem:
    """Represents a single RSS/Atom feed item."""

    identity: str
    title: str
    link: str
    summary: str | None = None
    feed_url: str = ""

    @property
    def read_more_link(self) -> str:
        """Link used for the "Read More" anchor."""
        return self.link or self.identity


@dataclass
class Recipient:
    """A single mail recipient."""

    name: str
    address: str


@dataclass
class SendResult:
    """Result of one send attempt to one recipient."""

    recipient: Recipient
    success: bool
    error: str | None = None


@dataclass
class SendFailure:
    """Structured record of a failed send."""

    identity: str
    recipient_address: str
    error_message: str


@dataclass
class DiagnosticEvent:
    """Event mirrored to the diagnostic log."""

    source: str
    message: str


class RunStatus(str, Enum):
    """Terminal status of a run."""

    COMPLETED = "completed"
    NO_RECIPIENTS = "no_recipients"
    AUTH_FAILURE = "auth_failure"
    FEED_FETCH_FAILURE = "feed_fetch_failure"


@dataclass
class RunOutcome:
    """Aggregate outcome of one run."""

    execution_id: str = ""
    status: RunStatus = RunStatus.COMPLETED
    items_seen: int = 0
    items_new: int = 0
    items_skipped: int = 0
    items_duplicate: int = 0
    sends_attempted: int = 0
    sends_succeeded: int = 0
    sends_failed: int = 0
    ledger_write_failures: int = 0
    failures: list[SendFailure] = field(default_factory=list)
    events: list[DiagnosticEvent] = field(default_factory=list)
    error: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.status is not RunStatus.COMPLETED

    def add_result(self, identity: str, result: SendResult) -> None:
        """Fold a per-recipient send result into the counters."""
        self.sends_attempted += 1
        if result.success:
            self.sends_succeeded += 1
        else:
            self.sends_failed += 1
            self.failures.append(
                SendFailure(
                    identity=identity,
                    recipient_address=result.recipient.address,
                    error_message=result.error or "Unknown error",
                )
            )

    def to_dict(self) -> dict[str, Any]:
        """Metrics view used for structured logging."""
        return {
            "status": self.status.value,
            "items_seen": self.items_seen,
            "items_new": self.items_new,
            "items_skipped": self.items_skipped,
            "items_duplicate": self.items_duplicate,
            "sends_attempted": self.sends_attempted,
            "sends_succeeded": self.sends_succeeded,
            "sends_failed": self.sends_failed,
            "ledger_write_failures": self.ledger_write_failures,
            "failures": [
                {
                    "identity": f.identity,
                    "recipient_address": f.recipient_address,
                    "error_message": f.error_message,
                }
                for f in self.failures
            ],
            "error": self.error,
        }
