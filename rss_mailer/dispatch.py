"""Dispatch engine for RSS Mailer."""

from collections.abc import Callable
from typing import Protocol

from .composer import build_html_body
from .config import SenderConfig
from .ledger import DeliveryLedger, LedgerWriteError
from .logging_config import create_execution_logger, new_execution_id
from .models import DiagnosticEvent, FeedItem, Recipient, RunOutcome, RunStatus, SendResult
from .recipients import RecipientDirectory
from .reporter import RunReporter


class MailClient(Protocol):
    def send(
        self,
        from_name: str,
        from_address: str,
        to_name: str,
        to_address: str,
        subject: str,
        html_body: str,
    ) -> object: ...


class FeedSource(Protocol):
    def fetch(self, feed_url: str) -> list[FeedItem]: ...


class DispatchEngine:
    """Runs one poll: fetch, filter, send, record, report.

    Sends are attempted for every recipient before the item is recorded in
    the ledger. A failed send never aborts the remaining recipients or the
    remaining items.
    """

    def __init__(
        self,
        *,
        sender: SenderConfig,
        feed_url: str,
        recipients_value: str | None,
        ledger: DeliveryLedger,
        feed_source: FeedSource,
        authenticate: Callable[[], MailClient],
        reporter: RunReporter,
        record_on_total_failure: bool = True,
        dry_run: bool = False,
        execution_id: str | None = None,
    ):
        self.sender = sender
        self.feed_url = feed_url
        self.recipients_value = recipients_value
        self.ledger = ledger
        self.feed_source = feed_source
        self.authenticate = authenticate
        self.reporter = reporter
        self.record_on_total_failure = record_on_total_failure
        self.dry_run = dry_run
        self.execution_id = execution_id or new_execution_id("run")
        self.logger = create_execution_logger("dispatch", self.execution_id)

    def run(self) -> RunOutcome:
        """Execute one run and report its outcome."""
        outcome = RunOutcome(execution_id=self.execution_id)
        self.logger.log_execution_start(feed_url=self.feed_url, dry_run=self.dry_run)

        try:
            self._run(outcome)
        finally:
            self.logger.log_execution_end(
                success=not outcome.is_fatal, metrics=outcome.to_dict()
            )
            self.reporter.report(outcome)

        return outcome

    def _run(self, outcome: RunOutcome) -> None:
        directory = RecipientDirectory(execution_id=self.execution_id)
        recipients = directory.load(self.recipients_value)
        for segment in directory.malformed:
            outcome.events.append(
                DiagnosticEvent("config", f"Malformed recipient entry: {segment.strip()}")
            )

        if not recipients:
            self._abort(outcome, RunStatus.NO_RECIPIENTS, "No recipients configured", "config")
            return

        client = None
        if not self.dry_run:
            try:
                client = self.authenticate()
            except Exception as e:
                self._abort(outcome, RunStatus.AUTH_FAILURE, str(e), "auth")
                return

        try:
            items = self.feed_source.fetch(self.feed_url)
        except Exception as e:
            self._abort(outcome, RunStatus.FEED_FETCH_FAILURE, str(e), "feed")
            return

        read_error = self.ledger.load()
        if read_error:
            outcome.events.append(DiagnosticEvent("ledger", read_error))

        for item in items:
            outcome.items_seen += 1
            self._process_item(item, recipients, client, outcome)

    def _abort(
        self, outcome: RunOutcome, status: RunStatus, message: str, source: str
    ) -> None:
        outcome.status = status
        outcome.error = message
        outcome.events.append(DiagnosticEvent(source, message))
        self.logger.error(f"Run aborted ({status.value}): {message}", error=message)

    def _process_item(
        self,
        item: FeedItem,
        recipients: list[Recipient],
        client: MailClient | None,
        outcome: RunOutcome,
    ) -> None:
        if not item.identity:
            outcome.items_skipped += 1
            message = f"Malformed feed item skipped, no link or id: {item.title}"
            outcome.events.append(DiagnosticEvent("feed", message))
            self.logger.warning(message, item_title=item.title)
            return

        if self.ledger.contains(item.identity):
            outcome.items_duplicate += 1
            self.logger.log_item_processing(
                item.title, "skipped_duplicate", identity=item.identity
            )
            return

        outcome.items_new += 1
        self.logger.log_item_processing(item.title, "processing", identity=item.identity)

        if self.dry_run:
            self.logger.log_item_processing(item.title, "would_send", identity=item.identity)
            return

        html_body = build_html_body(item)
        results = [
            self._send_to(client, recipient, item, html_body) for recipient in recipients
        ]
        for result in results:
            outcome.add_result(item.identity, result)

        if not any(result.success for result in results):
            if not self.record_on_total_failure:
                self.logger.warning(
                    "All sends failed, leaving item unrecorded for retry",
                    identity=item.identity,
                )
                return
            self.logger.warning(
                "All sends failed, recording item anyway; it will not be retried",
                identity=item.identity,
            )

        try:
            self.ledger.record(item.identity)
        except LedgerWriteError as e:
            outcome.ledger_write_failures += 1
            outcome.events.append(DiagnosticEvent("ledger", str(e)))
            self.logger.error(
                f"Item may be delivered again next run: {e}", identity=item.identity
            )

    def _send_to(
        self, client: MailClient, recipient: Recipient, item: FeedItem, html_body: str
    ) -> SendResult:
        try:
            client.send(
                self.sender.name,
                self.sender.address,
                recipient.name,
                recipient.address,
                item.title,
                html_body,
            )
        except Exception as e:
            self.logger.log_item_processing(
                item.title,
                "send_failed",
                success=False,
                identity=item.identity,
                recipient=recipient.address,
                error=str(e),
            )
            return SendResult(recipient=recipient, success=False, error=str(e))

        self.logger.log_item_processing(
            item.title, "sent", identity=item.identity, recipient=recipient.address
        )
        return SendResult(recipient=recipient, success=True)
