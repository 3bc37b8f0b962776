"""Run reporting for RSS Mailer."""

import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from .logging_config import create_execution_logger
from .models import RunOutcome, RunStatus

STATUS_MESSAGES = {
    RunStatus.COMPLETED: "RSS check complete.",
    RunStatus.NO_RECIPIENTS: "RSS check aborted: no recipients configured.",
    RunStatus.AUTH_FAILURE: "RSS check aborted: Gmail authorization failed.",
    RunStatus.FEED_FETCH_FAILURE: "RSS check aborted: feed could not be fetched.",
}


class RunReporter:
    """Writes the end-of-run summary and the diagnostic log."""

    def __init__(
        self,
        error_log_file: str = "ErrorLog.txt",
        stream: TextIO | None = None,
        execution_id: str | None = None,
    ):
        self.error_log_file = Path(error_log_file)
        self.stream = stream or sys.stdout
        self.logger = create_execution_logger("reporter", execution_id)

    def report(self, outcome: RunOutcome) -> None:
        """Emit the summary and mirror failures to the diagnostic log.

        Never raises.
        """
        try:
            self._write(self.format_summary(outcome))
        except Exception as e:
            self._notice(f"Error writing run summary: {e}")

        for event in outcome.events:
            self.log_error(event.message, event.source)
        for failure in outcome.failures:
            self.log_error(
                f"{failure.error_message} (item {failure.identity}, "
                f"recipient {failure.recipient_address})",
                "send",
            )

        self.logger.log_metrics(outcome.to_dict())

    def format_summary(self, outcome: RunOutcome) -> str:
        """Human-readable run summary."""
        lines = [STATUS_MESSAGES[outcome.status]]
        if outcome.error:
            lines.append(f"Error: {outcome.error}")

        if outcome.status is RunStatus.COMPLETED:
            if outcome.sends_succeeded:
                lines.append("Emails sent.")
            else:
                lines.append("No emails to send.")

        lines.append(
            f"Items seen: {outcome.items_seen}, new: {outcome.items_new}, "
            f"already delivered: {outcome.items_duplicate}, "
            f"skipped: {outcome.items_skipped}"
        )
        lines.append(
            f"Sends attempted: {outcome.sends_attempted}, "
            f"succeeded: {outcome.sends_succeeded}, failed: {outcome.sends_failed}"
        )
        if outcome.ledger_write_failures:
            lines.append(f"Ledger write failures: {outcome.ledger_write_failures}")

        for failure in outcome.failures:
            lines.append(
                f"  FAILED {failure.recipient_address} <- {failure.identity}: "
                f"{failure.error_message}"
            )
        return "\n".join(lines)

    def log_error(self, message: str, source: str) -> None:
        """Append one timestamped line to the diagnostic log. Never raises."""
        line = f"{datetime.now().isoformat(sep=' ', timespec='seconds')} Source: {source} Error: {message}"
        try:
            self.error_log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(
                self.error_log_file, "a", encoding="utf-8", errors="backslashreplace"
            ) as log:
                log.write(line.replace("\n", " ") + "\n")
        except (OSError, ValueError):
            self._notice("Error logging previous error.")
            self._notice("Make sure the Error log is not open.")

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    def _notice(self, text: str) -> None:
        try:
            self._write(text)
        except Exception:
            pass
