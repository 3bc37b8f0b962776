"""Command-line entry point for RSS Mailer."""

import argparse
import os
import sys

from .config import Config, ConfigError
from .dispatch import DispatchEngine
from .gmail import authenticate
from .ledger import DeliveryLedger
from .logging_config import create_execution_logger, new_execution_id, setup_structured_logging
from .reporter import RunReporter
from .rss import FeedProcessor


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rss-mailer",
        description="Email new RSS/Atom feed items to configured recipients via Gmail.",
    )
    parser.add_argument("--settings", help="Path to a JSON settings file")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, ...)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and filter the feed without sending or recording anything",
    )
    return parser.parse_args(argv)


def build_engine(config: Config, execution_id: str, dry_run: bool = False) -> DispatchEngine:
    """Wire the dispatch engine from a loaded configuration."""
    ledger_config = config.get_ledger_config()
    gmail_config = config.get_gmail_config()

    return DispatchEngine(
        sender=config.get_sender_config(),
        feed_url=config.rss_feed_address,
        recipients_value=config.get_recipients_value(),
        ledger=DeliveryLedger(ledger_config.path, execution_id=execution_id),
        feed_source=FeedProcessor(execution_id=execution_id),
        authenticate=lambda: authenticate(gmail_config, execution_id=execution_id),
        reporter=RunReporter(config.error_log_file, execution_id=execution_id),
        record_on_total_failure=ledger_config.record_on_total_failure,
        dry_run=dry_run,
        execution_id=execution_id,
    )


def main(argv: list[str] | None = None) -> int:
    """Run once and return the process exit code.

    0 when the run completed, 1 when it was aborted during setup. Errors are
    written to the console and the diagnostic log, never raised.
    """
    args = parse_args(argv)
    execution_id = new_execution_id("run")

    try:
        config = Config(settings_file=args.settings)
    except ConfigError as e:
        setup_structured_logging(args.log_level or "INFO")
        create_execution_logger("main", execution_id).error(
            f"Invalid configuration: {e}", error=str(e)
        )
        RunReporter(
            os.getenv("ERROR_LOG_FILE", "ErrorLog.txt"), execution_id=execution_id
        ).log_error(str(e), "config")
        return 1

    setup_structured_logging(args.log_level or config.log_level)
    logger = create_execution_logger("main", execution_id)

    try:
        outcome = build_engine(config, execution_id, dry_run=args.dry_run).run()
    except Exception as e:
        print("Program encountered an error:")
        print(e)
        logger.error(f"Unexpected error: {e}", error=str(e))
        RunReporter(config.error_log_file, execution_id=execution_id).log_error(
            str(e), type(e).__name__
        )
        return 1

    return 1 if outcome.is_fatal else 0


if __name__ == "__main__":
    sys.exit(main())
