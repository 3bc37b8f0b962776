"""JSON log output for RSS Mailer runs.

Every component logs through an ExecutionLogger so that all lines of one run
carry the same execution_id and can be grepped together.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Extra record attributes promoted to top-level keys of the JSON entry
CONTEXT_FIELDS = (
    "execution_id",
    "component",
    "feed_url",
    "item_title",
    "identity",
    "recipient",
    "metrics",
)


class StructuredFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ExecutionLogger:
    """Per-component logger bound to one run's execution_id.

    Keyword arguments passed to the level methods become top-level JSON keys
    when listed in CONTEXT_FIELDS, and plain record attributes otherwise.
    """

    def __init__(self, execution_id: str, component: str = "main"):
        self.execution_id = execution_id
        self.component = component
        self.logger = logging.getLogger(f"rss_mailer.{component}")
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None

    def _log_with_context(self, level: int, message: str, **kwargs) -> None:
        extra = {
            "execution_id": self.execution_id,
            "component": self.component,
            **kwargs,
        }
        self.logger.log(level, message, extra=extra)

    def info(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def log_execution_start(self, **kwargs) -> None:
        """Mark the start of this component's work for duration tracking."""
        self.start_time = datetime.now(UTC)
        self.info(
            f"Starting {self.component} execution",
            execution_start=self.start_time.isoformat(),
            **kwargs,
        )

    def log_execution_end(self, success: bool = True, **kwargs) -> None:
        """Mark the end of the work, with the duration since the start mark."""
        self.end_time = datetime.now(UTC)

        duration_seconds = None
        if self.start_time:
            duration_seconds = (self.end_time - self.start_time).total_seconds()

        self.info(
            f"Completed {self.component} execution",
            execution_end=self.end_time.isoformat(),
            execution_duration_seconds=duration_seconds,
            execution_success=success,
            **kwargs,
        )

    def log_item_processing(
        self, item_title: str, action: str, success: bool = True, **kwargs
    ) -> None:
        """One line per feed item state change (sent, skipped_duplicate, ...)."""
        level = logging.INFO if success else logging.ERROR
        self._log_with_context(
            level,
            f"Item {action}: {item_title}",
            item_title=item_title,
            action=action,
            success=success,
            **kwargs,
        )

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        self.info("Execution metrics", metrics=metrics)


def setup_structured_logging(log_level: str = "INFO") -> None:
    """Route all rss_mailer loggers to stdout as JSON.

    Unknown level names fall back to INFO.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    # Child loggers (rss_mailer.<component>) inherit this level
    logging.getLogger("rss_mailer").setLevel(level)

    # googleapiclient logs discovery cache noise at WARNING
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def create_execution_logger(
    component: str, execution_id: str | None = None
) -> ExecutionLogger:
    """Logger for a component; a fresh execution ID is used when none is given."""
    if not execution_id:
        execution_id = new_execution_id()

    return ExecutionLogger(execution_id, component)


def new_execution_id(prefix: str = "exec") -> str:
    """Generate a timestamp-based execution ID."""
    return f"{prefix}_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
