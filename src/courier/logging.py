"""Structured JSON logging for the Courier agent.

Provides audit-friendly logging with contextual fields for queue events,
delivery attempts and connectivity changes. Message payloads are never logged,
only their ids.

Usage:
    from courier.logging import setup_logging, log_sync_complete

    setup_logging("INFO", agent_id="edge-01")
    log_sync_complete(logging.getLogger(__name__), synced=3, failed=0, remaining=0)
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pythonjsonlogger import jsonlogger

from courier import __version__

# Default agent identifier (can be overridden)
_agent_id: str | None = None


class CourierJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds agent context to all log records."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add standard fields to every log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        log_record["agent_version"] = __version__
        if _agent_id:
            log_record["agent_id"] = _agent_id

        if "message" not in log_record and record.getMessage():
            log_record["message"] = record.getMessage()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time as ISO 8601."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    agent_id: str | None = None,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure root logger with JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating file handler
        agent_id: Unique identifier for this agent instance
        max_bytes: Max size per log file for rotation
        backup_count: Number of backup files to keep
    """
    global _agent_id
    if agent_id:
        _agent_id = agent_id

    formatter = CourierJsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # JSON to stderr for easy parsing
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


# --- Audit Event Functions ---
# Typed interfaces for common audit events


def log_message_queued(
    logger: logging.Logger,
    message_id: str,
    priority: str,
    queue_size: int,
) -> None:
    """Log a message entering the queue."""
    logger.info(
        "Message queued",
        extra={
            "event": "message_queued",
            "message_id": message_id,
            "priority": priority,
            "queue_size": queue_size,
        },
    )


def log_message_evicted(
    logger: logging.Logger,
    message_id: str,
    priority: str,
    reason: str,
) -> None:
    """Log a message dropped to make room in a full queue.

    Args:
        logger: Logger instance
        message_id: Id of the evicted message
        priority: Priority of the evicted message
        reason: Which eviction rule applied (oldest_low_priority, oldest)
    """
    logger.warning(
        "Queue full, message evicted",
        extra={
            "event": "message_evicted",
            "message_id": message_id,
            "priority": priority,
            "reason": reason,
        },
    )


def log_delivery_failed(
    logger: logging.Logger,
    message_id: str,
    error: str | None,
    retry_count: int,
    max_attempts: int,
    permanent: bool,
) -> None:
    """Log a failed delivery attempt.

    Args:
        logger: Logger instance
        message_id: Id of the message
        error: Error text from the transport (no payload data)
        retry_count: Retries recorded so far
        max_attempts: Configured retry budget
        permanent: True when the retry budget is exhausted
    """
    extra = {
        "event": "delivery_failed",
        "message_id": message_id,
        "error": error,
        "retry_count": retry_count,
        "max_attempts": max_attempts,
        "permanent": permanent,
    }
    if permanent:
        logger.error("Message failed permanently", extra=extra)
    else:
        logger.warning("Delivery failed, will retry", extra=extra)


def log_sync_complete(
    logger: logging.Logger,
    synced: int,
    failed: int,
    remaining: int,
) -> None:
    """Log the summary of a finished sync cycle."""
    logger.info(
        "Sync complete",
        extra={
            "event": "sync_complete",
            "synced": synced,
            "failed": failed,
            "remaining": remaining,
        },
    )


def log_state_change(
    logger: logging.Logger,
    old_state: str,
    new_state: str,
    trigger: str | None = None,
) -> None:
    """Log a state transition.

    Args:
        logger: Logger instance
        old_state: Previous state
        new_state: New state
        trigger: What triggered the change
    """
    extra = {
        "event": "state_change",
        "old_state": old_state,
        "new_state": new_state,
    }
    if trigger:
        extra["trigger"] = trigger
    logger.info("State changed", extra=extra)
