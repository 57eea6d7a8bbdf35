"""Logging configuration for the application."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import get_config

LEDGER_FORMAT = "%(asctime)s %(transaction_id)s %(message)s"


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Setup a logger with console and optional file handlers.

    Args:
        name: Logger name
        log_file: Optional log file path
        level: Optional log level (overrides config)

    Returns:
        Configured logger instance
    """
    config = get_config()

    logger = logging.getLogger(name)
    log_level = level or config.logging.level
    logger.setLevel(getattr(logging, log_level.upper()))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(config.logging.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler, skipped in production where the console stream is collected
    if log_file and not config.is_production:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=config.logging.max_bytes,
            backupCount=config.logging.backup_count
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class LedgerRecordFilter(logging.Filter):
    """Passes only records logged for a committed transaction."""

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "transaction_id", None) is not None


def add_ledger_journal(logger: logging.Logger, journal_file: str) -> logging.Logger:
    """
    Mirror committed stock movements to a journal file.

    Only records carrying a ``transaction_id`` extra reach the journal, one
    line per ledger entry. Skipped in production, like the other log files.
    """
    config = get_config()
    if config.is_production:
        return logger
    if any(isinstance(f, LedgerRecordFilter) for h in logger.handlers for f in h.filters):
        return logger

    log_path = Path(journal_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    journal_handler = RotatingFileHandler(
        journal_file,
        maxBytes=config.logging.max_bytes,
        backupCount=config.logging.backup_count
    )
    journal_handler.setLevel(logging.INFO)
    journal_handler.addFilter(LedgerRecordFilter())
    journal_handler.setFormatter(logging.Formatter(LEDGER_FORMAT))
    logger.addHandler(journal_handler)
    return logger


def get_store_logger() -> logging.Logger:
    """Get logger for inventory state transitions."""
    config = get_config()
    logger = setup_logger("store", config.logging.files.store)
    return add_ledger_journal(logger, config.logging.files.ledger)


def get_storage_logger() -> logging.Logger:
    """Get logger for persistence reads and writes."""
    config = get_config()
    return setup_logger("storage", config.logging.files.storage)


def get_error_logger() -> logging.Logger:
    """Get logger for error tracking."""
    config = get_config()
    return setup_logger("error", config.logging.files.error, "ERROR")


def get_api_logger() -> logging.Logger:
    """Get logger for HTTP API requests."""
    config = get_config()
    return setup_logger("api", config.logging.files.api)
