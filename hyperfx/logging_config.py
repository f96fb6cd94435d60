"""
Structured Logging Configuration Module

Provides JSON-formatted structured logging for HyperFX startup and
conversion operations.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "action": getattr(record, 'action', None),
            "account_id": getattr(record, 'account_id', None),
            "ledger": getattr(record, 'ledger', None),
            "code": getattr(record, 'code', None),
            "extra": getattr(record, 'extra', None)
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO", logger_name: str = "hyperfx",
                  log_format: str = "json") -> logging.Logger:
    """
    Setup logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the root application logger
        log_format: "json" for structured output, "text" for plain lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "hyperfx") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, account_id: Optional[int] = None,
               ledger: Optional[int] = None, code: Optional[int] = None,
               extra: Optional[dict] = None):
    """
    Log an action with structured data.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, etc.)
        message: Log message
        action: Action being performed
        account_id: Ledger account identifier involved
        ledger: Ledger (currency) involved
        code: Account code involved
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    fields = {}
    if action:
        fields['action'] = action
    if account_id is not None:
        fields['account_id'] = account_id
    if ledger is not None:
        fields['ledger'] = ledger
    if code is not None:
        fields['code'] = code
    if extra:
        fields['extra'] = extra

    logger.log(levelno, message, extra=fields)


def configure_logging(settings, logger_name: str = "hyperfx") -> logging.Logger:
    """Apply log_level and log_format from a HyperFXConfig"""
    return setup_logging(settings.log_level, logger_name, settings.log_format)
