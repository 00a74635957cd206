"""
Logging setup for ReadRank.

Module loggers live under the ``readrank`` logger, so configuring that one
name covers the sampler, the resolver, the store and the service. Records
may carry structured rating context as ``extra={'extra_data': {...}}``
(book ids, band, rating, position); both formatters render it.

Usage:
    from readrank.logging_config import setup_logging
    logger = setup_logging("readrank")
    logger.info("Committed rating", extra={'extra_data': {'book_id': 3, 'band': 'loved'}})
"""

import logging
import os
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """The ``extra_data`` mapping attached to ``record``, or an empty dict."""
    extra_data = getattr(record, 'extra_data', None)
    return dict(extra_data) if extra_data else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; rating context goes under ``data``."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "service": self.service_name,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = record_context(record)
        if context:
            entry["data"] = context

        # Enum members (SentimentBand, Terminal) serialise by value
        return json.dumps(entry, default=lambda value: getattr(value, 'value', str(value)))


class ServiceFormatter(logging.Formatter):
    """Text lines prefixed with the service name, context appended as key=value."""

    def __init__(self, service_name: str):
        # [readrank] 2026-01-26 19:45:00 - INFO - Message | book_id=3 band=loved
        super().__init__(
            fmt=f'[{service_name}] %(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        pairs = ' '.join(f"{key}={getattr(value, 'value', value)}" for key, value in context.items())
        head, newline, rest = line.partition('\n')
        return f"{head} | {pairs}{newline}{rest}"


def setup_logging(
    service_name: str,
    log_file: Optional[str] = None,
    use_json: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the ``service_name`` logger and return it.

    Args:
        service_name: Logger to configure. Use "readrank" to cover every
                      module logger in the package.
        log_file: Optional path to log file. If None, logs to console only.
        use_json: Whether to use JSON format. If None, uses JSON when
                  LOG_FORMAT is "json".
    """
    level = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    if use_json is None:
        use_json = os.getenv('LOG_FORMAT', '').lower() == 'json'
    formatter = JSONFormatter(service_name) if use_json else ServiceFormatter(service_name)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # No duplicate lines through the root logger
    logger.propagate = False
    return logger


def silence_noisy_loggers():
    """Raise httpx/httpcore (catalog lookups) and asyncio to WARNING."""
    for logger_name in ('httpx', 'httpcore', 'asyncio'):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
