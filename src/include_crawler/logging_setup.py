# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured logging setup for the include crawler."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add any extra fields
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


def parse_log_level(level: Union[str, int]) -> int:
    """Convert a level name ("debug", "INFO") or number to a logging level.

    Raises:
        ValueError: If the name is not a standard level.
    """
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")
    return int(getattr(logging, name))


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: int = logging.WARNING,
    console_output: bool = True,
) -> Optional[Path]:
    """Set up logging for a crawl.

    The console handler writes to stderr; stdout is reserved for the report.

    Args:
        log_dir: Directory for JSON-lines log files. If None, no file is written.
        log_level: Logging level (default: WARNING)
        console_output: Whether to also output to console (default: True)

    Returns:
        Path of the log file, or None when no log directory was given.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers
    root_logger.handlers.clear()

    log_file: Optional[Path] = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        # File handler with structured JSON logging
        log_file = log_dir / f"include_crawler_{datetime.now(timezone.utc).strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # Console handler with human-readable format (if enabled)
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    logging.debug(f"Logging initialized. Log file: {log_file}")
    return log_file
