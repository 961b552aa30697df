"""
Logging setup for appboot.

Container logs go to the first YARN log directory; the console gets either
rich output or the plain level/message format.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

from appboot.environment import ENV_LOG_DIRS

# Global console for pretty output
console = Console(stderr=True)

ENV_LOG_LEVEL = "APPBOOT_LOG_LEVEL"
ENV_LOG_FORMAT = "APPBOOT_LOG_FORMAT"
LOG_FILE_NAME = "jobmanager.log"


def logging_settings(environment: Mapping[str, str]) -> Dict[str, Any]:
    """Read logging settings from the container environment."""
    log_dirs = environment.get(ENV_LOG_DIRS, "")
    first_dir = log_dirs.split(",")[0].strip() if log_dirs else ""
    return {
        "log_file": Path(first_dir) / LOG_FILE_NAME if first_dir else None,
        "log_level": environment.get(ENV_LOG_LEVEL, "INFO").upper(),
        "log_format": environment.get(ENV_LOG_FORMAT, "structured"),
    }


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: str = "INFO",
    log_format: str = "structured",
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for the bootstrap process.

    Args:
        log_file: Path to log file, or None for console only
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        console_output: Also log to console

    Returns:
        Configured logger
    """
    logger = logging.getLogger("appboot")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler = RichHandler(console=console, rich_tracebacks=True, show_time=False)
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(
                logging.Formatter("%(levelname)s: %(message)s")
            )
        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "stage"):
            log_data["stage"] = record.stage
        if hasattr(record, "event"):
            log_data["event"] = record.event
        if hasattr(record, "metadata"):
            log_data["metadata"] = record.metadata

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)
