"""Logging for indexed-docs.

Uses Python's standard logging library.
- INFO/WARNING/ERROR always go to {tempdir}/indexed-docs-{epoch}.log
- DEBUG messages only appear when --debug flag is used
- Each session creates a new log file with epoch timestamp

Modules log through ``logging.getLogger(__name__)``; every logger under
the ``indexed_docs`` package ends up in the session file.
"""

import logging
import os
import tempfile
import time
from datetime import datetime
from pathlib import Path

# Generate log file with epoch timestamp (seconds since epoch)
_epoch_timestamp = int(time.time())
LOG_FILE = Path(tempfile.gettempdir()) / f"indexed-docs-{_epoch_timestamp}.log"

# Parent of every module logger in the package
_logger = logging.getLogger("indexed_docs")

# Track if debug mode is enabled (verbose logging)
_debug_enabled = False

# Flag to track if we've initialized logging
_initialized = False


def init_logging() -> None:
    """Initialize basic logging (INFO level) to the log file."""
    global _initialized
    if _initialized:
        return

    _initialized = True

    # Set logger to INFO level by default
    _logger.setLevel(logging.INFO)

    # File handler - append mode
    file_handler = logging.FileHandler(LOG_FILE, mode="a")
    file_handler.setLevel(logging.DEBUG)  # Handler accepts all, logger filters

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    file_handler.setFormatter(formatter)
    _logger.addHandler(file_handler)

    # Prevent propagation to root logger (avoids duplicate logs)
    _logger.propagate = False


def enable_debug() -> None:
    """Enable debug-level logging (more verbose output)."""
    global _debug_enabled

    init_logging()

    _debug_enabled = True
    _logger.setLevel(logging.DEBUG)

    _logger.info("=" * 60)
    _logger.info("indexed-docs debug session started at %s", datetime.now())
    _logger.info("PID: %s", os.getpid())
    _logger.info("=" * 60)


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return _debug_enabled


def get_log_file() -> Path:
    """Get the current session's log file path."""
    return LOG_FILE
