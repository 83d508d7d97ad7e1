"""Logging for cargo-pgo.

Records go to stderr, stdout carries the diagnostics forwarded from Cargo.
The initial level is taken from `CARGO_PGO_LOG`.
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "[cargo-pgo][%(levelname)s] %(message)s"
FILE_LOG_FORMAT = "[%(asctime)s][%(levelname)s] %(message)s"
LOG_LEVEL_ENV = "CARGO_PGO_LOG"

log = logging.getLogger("cargo_pgo")
log.propagate = False

_console = logging.StreamHandler(sys.stderr)
_console.setFormatter(logging.Formatter(LOG_FORMAT))
log.addHandler(_console)


def set_log_level(level_name: str):
    """Sets the level of the cargo-pgo logger, unknown names fall back to INFO."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    log.setLevel(level)


def setup_file_logging(log_file: str):
    """Additionally appends all records of the current level to `log_file`."""
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        log.warning(f"Cannot write log file {log_file}: {e}")
        return
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    log.addHandler(handler)
    log.debug(f"Logging into {log_file}")


set_log_level(os.getenv(LOG_LEVEL_ENV, "INFO"))
