# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/logging/log.py

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_IDENTIFIED_BY = re.compile(r"(IDENTIFIED BY\s+)'(?:[^'\\]|\\.)*'", re.IGNORECASE)


def redact(message: str) -> str:
    """Mask account passwords in SQL text."""
    return _IDENTIFIED_BY.sub(r"\1'****'", message)


class RedactingFilter(logging.Filter):
    """Applied to every handler so CREATE USER statements never hit disk in clear."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def _console_level(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.WARNING
    return logging.DEBUG if verbose else logging.INFO


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "routerboot",
    verbose: bool = False,
    quiet: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per bootstrap run plus console output.

    The file always gets DEBUG (SQL included, passwords masked). The console
    follows --quiet / --debug. The run_id is shared with the observers so
    events and log lines of one run can be matched.
    """
    run_id = str(uuid.uuid4())

    base_dir = base_dir or Path.home() / ".routerboot" / "logs"
    base_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{stamp}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    redacting = RedactingFilter()

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(_console_level(verbose, quiet))

    for handler in (file_handler, console):
        handler.setFormatter(formatter)
        handler.addFilter(redacting)
        logger.addHandler(handler)

    logger.debug("routerboot run %s, log file %s", run_id, log_path)
    return logger, run_id, log_path
