# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/observers/logger.py

from __future__ import annotations
import logging
from .events import BaseEvent, BootstrapFailed

_CONTEXT_KEYS = ("ts", "run_id", "deployment", "target")


class LoggerObserver:
    """Mirrors every bootstrap event into the run log."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in _CONTEXT_KEYS)
        level = logging.ERROR if isinstance(event, BootstrapFailed) else logging.DEBUG

        self.logger.log(level, f"[EVENT] {etype} run={d['run_id']} {d['deployment']}:{d['target']} {msg}")
