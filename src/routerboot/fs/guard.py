# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/fs/guard.py

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict

log = logging.getLogger("routerboot")

FILE = "file"
DIRECTORY = "directory"
DIRECTORY_RECURSIVE = "directory-recursive"


class ProvisioningGuard:
    """
    Ledger of everything a bootstrap attempt created on disk.

    Paths are tracked as soon as they are created. Leaving the ``with`` block
    without calling ``commit()`` removes them again, newest first, so files
    go before the directories that contain them. Removal is best-effort: a
    failed rollback is logged and never raised.
    """

    def __init__(self) -> None:
        self._entries: Dict[Path, str] = {}

    def track_file(self, path: str | Path) -> None:
        self._entries[Path(path)] = FILE

    def track_directory(self, path: str | Path, recursive: bool = False) -> None:
        self._entries[Path(path)] = DIRECTORY_RECURSIVE if recursive else DIRECTORY

    def untrack(self, path: str | Path) -> None:
        self._entries.pop(Path(path), None)

    def tracked(self) -> Dict[Path, str]:
        return dict(self._entries)

    def commit(self) -> None:
        """Keep everything created so far."""
        self._entries.clear()

    def rollback(self) -> None:
        for path, kind in reversed(list(self._entries.items())):
            try:
                if kind == FILE:
                    path.unlink(missing_ok=True)
                elif kind == DIRECTORY:
                    if path.exists():
                        path.rmdir()
                else:
                    shutil.rmtree(path, ignore_errors=False)
                log.debug("Removed %s (%s)", path, kind)
            except FileNotFoundError:
                pass
            except OSError as exc:
                log.warning("Could not remove %s during rollback: %s", path, exc)
        self._entries.clear()

    def __enter__(self) -> "ProvisioningGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._entries:
            self.rollback()
        return False
