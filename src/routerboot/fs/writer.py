# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/fs/writer.py

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Optional

from routerboot.errors import ConfigMoveError, DeploymentIOError
from routerboot.fs.guard import ProvisioningGuard

log = logging.getLogger("routerboot")


def make_file_private(path: str | Path) -> None:
    """Owner read/write only."""
    try:
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
    except OSError as exc:
        raise DeploymentIOError(
            f"Could not set permissions for {path}: {exc.strerror or exc}", path
        ) from exc


def make_file_executable(path: str | Path) -> None:
    """Owner read/write/execute only."""
    try:
        os.chmod(path, stat.S_IRWXU)
    except OSError as exc:
        raise DeploymentIOError(
            f"Could not change permissions for {path}: {exc.strerror or exc}", path
        ) from exc


def files_equal(a: str | Path, b: str | Path) -> bool:
    a, b = Path(a), Path(b)
    try:
        if a.stat().st_size != b.stat().st_size:
            return False
        return a.read_bytes() == b.read_bytes()
    except OSError as exc:
        raise DeploymentIOError(
            f"Could not compare {a} with {b}: {exc.strerror or exc}", exc.filename or a
        ) from exc


class AtomicConfigWriter:
    """
    Writes a configuration file through ``<path>.tmp`` and a single rename,
    so a crash leaves either the old or the new file, never a truncated one.

    The previous file is copied to ``<path>.bak`` when its content changes.
    """

    def __init__(self, path: str | Path, guard: Optional[ProvisioningGuard] = None):
        self.path = Path(path)
        self.guard = guard

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def prepare(self) -> None:
        """Open (and truncate) the temp file early so we fail before touching the cluster."""
        try:
            with open(self.tmp_path, "w", encoding="utf-8"):
                pass
        except OSError as exc:
            raise DeploymentIOError(
                f"Could not open {self.tmp_path} for writing: {exc.strerror or exc}",
                self.tmp_path,
            ) from exc
        if self.guard is not None:
            self.guard.track_file(self.tmp_path)

    def write(self, content: str) -> None:
        try:
            with open(self.tmp_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as exc:
            raise DeploymentIOError(
                f"Could not write {self.tmp_path}: {exc.strerror or exc}",
                self.tmp_path,
            ) from exc

    def backup_if_different(self) -> Optional[Path]:
        if not self.path.exists():
            return None
        if files_equal(self.path, self.tmp_path):
            log.debug("Configuration %s unchanged, no backup needed", self.path)
            return None
        try:
            shutil.copyfile(self.path, self.backup_path)
        except OSError as exc:
            raise DeploymentIOError(
                f"Could not back up {self.path} to {self.backup_path}: {exc.strerror or exc}",
                self.backup_path,
            ) from exc
        make_file_private(self.backup_path)
        log.debug("Existing configuration backed up to %s", self.backup_path)
        return self.backup_path

    def replace(self) -> Optional[Path]:
        """Back up if needed, move the temp file into place and harden it."""
        backup = self.backup_if_different()
        try:
            os.replace(self.tmp_path, self.path)
        except OSError as exc:
            raise ConfigMoveError(
                f"Could not move configuration file '{self.tmp_path}' to final location: "
                f"{exc.strerror or exc}",
                self.path,
            ) from exc
        if self.guard is not None:
            self.guard.untrack(self.tmp_path)
        make_file_private(self.path)
        return backup
