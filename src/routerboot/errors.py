# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/errors.py

from __future__ import annotations

from pathlib import Path


class BootstrapError(RuntimeError):
    """Base class for failures that abort a bootstrap attempt."""


# ---------------------------------------------------------------------
# Validation (raised before any side effect)
# ---------------------------------------------------------------------
class InvalidOptionError(BootstrapError, ValueError):
    """Bad router name, port, bind address or other user input."""


# ---------------------------------------------------------------------
# Conflicts the operator can resolve with a flag
# ---------------------------------------------------------------------
class ConflictError(BootstrapError):
    pass


class ReservedNameError(ConflictError):
    pass


class DirectoryNotEmptyError(ConflictError):
    pass


class RouterAlreadyRegisteredError(ConflictError):
    pass


class ClusterMismatchError(ConflictError):
    def __init__(self, message: str, existing_cluster: str):
        super().__init__(message)
        self.existing_cluster = existing_cluster


# ---------------------------------------------------------------------
# Remote (database / metadata) failures
# ---------------------------------------------------------------------
class RemoteError(BootstrapError):
    pass


class MetadataUnavailableError(RemoteError):
    """The metadata server could not be reached or queried."""


class MetadataInconsistentError(RemoteError):
    """The metadata server answered, but with data we cannot bootstrap from."""


class MultipleClustersError(MetadataInconsistentError):
    pass


class MultipleReplicasetsError(MetadataInconsistentError):
    pass


class AccountProvisioningError(RemoteError):
    pass


# ---------------------------------------------------------------------
# Local filesystem / credential store
# ---------------------------------------------------------------------
class DeploymentIOError(BootstrapError):
    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ConfigMoveError(DeploymentIOError):
    """Raised when the rendered configuration cannot be renamed into place."""


class KeyringError(BootstrapError):
    pass


# ---------------------------------------------------------------------
# Deliberate cancellation
# ---------------------------------------------------------------------
class UserAbort(Exception):
    """
    The operator cancelled the bootstrap (empty master key at the prompt).
    Not a failure: callers exit quietly without an error banner.
    """
