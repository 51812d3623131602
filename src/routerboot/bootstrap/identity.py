# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/bootstrap/identity.py

from __future__ import annotations

import configparser
import logging
from pathlib import Path

from routerboot.bootstrap.models import RouterIdentity
from routerboot.errors import (
    ClusterMismatchError,
    DeploymentIOError,
    InvalidOptionError,
    RemoteError,
    ReservedNameError,
    RouterAlreadyRegisteredError,
)
from routerboot.metadata.cluster import ClusterMetadata
from routerboot.mysql.session import ER_DUP_ENTRY, SessionError

log = logging.getLogger("routerboot")

SYSTEM_ROUTER_NAME = "system"
MAX_ROUTER_NAME_LENGTH = 255  # must match the metadata routers.router_name column


def validate_router_name(name: str, directory_deployment: bool = False) -> None:
    if directory_deployment and name == SYSTEM_ROUTER_NAME:
        raise ReservedNameError(f"Router name '{SYSTEM_ROUTER_NAME}' is reserved")
    if "\n" in name or "\r" in name:
        raise InvalidOptionError(f"Router name '{name}' contains invalid characters.")
    if len(name.encode("utf-8")) > MAX_ROUTER_NAME_LENGTH:
        raise InvalidOptionError(
            f"Router name '{name}' too long (max {MAX_ROUTER_NAME_LENGTH})."
        )


def _metadata_cache_sections(parser: configparser.ConfigParser) -> list[str]:
    return [
        s for s in parser.sections()
        if s == "metadata_cache" or s.startswith("metadata_cache:")
    ]


def router_id_from_config(config_path: str | Path, cluster_name: str, force: bool = False) -> int:
    """
    Router id recorded for ``cluster_name`` in an existing configuration, 0 if none.

    Raises ClusterMismatchError when the file belongs to another cluster and
    ``force`` was not given.
    """
    path = Path(config_path)
    existing_cluster = ""

    if path.exists():
        parser = configparser.ConfigParser(
            interpolation=None, strict=False, allow_no_value=True
        )
        try:
            with open(path, encoding="utf-8") as f:
                parser.read_file(f)
        except OSError as exc:
            raise DeploymentIOError(
                f"Could not read existing configuration {path}: {exc.strerror or exc}", path
            ) from exc
        except (configparser.Error, UnicodeDecodeError) as exc:
            raise DeploymentIOError(f"Could not parse existing configuration {path}: {exc}", path) from exc

        sections = _metadata_cache_sections(parser)
        if len(sections) > 1:
            raise InvalidOptionError(
                "Bootstrapping of Router with multiple metadata_cache sections not supported"
            )

        for section in sections:
            if not parser.has_option(section, "metadata_cluster"):
                continue
            existing_cluster = parser.get(section, "metadata_cluster") or ""
            if existing_cluster != cluster_name:
                continue
            if parser.has_option(section, "router_id"):
                raw = (parser.get(section, "router_id") or "").strip()
                if not raw.isdigit():
                    raise InvalidOptionError(
                        f"Invalid router_id '{raw}' for cluster '{cluster_name}' in {path}"
                    )
                return int(raw)
            log.warning("router_id not set for cluster %s", cluster_name)
            return 0

    if not force:
        raise ClusterMismatchError(
            f"The given Router instance is already configured for a cluster named "
            f"'{existing_cluster}'.\n"
            "If you'd like to replace it, please use the --force configuration option.",
            existing_cluster,
        )
    return 0


class RouterIdentityManager:
    """
    Unregistered -> Registered, or Recovered -> validated (-> Registered when
    the recovered id no longer exists upstream).
    """

    def __init__(self, metadata: ClusterMetadata, hostname: str):
        self.metadata = metadata
        self.hostname = hostname

    def establish(
        self,
        router_name: str,
        cluster_name: str,
        recovered_id: int = 0,
        force: bool = False,
    ) -> RouterIdentity:
        if recovered_id > 0:
            try:
                self.metadata.check_router_id(recovered_id, self.hostname)
            except RemoteError as exc:
                log.warning(
                    "router_id %s from existing configuration is not usable, registering again: %s",
                    recovered_id,
                    exc,
                )
            else:
                log.debug("Reusing router_id %s from existing configuration", recovered_id)
                return RouterIdentity(recovered_id, router_name, cluster_name, reused=True)

        try:
            router_id = self.metadata.register_router(router_name, self.hostname, overwrite=force)
        except SessionError as exc:
            if exc.code == ER_DUP_ENTRY:
                raise RouterAlreadyRegisteredError(
                    f"It appears that a router instance named '{router_name}' has been "
                    "previously configured in this host. If that instance no longer exists, "
                    "use the --force option to overwrite it."
                ) from exc
            raise RemoteError(
                f"While registering router instance in metadata server: {exc}"
            ) from exc

        log.debug("Registered router '%s' with router_id %s", router_name, router_id)
        return RouterIdentity(router_id, router_name, cluster_name)
