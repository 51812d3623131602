# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/bootstrap/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class Endpoint:
    """
    A listening endpoint. Present when it has a TCP port, a socket, or both.
    """
    port: int = 0          # 0 = unset
    socket: str = ""       # file name inside socketsdir, "" = unset

    @property
    def present(self) -> bool:
        return self.port > 0 or bool(self.socket)

    def __bool__(self) -> bool:
        return self.present


@dataclass
class DeploymentOptions:
    multi_master: bool = False
    bind_address: str = ""
    rw_endpoint: Endpoint = field(default_factory=Endpoint)
    ro_endpoint: Endpoint = field(default_factory=Endpoint)
    rw_x_endpoint: Endpoint = field(default_factory=Endpoint)
    ro_x_endpoint: Endpoint = field(default_factory=Endpoint)
    override_logdir: str = ""
    override_rundir: str = ""
    socketsdir: str = ""
    keyring_file_path: str = ""
    keyring_master_key_file_path: str = ""

    def socket_path(self, ep: Endpoint) -> str:
        return f"{self.socketsdir}/{ep.socket}"


@dataclass(frozen=True)
class RouterIdentity:
    router_id: int
    name: str
    cluster_name: str
    reused: bool = False   # True when recovered from an existing config


@dataclass(frozen=True)
class ClusterTopology:
    cluster_name: str
    replicaset_name: str
    multi_master: bool
    member_addresses: List[str] = field(default_factory=list)

    @property
    def bootstrap_server_addresses(self) -> str:
        return ",".join(self.member_addresses)


@dataclass(frozen=True)
class CredentialEntry:
    account_name: str
    secret: str = field(repr=False)
    attribute: str = "password"


@dataclass
class BootstrapResult:
    identity: RouterIdentity
    topology: ClusterTopology
    options: DeploymentOptions
    account_name: str
    config_path: Path
    backup_path: Optional[Path] = None
