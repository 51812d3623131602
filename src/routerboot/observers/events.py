# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one bootstrap invocation
    deployment: str   # "system" | "directory"
    target: str       # config file (system) or deployment directory

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(deployment: str, target: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "deployment": deployment,
        "target": target,
    }


# ---------------------------------------------------------------------
# Bootstrap lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BootstrapStarted(BaseEvent):
    router_name: str
    reconfigure: bool

@dataclass(frozen=True)
class TopologyDiscovered(BaseEvent):
    cluster: str
    replicaset: str
    multi_master: bool
    servers: str

@dataclass(frozen=True)
class RouterRegistered(BaseEvent):
    router_id: int
    router_name: str
    reused: bool

@dataclass(frozen=True)
class AccountProvisioned(BaseEvent):
    account: str

@dataclass(frozen=True)
class ConfigBackedUp(BaseEvent):
    path: str
    backup: str

@dataclass(frozen=True)
class ConfigWritten(BaseEvent):
    path: str

@dataclass(frozen=True)
class StartScriptsCreated(BaseEvent):
    scripts: list = field(default_factory=list)

@dataclass(frozen=True)
class BootstrapSucceeded(BaseEvent):
    router_name: str
    router_id: int
    cluster: str
    multi_master: bool
    connections: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)

@dataclass(frozen=True)
class BootstrapFailed(BaseEvent):
    error: str
