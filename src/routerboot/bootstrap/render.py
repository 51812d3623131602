# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/bootstrap/render.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

from routerboot.bootstrap.models import ClusterTopology, DeploymentOptions, Endpoint
from routerboot.errors import DeploymentIOError

log = logging.getLogger("routerboot")

TEMPLATES_ROOT = Path(__file__).resolve().parents[1] / "templates"

CONFIG_TEMPLATE = "mysqlrouter.conf.j2"
CONFIG_FILE_NAME = "mysqlrouter.conf"
PID_FILE_NAME = "mysqlrouter.pid"
DEFAULT_BIND_ADDRESS = "0.0.0.0"


@dataclass(frozen=True)
class RoutingSection:
    section: str
    port: int
    socket: str
    role: str
    mode: str
    protocol: str


def _environment(templates_root: Path = TEMPLATES_ROOT) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_root)),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _render(template: str, context: Dict) -> str:
    env = _environment()
    try:
        tmpl = env.get_template(template)
    except TemplateNotFound as e:
        raise DeploymentIOError(f"Missing template: {template}", TEMPLATES_ROOT / template) from e
    return tmpl.render(**context)


def routing_sections(
    options: DeploymentOptions, cluster: str, replicaset: str
) -> List[RoutingSection]:
    key = f"{cluster}_{replicaset}"
    layout = [
        (options.rw_endpoint, "_rw", "PRIMARY", "read-write", "classic"),
        (options.ro_endpoint, "_ro", "SECONDARY", "read-only", "classic"),
        (options.rw_x_endpoint, "_x_rw", "PRIMARY", "read-write", "x"),
        (options.ro_x_endpoint, "_x_ro", "SECONDARY", "read-only", "x"),
    ]
    sections = []
    for ep, suffix, role, mode, protocol in layout:
        if not ep:
            continue
        sections.append(
            RoutingSection(
                section=key + suffix,
                port=ep.port,
                socket=options.socket_path(ep) if ep.socket else "",
                role=role,
                mode=mode,
                protocol=protocol,
            )
        )
    return sections


def render_config(
    *,
    router_id: int,
    router_name: str,
    topology: ClusterTopology,
    username: str,
    options: DeploymentOptions,
) -> str:
    context = {
        "name": router_name,
        "logging_folder": options.override_logdir,
        "runtime_folder": options.override_rundir,
        "keyring_path": options.keyring_file_path,
        "master_key_path": options.keyring_master_key_file_path,
        "cluster": topology.cluster_name,
        "replicaset": topology.replicaset_name,
        "router_id": router_id,
        "bootstrap_server_addresses": topology.bootstrap_server_addresses,
        "username": username,
        "bind_address": options.bind_address or DEFAULT_BIND_ADDRESS,
        "routes": routing_sections(options, topology.cluster_name, topology.replicaset_name),
    }
    return _render(CONFIG_TEMPLATE, context)


def _connection_target(options: DeploymentOptions, ep: Endpoint) -> Optional[str]:
    if ep.port > 0:
        return f"localhost:{ep.port}"
    if ep.socket:
        return options.socket_path(ep)
    return None


def connection_summary(options: DeploymentOptions) -> Dict[str, Dict[str, Optional[str]]]:
    """Where clients should connect, per protocol and role."""
    return {
        "classic": {
            "rw": _connection_target(options, options.rw_endpoint),
            "ro": _connection_target(options, options.ro_endpoint),
        },
        "x": {
            "rw": _connection_target(options, options.rw_x_endpoint),
            "ro": _connection_target(options, options.ro_x_endpoint),
        },
    }


def render_start_scripts(
    *,
    directory: Path,
    executable: str,
    interactive_master_key: bool,
    windows: Optional[bool] = None,
) -> Dict[str, str]:
    """
    Script file name -> content for the deployment directory.
    """
    windows = (os.name == "nt") if windows is None else windows
    context = {
        "directory": str(directory),
        "executable": str(executable),
        "interactive_master_key": interactive_master_key,
        "pid_file": PID_FILE_NAME,
        "config_file": CONFIG_FILE_NAME,
        "plugin_dir": str(Path(executable).resolve().parent.parent / "lib"),
    }
    names = ("start.ps1", "stop.ps1") if windows else ("start.sh", "stop.sh")
    return {name: _render(f"{name}.j2", context) for name in names}
