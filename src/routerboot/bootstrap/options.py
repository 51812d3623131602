# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/bootstrap/options.py

from __future__ import annotations

import ipaddress
import re
from typing import Any, Mapping

from routerboot.bootstrap.models import DeploymentOptions, Endpoint
from routerboot.errors import InvalidOptionError

DEFAULT_RW_PORT = 6446
DEFAULT_RO_PORT = 6447
DEFAULT_RW_X_PORT = 64460
DEFAULT_RO_X_PORT = 64470

RW_SOCKET_NAME = "mysql.sock"
RO_SOCKET_NAME = "mysqlro.sock"
RW_X_SOCKET_NAME = "mysqlx.sock"
RO_X_SOCKET_NAME = "mysqlxro.sock"

MAX_PORT = 65535

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_FALSY = {"0", "false", "no", "off"}


def is_set(raw: Mapping[str, Any], key: str) -> bool:
    """Flags are enabled by presence; an explicit false-ish value disables them."""
    if key not in raw:
        return False
    value = raw[key]
    if value is None or value is False:
        return False
    return str(value).strip().lower() not in _FALSY


def parse_base_port(value: Any) -> int:
    text = str(value)
    if not re.fullmatch(r"[+]?\d+", text.strip()) or text != text.strip():
        raise InvalidOptionError(f"Invalid base-port value {value}")
    port = int(text)
    if port <= 0 or port > MAX_PORT:
        raise InvalidOptionError(f"Invalid base-port value {value}")
    return port


def _valid_hostname(host: str) -> bool:
    if not host or len(host) > 253:
        return False
    labels = host[:-1].split(".") if host.endswith(".") else host.split(".")
    return all(_HOSTNAME_LABEL.match(label) for label in labels)


def validate_bind_address(value: Any) -> str:
    address = str(value).strip()
    candidate = address[1:-1] if address.startswith("[") and address.endswith("]") else address
    try:
        ipaddress.ip_address(candidate)
        return address
    except ValueError:
        pass
    if _valid_hostname(candidate):
        return address
    raise InvalidOptionError(f"Invalid bind-address value {value}")


def ports_needed(multi_master: bool) -> int:
    """TCP ports handed out from base-port: RW and X RW, plus both RO ports on single-primary."""
    return 2 if multi_master else 4


def validate_raw_options(raw: Mapping[str, Any]) -> None:
    """
    Checks that do not need the cluster topology; run before any side effect.

    The base-port range is checked against the smallest layout here; the
    single-primary layout is checked again right after topology discovery.
    """
    if "base-port" in raw:
        base_port = parse_base_port(raw["base-port"])
        if not is_set(raw, "skip-tcp") and base_port + ports_needed(True) - 1 > MAX_PORT:
            raise InvalidOptionError(
                f"Invalid base-port value {raw['base-port']}: port range exceeds {MAX_PORT}"
            )
    if "bind-address" in raw:
        validate_bind_address(raw["bind-address"])


def resolve_options(raw: Mapping[str, Any], multi_master: bool) -> DeploymentOptions:
    """
    Turn user options into concrete endpoints.

    Ports are handed out sequentially from base-port (when given) in the order
    classic RW, classic RO, X RW, X RO; RO endpoints do not exist on a
    multi-primary cluster.
    """
    base_port = parse_base_port(raw["base-port"]) if "base-port" in raw else 0
    use_sockets = is_set(raw, "use-sockets")
    skip_tcp = is_set(raw, "skip-tcp")

    options = DeploymentOptions(multi_master=multi_master)
    if "bind-address" in raw:
        options.bind_address = validate_bind_address(raw["bind-address"])

    def next_port(default: int) -> int:
        nonlocal base_port
        if base_port == 0:
            return default
        port = base_port
        if port > MAX_PORT:
            raise InvalidOptionError(f"Invalid base-port value {raw['base-port']}: port range exceeds {MAX_PORT}")
        base_port += 1
        return port

    layout = [
        ("rw_endpoint", RW_SOCKET_NAME, DEFAULT_RW_PORT, False),
        ("ro_endpoint", RO_SOCKET_NAME, DEFAULT_RO_PORT, True),
        ("rw_x_endpoint", RW_X_SOCKET_NAME, DEFAULT_RW_X_PORT, False),
        ("ro_x_endpoint", RO_X_SOCKET_NAME, DEFAULT_RO_X_PORT, True),
    ]
    for attr, socket_name, default_port, read_only in layout:
        if read_only and multi_master:
            continue
        ep = Endpoint()
        if use_sockets:
            ep.socket = socket_name
        if not skip_tcp:
            ep.port = next_port(default_port)
        setattr(options, attr, ep)

    if "logdir" in raw:
        options.override_logdir = str(raw["logdir"])
    if "rundir" in raw:
        options.override_rundir = str(raw["rundir"])
    if "socketsdir" in raw:
        options.socketsdir = str(raw["socketsdir"])
    return options
