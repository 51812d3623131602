# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/observers/console.py

from __future__ import annotations

import typer

from routerboot.bootstrap.identity import SYSTEM_ROUTER_NAME

from .events import (
    BaseEvent,
    BootstrapStarted,
    BootstrapSucceeded,
    ConfigBackedUp,
)


class ConsoleObserver:
    """
    Operator-facing progress output. Only a few events are worth printing;
    everything else goes to the run log through LoggerObserver.
    """

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, BootstrapStarted):
            verb = "Reconfiguring" if event.reconfigure else "Bootstrapping"
            if event.deployment == "directory":
                typer.echo(f"\n{verb} MySQL Router instance at {event.target}...")
            else:
                typer.echo(f"\n{verb} system MySQL Router instance...")
        elif isinstance(event, ConfigBackedUp):
            typer.echo(f"\nExisting configurations backed up to {event.backup}")
        elif isinstance(event, BootstrapSucceeded):
            self._summary(event)

    def _summary(self, event: BootstrapSucceeded) -> None:
        label = "" if event.router_name in ("", SYSTEM_ROUTER_NAME) else f" '{event.router_name}'"
        mm = " (multi-master)" if event.multi_master else ""
        typer.echo(
            f"MySQL Router{label} has now been configured for the InnoDB cluster "
            f"'{event.cluster}'{mm}.\n"
        )
        typer.echo("The following connection information can be used to connect to the cluster.\n")

        titles = {"classic": "Classic MySQL protocol", "x": "X protocol"}
        for protocol, title in titles.items():
            conns = event.connections.get(protocol, {})
            if not any(conns.values()):
                continue
            typer.echo(f"{title} connections to cluster '{event.cluster}':")
            if conns.get("rw"):
                typer.echo(f"- Read/Write Connections: {conns['rw']}")
            if conns.get("ro"):
                typer.echo(f"- Read/Only Connections: {conns['ro']}")
            typer.echo("")
