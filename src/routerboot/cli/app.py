# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/cli/app.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, List, Optional

import typer

from routerboot.bootstrap.generator import DEFAULT_KEYRING_FILE_NAME, ConfigGenerator
from routerboot.config.loader import load_profile
from routerboot.config.models import BootstrapProfile
from routerboot.errors import BootstrapError, InvalidOptionError, UserAbort
from routerboot.logging.log import init_logging
from routerboot.mysql.session import connect_url
from routerboot.observers.console import ConsoleObserver
from routerboot.observers.dispatcher import EventBus
from routerboot.observers.jsonfile import JsonFileObserver
from routerboot.observers.logger import LoggerObserver


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="MySQL Router bootstrap CLI")

SYSTEM_CONFIG_FILE = Path("/etc/mysqlrouter/mysqlrouter.conf")
SYSTEM_KEYRING_FILE = Path("/var/lib/mysqlrouter") / DEFAULT_KEYRING_FILE_NAME
ROUTER_EXECUTABLE_NAME = "mysqlrouter"


def ask_secret(text: str) -> str:
    """Hidden-input prompt; an empty answer is returned as-is (means cancel)."""
    return typer.prompt(text, hide_input=True, default="", show_default=False)


def build_user_options(
    profile: BootstrapProfile,
    *,
    name: Optional[str],
    force: bool,
    base_port: Optional[str],
    bind_address: Optional[str],
    use_sockets: bool,
    skip_tcp: bool,
    logdir: Optional[str],
    rundir: Optional[str],
    socketsdir: Optional[str],
) -> Dict[str, str]:
    """
    Merge profile options with command line flags (flags win). Boolean flags
    are only added when set: the generator treats presence as 'on'.
    """
    options = profile.option_map()
    values = {
        "name": name,
        "base-port": base_port,
        "bind-address": bind_address,
        "logdir": logdir,
        "rundir": rundir,
        "socketsdir": socketsdir,
    }
    for key, value in values.items():
        if value is not None:
            options[key] = value
    for key, enabled in (("force", force), ("use-sockets", use_sockets), ("skip-tcp", skip_tcp)):
        if enabled:
            options[key] = ""
    return options


def resolve_router_executable(explicit: Optional[str]) -> Optional[str]:
    if explicit:
        return explicit
    return shutil.which(ROUTER_EXECUTABLE_NAME)


@app.callback()
def cli():
    """Provision MySQL Router deployments from InnoDB cluster metadata."""


@app.command()
def bootstrap(
    server: Optional[str] = typer.Argument(None, help="Metadata server URL, e.g. root@db-1:3306"),
    directory: Optional[Path] = typer.Option(None, "--directory", "-d", help="Self-contained deployment directory"),
    conf_file: Optional[Path] = typer.Option(None, "--conf-file", help="System deployment configuration file"),
    keyring_path: Optional[Path] = typer.Option(None, "--keyring-path", help="System deployment keyring file"),
    name: Optional[str] = typer.Option(None, "--name", help="Router instance name"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing conflicting deployment"),
    base_port: Optional[str] = typer.Option(None, "--base-port"),
    bind_address: Optional[str] = typer.Option(None, "--bind-address"),
    use_sockets: bool = typer.Option(False, "--use-sockets"),
    skip_tcp: bool = typer.Option(False, "--skip-tcp"),
    logdir: Optional[str] = typer.Option(None, "--logdir"),
    rundir: Optional[str] = typer.Option(None, "--rundir"),
    socketsdir: Optional[str] = typer.Option(None, "--socketsdir"),
    master_key_path: Optional[Path] = typer.Option(None, "--master-key-path"),
    router_executable: Optional[str] = typer.Option(None, "--router-executable"),
    profile_path: Optional[Path] = typer.Option(None, "--profile", help="YAML bootstrap profile"),
    events_file: Optional[Path] = typer.Option(None, "--events-file", help="Append JSON events here"),
    connect_timeout: Optional[int] = typer.Option(None, "--connect-timeout"),
    quiet: bool = typer.Option(False, "--quiet"),
    debug: bool = typer.Option(False, "--debug"),
):
    """
    Bootstrap a router against an InnoDB cluster and write its configuration.
    """
    logger, run_id, log_path = init_logging(verbose=debug, quiet=quiet)

    try:
        profile = load_profile(profile_path) if profile_path else BootstrapProfile()
        server_url = server or profile.server
        if not server_url:
            raise InvalidOptionError("Missing metadata server URL (argument or profile 'server')")

        user_options = build_user_options(
            profile,
            name=name,
            force=force,
            base_port=base_port,
            bind_address=bind_address,
            use_sockets=use_sockets,
            skip_tcp=skip_tcp,
            logdir=logdir,
            rundir=rundir,
            socketsdir=socketsdir,
        )

        observers: List = [LoggerObserver(logger)]
        if not quiet:
            observers.append(ConsoleObserver())
        if events_file:
            observers.append(JsonFileObserver(events_file))
        bus = EventBus(observers=observers)

        session = connect_url(
            server_url,
            prompt=ask_secret,
            connect_timeout=connect_timeout or profile.connect_timeout,
            password=profile.server_password,
        )
        try:
            generator = ConfigGenerator(
                session,
                router_executable=resolve_router_executable(
                    router_executable or profile.router_executable
                ),
                prompt=ask_secret,
                bus=bus,
                run_id=run_id,
            )
            mk = master_key_path or (Path(profile.master_key_path) if profile.master_key_path else None)
            target_dir = directory or (Path(profile.directory) if profile.directory else None)

            if target_dir is not None:
                generator.bootstrap_directory_deployment(
                    target_dir,
                    user_options,
                    keyring_master_key_file=mk,
                )
            else:
                generator.bootstrap_system_deployment(
                    conf_file or Path(profile.conf_file or SYSTEM_CONFIG_FILE),
                    user_options,
                    keyring_path or Path(profile.keyring_path or SYSTEM_KEYRING_FILE),
                    keyring_master_key_file=mk,
                )
        finally:
            session.close()

    except UserAbort:
        logger.debug("Bootstrap cancelled by user")
        raise typer.Exit(code=0)
    except BootstrapError as exc:
        logger.debug("Bootstrap failed", exc_info=True)
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        typer.echo(f"See {log_path} for details.", err=True)
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
