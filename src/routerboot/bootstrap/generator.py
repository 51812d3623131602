# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/bootstrap/generator.py

from __future__ import annotations

import logging
import os
import shutil
import socket
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import typer

from routerboot.bootstrap.credentials import CredentialProvisioner
from routerboot.bootstrap.identity import (
    SYSTEM_ROUTER_NAME,
    RouterIdentityManager,
    router_id_from_config,
    validate_router_name,
)
from routerboot.bootstrap.models import BootstrapResult
from routerboot.bootstrap.options import is_set, resolve_options, validate_raw_options
from routerboot.bootstrap.render import (
    CONFIG_FILE_NAME,
    connection_summary,
    render_config,
    render_start_scripts,
)
from routerboot.errors import (
    DeploymentIOError,
    DirectoryNotEmptyError,
    InvalidOptionError,
    KeyringError,
    UserAbort,
)
from routerboot.fs.guard import ProvisioningGuard
from routerboot.fs.writer import AtomicConfigWriter, make_file_executable, make_file_private
from routerboot.keyring.store import Keyring, init_keyring, init_keyring_with_key
from routerboot.metadata.cluster import ClusterMetadata
from routerboot.metadata.discovery import discover_topology
from routerboot.observers.dispatcher import EventBus
from routerboot.observers.events import (
    AccountProvisioned,
    BootstrapFailed,
    BootstrapStarted,
    BootstrapSucceeded,
    ConfigBackedUp,
    ConfigWritten,
    RouterRegistered,
    StartScriptsCreated,
    TopologyDiscovered,
    new_ctx,
)

log = logging.getLogger("routerboot")

DEFAULT_KEYRING_FILE_NAME = "keyring"
SYSTEM_SOCKETS_DIR = "/tmp"
MAX_MASTER_KEY_ATTEMPTS = 5

MASTER_KEY_NOTICE = (
    "MySQL Router needs to create a InnoDB cluster metadata client account.\n"
    "To allow secure storage of its password, please provide an encryption key.\n"
    "To generate a random encryption key to be stored in a local obscured file,\n"
    "and allow the router to start without interaction, press Return to cancel\n"
    "and use the --master-key-path option to specify a file location.\n"
)


def _prompt_unavailable(text: str) -> str:
    raise KeyringError(
        f"{text}: no interactive prompt available, use --master-key-path instead"
    )


class ConfigGenerator:
    """
    Bootstraps a router deployment from a live InnoDB cluster.

    Remote changes run inside one transaction; local files are created under
    a ProvisioningGuard so an aborted run removes what it created.
    """

    def __init__(
        self,
        session,
        *,
        router_executable: Optional[str | Path] = None,
        hostname: Optional[str] = None,
        prompt: Optional[Callable[[str], str]] = None,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
    ):
        self.session = session
        self.router_executable = str(router_executable) if router_executable else None
        self.hostname = hostname or socket.gethostname()
        self.prompt = prompt or _prompt_unavailable
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.metadata = ClusterMetadata(session)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def bootstrap_system_deployment(
        self,
        config_file_path: str | Path,
        user_options: Mapping[str, Any],
        keyring_file_path: str | Path,
        keyring_master_key_file: Optional[str | Path] = None,
    ) -> BootstrapResult:
        options: Dict[str, Any] = dict(user_options)
        router_name = str(options.get("name") or "")
        if router_name:
            validate_router_name(router_name)
        else:
            router_name = SYSTEM_ROUTER_NAME
        validate_raw_options(options)
        options.setdefault("socketsdir", SYSTEM_SOCKETS_DIR)

        config_path = Path(config_file_path)
        ctx = new_ctx("system", str(config_path), run_id=self.run_id)

        with self._reporting(ctx):
            self.metadata.check_metadata_schema()
            with ProvisioningGuard() as guard:
                writer = AtomicConfigWriter(config_path, guard)
                writer.prepare()
                keyring = self._open_keyring(Path(keyring_file_path), keyring_master_key_file, guard)

                result = self._bootstrap_deployment(
                    ctx,
                    writer,
                    router_name,
                    options,
                    keyring,
                    keyring_file_path=str(keyring_file_path),
                    master_key_file_path=str(keyring_master_key_file or ""),
                )
                result.backup_path = self._install_config(ctx, writer)
                guard.commit()

        self._succeeded(ctx, result)
        return result

    def bootstrap_directory_deployment(
        self,
        directory: str | Path,
        user_options: Mapping[str, Any],
        keyring_file_name: str = DEFAULT_KEYRING_FILE_NAME,
        keyring_master_key_file: Optional[str | Path] = None,
    ) -> BootstrapResult:
        options: Dict[str, Any] = dict(user_options)
        force = is_set(options, "force")
        router_name = str(options.get("name") or "")
        if "name" in options:
            validate_router_name(router_name, directory_deployment=True)
        validate_raw_options(options)
        if not self.router_executable:
            raise InvalidOptionError(
                "Could not find the mysqlrouter executable, use --router-executable"
            )

        path = Path(directory)
        ctx = new_ctx("directory", str(path), run_id=self.run_id)

        with self._reporting(ctx):
            self.metadata.check_metadata_schema()
            with ProvisioningGuard() as guard:
                if self._mkdir(path):
                    guard.track_directory(path, recursive=True)
                elif not path.is_dir():
                    raise DeploymentIOError(f"{directory} exists and is not a directory", path)
                path = path.resolve()
                config_path = path / CONFIG_FILE_NAME
                if not config_path.exists() and not force and any(path.iterdir()):
                    raise DirectoryNotEmptyError(
                        f"Directory {directory} already contains files. "
                        "Use --force to bootstrap into it anyway."
                    )

                options.setdefault("logdir", str(path / "log"))
                options.setdefault("rundir", str(path / "run"))
                options.setdefault("socketsdir", str(path))
                for key in ("logdir", "rundir"):
                    if self._mkdir(Path(options[key])):
                        guard.track_directory(options[key])

                writer = AtomicConfigWriter(config_path, guard)
                writer.prepare()

                keyring_path = Path(options["rundir"]).resolve() / keyring_file_name
                master_key_file = Path(keyring_master_key_file) if keyring_master_key_file else None
                tmp_master_key_file = None
                if master_key_file is not None:
                    tmp_master_key_file = master_key_file.with_name(master_key_file.name + ".tmp")
                    guard.track_file(tmp_master_key_file)
                    if master_key_file.exists():
                        self._copy(master_key_file, tmp_master_key_file)
                keyring = self._open_keyring(keyring_path, tmp_master_key_file, guard)

                result = self._bootstrap_deployment(
                    ctx,
                    writer,
                    router_name,
                    options,
                    keyring,
                    keyring_file_path=str(keyring_path),
                    master_key_file_path=str(master_key_file or ""),
                )
                result.backup_path = self._install_config(ctx, writer)

                if tmp_master_key_file is not None:
                    self._install_master_key(tmp_master_key_file, master_key_file, guard)

                self.create_start_scripts(
                    path, interactive_master_key=master_key_file is None, guard=guard, ctx=ctx
                )
                guard.commit()

        self._succeeded(ctx, result)
        return result

    # ------------------------------------------------------------------
    # Core sequence shared by both deployments
    # ------------------------------------------------------------------
    def _bootstrap_deployment(
        self,
        ctx: Dict[str, Any],
        writer: AtomicConfigWriter,
        router_name: str,
        options: Dict[str, Any],
        keyring: Keyring,
        *,
        keyring_file_path: str,
        master_key_file_path: str,
    ) -> BootstrapResult:
        force = is_set(options, "force")
        config_path = writer.path

        with self.session.transaction() as trx:
            topology = discover_topology(self.session)
            self.bus.emit(
                TopologyDiscovered(
                    cluster=topology.cluster_name,
                    replicaset=topology.replicaset_name,
                    multi_master=topology.multi_master,
                    servers=topology.bootstrap_server_addresses,
                    **ctx,
                )
            )

            deployment = resolve_options(options, topology.multi_master)
            deployment.keyring_file_path = keyring_file_path
            deployment.keyring_master_key_file_path = master_key_file_path

            recovered_id = 0
            if config_path.exists():
                recovered_id = router_id_from_config(config_path, topology.cluster_name, force)
            self.bus.emit(
                BootstrapStarted(router_name=router_name, reconfigure=recovered_id > 0, **ctx)
            )

            identity = RouterIdentityManager(self.metadata, self.hostname).establish(
                router_name, topology.cluster_name, recovered_id, force
            )
            self.bus.emit(
                RouterRegistered(
                    router_id=identity.router_id,
                    router_name=identity.name,
                    reused=identity.reused,
                    **ctx,
                )
            )

            provisioner = CredentialProvisioner(self.session, keyring)
            entry = provisioner.provision(identity.router_id)
            provisioner.apply_account(entry)
            self.bus.emit(AccountProvisioned(account=entry.account_name, **ctx))

            self.metadata.update_router_info(identity.router_id, deployment)

            writer.write(
                render_config(
                    router_id=identity.router_id,
                    router_name=router_name,
                    topology=topology,
                    username=entry.account_name,
                    options=deployment,
                )
            )
            # The new file is only renamed into place after this commit; until
            # then the previous configuration stays authoritative.
            trx.commit()

        return BootstrapResult(
            identity=identity,
            topology=topology,
            options=deployment,
            account_name=entry.account_name,
            config_path=config_path,
        )

    # ------------------------------------------------------------------
    # Keyring
    # ------------------------------------------------------------------
    def init_keyring(self, keyring_file: Path, master_key_file: Optional[str | Path]) -> Keyring:
        if master_key_file:
            return init_keyring(keyring_file, master_key_file, create_if_missing=True)
        return init_keyring_with_key(keyring_file, self._ask_master_key(keyring_file), True)

    def _ask_master_key(self, keyring_file: Path) -> str:
        if keyring_file.exists():
            key = self.prompt(f"Please provide the encryption key for key file at {keyring_file}")
            if not key:
                raise UserAbort()
            return key

        typer.echo(MASTER_KEY_NOTICE)
        for _ in range(MAX_MASTER_KEY_ATTEMPTS):
            key = self.prompt("Please provide an encryption key")
            if not key:
                raise UserAbort()
            if self.prompt("Please confirm encryption key") == key:
                return key
            typer.echo("Entered keys do not match. Please try again.")
        raise KeyringError("Entered encryption keys did not match")

    def _open_keyring(
        self,
        keyring_file: Path,
        master_key_file: Optional[str | Path],
        guard: ProvisioningGuard,
    ) -> Keyring:
        keyring_existed = keyring_file.exists()
        master_key_existed = bool(master_key_file) and Path(master_key_file).exists()

        keyring = self.init_keyring(keyring_file, master_key_file)

        if master_key_file and not master_key_existed:
            guard.track_file(master_key_file)
        if not keyring_existed:
            guard.track_file(keyring_file)
        return keyring

    # ------------------------------------------------------------------
    # Local files
    # ------------------------------------------------------------------
    def _install_config(self, ctx: Dict[str, Any], writer: AtomicConfigWriter) -> Optional[Path]:
        backup = writer.replace()
        if backup is not None:
            self.bus.emit(ConfigBackedUp(path=str(writer.path), backup=str(backup), **ctx))
        self.bus.emit(ConfigWritten(path=str(writer.path), **ctx))
        return backup

    def _install_master_key(self, tmp: Path, final: Path, guard: ProvisioningGuard) -> None:
        existed = final.exists()
        try:
            os.replace(tmp, final)
        except OSError as exc:
            raise DeploymentIOError(
                f"Could not move keyring file '{tmp}' to its final location: {exc.strerror or exc}",
                final,
            ) from exc
        guard.untrack(tmp)
        if not existed:
            guard.track_file(final)

    def create_start_scripts(
        self,
        directory: Path,
        interactive_master_key: bool,
        guard: Optional[ProvisioningGuard] = None,
        ctx: Optional[Dict[str, Any]] = None,
    ) -> list[Path]:
        scripts = render_start_scripts(
            directory=directory,
            executable=self.router_executable or "mysqlrouter",
            interactive_master_key=interactive_master_key,
        )
        written = []
        for name, content in scripts.items():
            script_path = directory / name
            existed = script_path.exists()
            try:
                script_path.write_text(content, encoding="utf-8")
            except OSError as exc:
                raise DeploymentIOError(
                    f"Could not open {script_path} for writing: {exc.strerror or exc}", script_path
                ) from exc
            if guard is not None and not existed:
                guard.track_file(script_path)
            make_file_executable(script_path)
            written.append(script_path)

        if ctx is not None:
            self.bus.emit(StartScriptsCreated(scripts=[str(p) for p in written], **ctx))
        return written

    @staticmethod
    def _mkdir(path: Path) -> bool:
        """Create ``path`` (0700). False when it already exists."""
        try:
            path.mkdir(mode=0o700)
        except FileExistsError:
            return False
        except OSError as exc:
            raise DeploymentIOError(
                f"Could not create deployment directory {path}: {exc.strerror or exc}", path
            ) from exc
        return True

    @staticmethod
    def _copy(src: Path, dst: Path) -> None:
        try:
            shutil.copyfile(src, dst)
        except OSError as exc:
            raise DeploymentIOError(f"Could not copy {src} to {dst}: {exc.strerror or exc}", dst) from exc
        make_file_private(dst)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    @contextmanager
    def _reporting(self, ctx: Dict[str, Any]):
        try:
            yield
        except UserAbort:
            raise
        except Exception as exc:
            self.bus.emit(BootstrapFailed(error=str(exc), **ctx))
            raise

    def _succeeded(self, ctx: Dict[str, Any], result: BootstrapResult) -> None:
        self.bus.emit(
            BootstrapSucceeded(
                router_name=result.identity.name,
                router_id=result.identity.router_id,
                cluster=result.topology.cluster_name,
                multi_master=result.topology.multi_master,
                connections=connection_summary(result.options),
                **ctx,
            )
        )
