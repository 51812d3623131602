# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/bootstrap/credentials.py

from __future__ import annotations

import logging
import secrets
import string
from typing import Callable

from routerboot.bootstrap.models import CredentialEntry
from routerboot.errors import AccountProvisioningError, KeyringError, RemoteError

log = logging.getLogger("routerboot")

ACCOUNT_PREFIX = "mysql_innodb_cluster_router"
PASSWORD_LENGTH = 16
KEYRING_PASSWORD_ATTRIBUTE = "password"

# Printable ASCII without whitespace, double quote and backslash: 92 symbols.
PASSWORD_ALPHABET = (
    string.digits
    + string.ascii_lowercase
    + string.ascii_uppercase
    + "".join(c for c in string.punctuation if c not in "\"\\")
)

# The account is per-router and read-only; it is not pinned to a client host.
ACCOUNT_HOST = "%"


def generate_password(length: int = PASSWORD_LENGTH, alphabet: str = PASSWORD_ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def account_name_for(router_id: int) -> str:
    return f"{ACCOUNT_PREFIX}{router_id}"


class CredentialProvisioner:
    """
    Creates the router's metadata account and keeps its password in the keyring.
    """

    def __init__(
        self,
        session,
        keyring,
        password_factory: Callable[[], str] = generate_password,
    ):
        self.session = session
        self.keyring = keyring
        self.password_factory = password_factory

    def provision(self, router_id: int) -> CredentialEntry:
        entry = CredentialEntry(
            account_name=account_name_for(router_id),
            secret=self.password_factory(),
            attribute=KEYRING_PASSWORD_ATTRIBUTE,
        )
        self.keyring.store(entry.account_name, entry.attribute, entry.secret)
        try:
            self.keyring.flush()
        except (OSError, KeyringError) as exc:
            raise KeyringError(f"Error storing encrypted password to disk: {exc}") from exc
        log.debug("Stored password for %s in keyring", entry.account_name)
        return entry

    def account_statements(self, entry: CredentialEntry) -> list[str]:
        account = f"{entry.account_name}@{self.session.quote(ACCOUNT_HOST)}"
        return [
            f"DROP USER IF EXISTS {account}",
            f"CREATE USER {account} IDENTIFIED BY {self.session.quote(entry.secret)}",
            f"GRANT SELECT ON mysql_innodb_cluster_metadata.* TO {account}",
            f"GRANT SELECT ON performance_schema.replication_group_members TO {account}",
        ]

    def apply_account(self, entry: CredentialEntry) -> None:
        log.debug("Creating account %s@'%s'", entry.account_name, ACCOUNT_HOST)
        for statement in self.account_statements(entry):
            try:
                self.session.execute(statement)
            except RemoteError as exc:
                try:
                    self.session.execute("ROLLBACK")
                except RemoteError as rollback_exc:
                    log.warning("Could not rollback transaction explicitly: %s", rollback_exc)
                raise AccountProvisioningError(
                    f"Error creating MySQL account for router: {exc}"
                ) from exc
