# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/keyring/store.py

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import secrets
from pathlib import Path
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from routerboot.errors import KeyringError

log = logging.getLogger("routerboot")

KEYRING_FORMAT_VERSION = 1
PBKDF2_ITERATIONS = 120_000
SALT_BYTES = 16
MASTER_KEY_BYTES = 32


def _derive_fernet_key(master_key: str, salt: bytes) -> bytes:
    digest = hashlib.pbkdf2_hmac("sha256", master_key.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return base64.urlsafe_b64encode(digest)


def _write_private(path: Path, data: str) -> None:
    """Write via a sibling temp file + rename, owner-only permissions."""
    tmp = path.with_name(path.name + ".new")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.chmod(tmp, 0o600)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class Keyring:
    """
    Encrypted (account, attribute) -> secret store persisted as a single file.

    File layout: JSON ``{"version", "salt", "payload"}`` where payload is the
    Fernet token of the JSON-encoded entries. The Fernet key is derived from
    the master key with PBKDF2-HMAC-SHA256 and the per-file salt.
    """

    def __init__(self, path: str | Path, master_key: str, salt: Optional[bytes] = None):
        if not master_key:
            raise KeyringError("Keyring master key must not be empty")
        self.path = Path(path)
        self._salt = salt or secrets.token_bytes(SALT_BYTES)
        self._fernet = Fernet(_derive_fernet_key(master_key, self._salt))
        self._entries: Dict[str, Dict[str, str]] = {}

    @classmethod
    def open(cls, path: str | Path, master_key: str, create_if_missing: bool = False) -> "Keyring":
        path = Path(path)
        if not path.exists():
            if not create_if_missing:
                raise KeyringError(f"Keyring file {path} does not exist")
            return cls(path, master_key)

        try:
            doc = json.loads(path.read_text(encoding="utf-8"))
            salt = base64.b64decode(doc["salt"])
            payload = doc["payload"].encode("ascii")
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise KeyringError(f"Could not read keyring file {path}: {exc}") from exc

        keyring = cls(path, master_key, salt=salt)
        try:
            keyring._entries = json.loads(keyring._fernet.decrypt(payload))
        except InvalidToken as exc:
            raise KeyringError(f"Invalid master key for keyring file {path}") from exc
        return keyring

    def store(self, account: str, attribute: str, secret: str) -> None:
        self._entries.setdefault(account, {})[attribute] = secret

    def fetch(self, account: str, attribute: str) -> str:
        try:
            return self._entries[account][attribute]
        except KeyError as exc:
            raise KeyringError(f"No '{attribute}' stored for '{account}'") from exc

    def remove(self, account: str) -> None:
        self._entries.pop(account, None)

    def accounts(self) -> list[str]:
        return sorted(self._entries)

    def flush(self) -> None:
        token = self._fernet.encrypt(json.dumps(self._entries, sort_keys=True).encode("utf-8"))
        doc = {
            "version": KEYRING_FORMAT_VERSION,
            "salt": base64.b64encode(self._salt).decode("ascii"),
            "payload": token.decode("ascii"),
        }
        try:
            _write_private(self.path, json.dumps(doc))
        except OSError as exc:
            raise KeyringError(f"Could not write keyring file {self.path}: {exc.strerror or exc}") from exc
        log.debug("Keyring flushed to %s", self.path)


# ---------------------------------------------------------------------
# Master key files
# ---------------------------------------------------------------------
def _read_master_key_file(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, ValueError) as exc:
        raise KeyringError(f"Could not read master key file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise KeyringError(f"Master key file {path} is corrupted")
    return {str(k): str(v) for k, v in data.items()}


def init_keyring_with_key(path: str | Path, master_key: str, create_if_missing: bool = True) -> Keyring:
    return Keyring.open(path, master_key, create_if_missing=create_if_missing)


def init_keyring(path: str | Path, master_key_file: str | Path, create_if_missing: bool = True) -> Keyring:
    """
    Open ``path`` with the master key recorded for it in ``master_key_file``.
    A random master key is generated and recorded when none exists yet.
    """
    path = Path(path)
    master_key_file = Path(master_key_file)
    keys = _read_master_key_file(master_key_file)
    lookup = str(path.resolve())

    master_key = keys.get(lookup)
    if master_key is None:
        if path.exists():
            raise KeyringError(
                f"Master key for keyring {path} not found in {master_key_file}"
            )
        if not create_if_missing:
            raise KeyringError(f"Keyring file {path} does not exist")
        master_key = secrets.token_urlsafe(MASTER_KEY_BYTES)
        keys[lookup] = master_key
        try:
            _write_private(master_key_file, json.dumps(keys, indent=2, sort_keys=True))
        except OSError as exc:
            raise KeyringError(
                f"Could not write master key file {master_key_file}: {exc.strerror or exc}"
            ) from exc
        log.debug("Generated new master key for %s in %s", path, master_key_file)

    return Keyring.open(path, master_key, create_if_missing=create_if_missing)
