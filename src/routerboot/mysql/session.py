# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/mysql/session.py

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple
from urllib.parse import unquote, urlsplit

import pymysql
from pymysql.converters import escape_string

from routerboot.errors import InvalidOptionError, MetadataUnavailableError, RemoteError

log = logging.getLogger("routerboot")

ER_DUP_ENTRY = 1062
DEFAULT_PORT = 3306


class SessionError(RemoteError):
    """A statement failed on the server. ``code`` is the MySQL error number."""

    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.code = code


def _wrap(exc: pymysql.MySQLError) -> SessionError:
    code = exc.args[0] if exc.args and isinstance(exc.args[0], int) else 0
    msg = exc.args[1] if len(exc.args) > 1 else str(exc)
    return SessionError(f"{msg} ({code})" if code else str(msg), code=code)


class MySQLSession:
    """
    Thin synchronous wrapper around a pymysql connection.

    Rows come back as tuples. Every driver error is re-raised as
    ``SessionError`` keeping the server text and error number.
    """

    def __init__(self, connection: Optional[pymysql.connections.Connection] = None):
        self._conn = connection

    def connect(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        connect_timeout: int = 5,
    ) -> None:
        log.debug("Connecting to %s@%s:%s", user, host, port)
        try:
            self._conn = pymysql.connect(
                host=host,
                port=port,
                user=user,
                password=password,
                connect_timeout=connect_timeout,
                autocommit=True,
            )
        except pymysql.MySQLError as exc:
            raise MetadataUnavailableError(
                f"Unable to connect to the metadata server: {_wrap(exc)}"
            ) from exc

    @property
    def connection(self):
        if self._conn is None:
            raise MetadataUnavailableError("Not connected to the metadata server")
        return self._conn

    def query(self, sql: str, args: Optional[Sequence[Any]] = None) -> List[Tuple]:
        log.debug("SQL query: %s", sql)
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, args)
                return list(cur.fetchall())
        except pymysql.MySQLError as exc:
            raise _wrap(exc) from exc

    def query_one(self, sql: str, args: Optional[Sequence[Any]] = None) -> Optional[Tuple]:
        rows = self.query(sql, args)
        return rows[0] if rows else None

    def execute(self, sql: str, args: Optional[Sequence[Any]] = None) -> int:
        log.debug("SQL execute: %s", sql)
        try:
            with self.connection.cursor() as cur:
                return cur.execute(sql, args)
        except pymysql.MySQLError as exc:
            raise _wrap(exc) from exc

    def last_insert_id(self) -> int:
        return int(self.connection.insert_id())

    def quote(self, value: str) -> str:
        return "'" + escape_string(value) + "'"

    def transaction(self) -> "Transaction":
        return Transaction(self)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class Transaction:
    """
    START TRANSACTION on entry; ROLLBACK on exit unless ``commit()`` ran.
    """

    def __init__(self, session) -> None:
        self.session = session
        self.committed = False
        self.session.execute("START TRANSACTION")

    def commit(self) -> None:
        self.session.execute("COMMIT")
        self.committed = True

    def rollback(self) -> None:
        try:
            self.session.execute("ROLLBACK")
        except RemoteError as exc:
            log.warning("Could not roll back transaction explicitly: %s", exc)

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.committed:
            self.rollback()
        return False


def parse_server_url(url: str) -> Tuple[str, int, str, str]:
    """
    Split ``[mysql://][user[:password]@]host[:port]`` into its parts.
    The user defaults to ``root``; ``localhost`` is forced onto TCP.
    """
    normalized = url if "//" in url else f"mysql://{url}"
    parts = urlsplit(normalized)
    if not parts.hostname:
        raise InvalidOptionError(f"Invalid bootstrap server URL '{url}'")
    try:
        port = parts.port or DEFAULT_PORT
    except ValueError as exc:
        raise InvalidOptionError(f"Invalid port in bootstrap server URL '{url}'") from exc
    host = "127.0.0.1" if parts.hostname == "localhost" else parts.hostname
    user = unquote(parts.username) if parts.username else "root"
    password = unquote(parts.password) if parts.password else ""
    return host, port, user, password


def connect_url(
    url: str,
    prompt: Callable[[str], str],
    connect_timeout: int = 5,
    password: Optional[str] = None,
) -> MySQLSession:
    host, port, user, url_password = parse_server_url(url)
    password = password or url_password
    if not password:
        password = prompt(f"Please enter MySQL password for {user}")
    session = MySQLSession()
    session.connect(host, port, user, password, connect_timeout=connect_timeout)
    return session
