# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/metadata/cluster.py

from __future__ import annotations

import logging

from routerboot.bootstrap.models import DeploymentOptions, Endpoint
from routerboot.errors import MetadataInconsistentError, MetadataUnavailableError
from routerboot.mysql.session import SessionError

log = logging.getLogger("routerboot")

SCHEMA = "mysql_innodb_cluster_metadata"
SUPPORTED_SCHEMA_MAJOR = 1


class ClusterMetadata:
    """
    Reads and writes the InnoDB cluster metadata schema on behalf of the router.
    """

    def __init__(self, session):
        self.session = session

    # ------------------------------------------------------------------
    # Sanity checks on the server we bootstrap from
    # ------------------------------------------------------------------
    def check_metadata_schema(self) -> None:
        try:
            row = self.session.query_one(
                f"SELECT major, minor, patch FROM {SCHEMA}.schema_version"
            )
        except SessionError as exc:
            raise MetadataUnavailableError(
                f"The provided server does not seem to contain metadata for an InnoDB cluster: {exc}"
            ) from exc
        if row is None:
            raise MetadataInconsistentError("Metadata schema version is not set")
        if int(row[0]) != SUPPORTED_SCHEMA_MAJOR:
            raise MetadataInconsistentError(
                f"This version of MySQL Router is not compatible with the provided "
                f"metadata schema ({row[0]}.{row[1]}.{row[2]})"
            )

        try:
            member = self.session.query_one(
                "SELECT member_state FROM performance_schema.replication_group_members "
                "WHERE member_id = @@server_uuid"
            )
        except SessionError as exc:
            raise MetadataUnavailableError(
                f"Could not check group replication membership: {exc}"
            ) from exc
        if member is None or str(member[0]) != "ONLINE":
            raise MetadataInconsistentError(
                "The provided server is currently not an ONLINE member of an InnoDB cluster"
            )

    # ------------------------------------------------------------------
    # Router registration
    # ------------------------------------------------------------------
    def check_router_id(self, router_id: int, hostname: str) -> None:
        row = self.session.query_one(
            f"SELECT h.host_id, h.host_name FROM {SCHEMA}.routers r "
            f"JOIN {SCHEMA}.hosts h ON r.host_id = h.host_id WHERE r.router_id = %s",
            (router_id,),
        )
        if row is None:
            raise MetadataInconsistentError(f"router_id {router_id} not found in metadata")
        if str(row[1]) != hostname:
            raise MetadataInconsistentError(
                f"router_id {router_id} is associated with a different host ('{row[1]}')"
            )

    def _host_id(self, hostname: str) -> int:
        row = self.session.query_one(
            f"SELECT host_id FROM {SCHEMA}.hosts WHERE host_name = %s LIMIT 1",
            (hostname,),
        )
        if row is not None:
            return int(row[0])
        self.session.execute(
            f"INSERT INTO {SCHEMA}.hosts (host_name, location, attributes) "
            "VALUES (%s, '', JSON_OBJECT('registeredFrom', 'mysql-router'))",
            (hostname,),
        )
        return self.session.last_insert_id()

    def register_router(self, router_name: str, hostname: str, overwrite: bool = False) -> int:
        host_id = self._host_id(hostname)

        if overwrite:
            row = self.session.query_one(
                f"SELECT router_id FROM {SCHEMA}.routers WHERE host_id = %s AND router_name = %s",
                (host_id, router_name),
            )
            if row is not None:
                log.debug("Reusing router_id %s for '%s' on %s", row[0], router_name, hostname)
                return int(row[0])

        self.session.execute(
            f"INSERT INTO {SCHEMA}.routers (host_id, router_name) VALUES (%s, %s)",
            (host_id, router_name),
        )
        return self.session.last_insert_id()

    def update_router_info(self, router_id: int, options: DeploymentOptions) -> None:
        def describe(ep: Endpoint) -> str:
            if ep.port > 0:
                return str(ep.port)
            if ep.socket:
                return options.socket_path(ep)
            return ""

        self.session.execute(
            f"UPDATE {SCHEMA}.routers SET attributes = "
            "JSON_SET(JSON_SET(JSON_SET(JSON_SET(IF(attributes IS NULL, '{}', attributes), "
            "'$.RWEndpoint', %s), '$.ROEndpoint', %s), '$.RWXEndpoint', %s), '$.ROXEndpoint', %s) "
            "WHERE router_id = %s",
            (
                describe(options.rw_endpoint),
                describe(options.ro_endpoint),
                describe(options.rw_x_endpoint),
                describe(options.ro_x_endpoint),
                router_id,
            ),
        )
