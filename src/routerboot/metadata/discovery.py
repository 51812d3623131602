# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/routerboot/metadata/discovery.py

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from routerboot.bootstrap.models import ClusterTopology
from routerboot.errors import (
    MetadataInconsistentError,
    MetadataUnavailableError,
    MultipleClustersError,
    MultipleReplicasetsError,
)
from routerboot.mysql.session import SessionError

log = logging.getLogger("routerboot")

# Members of the replicaset that contains the server we are connected to.
# Looked up by server_uuid: the bootstrap URL may point at any member.
TOPOLOGY_QUERY = (
    "SELECT "
    "F.cluster_name, "
    "R.replicaset_name, "
    "R.topology_type, "
    "JSON_UNQUOTE(JSON_EXTRACT(I.addresses, '$.mysqlClassic')) "
    "FROM "
    "mysql_innodb_cluster_metadata.clusters AS F, "
    "mysql_innodb_cluster_metadata.instances AS I, "
    "mysql_innodb_cluster_metadata.replicasets AS R "
    "WHERE "
    "R.replicaset_id = "
    "(SELECT replicaset_id FROM mysql_innodb_cluster_metadata.instances WHERE "
    "mysql_server_uuid = @@server_uuid) "
    "AND "
    "I.replicaset_id = R.replicaset_id "
    "AND "
    "R.cluster_id = F.cluster_id"
)

TOPOLOGY_TYPES = {"mm": True, "pm": False}


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def reduce_topology_rows(rows: Iterable[Sequence]) -> ClusterTopology:
    cluster: Optional[str] = None
    replicaset: Optional[str] = None
    multi_master: Optional[bool] = None
    members: List[str] = []

    for row in rows:
        row_cluster, row_replicaset = _text(row[0]), _text(row[1])

        if cluster is None:
            cluster = row_cluster
        elif cluster != row_cluster:
            raise MultipleClustersError("Metadata contains more than one cluster")

        if replicaset is None:
            replicaset = row_replicaset
        elif replicaset != row_replicaset:
            raise MultipleReplicasetsError("Metadata contains more than one replica-set")

        if row[2] is not None:
            topology_type = _text(row[2])
            if topology_type not in TOPOLOGY_TYPES:
                raise MetadataInconsistentError(
                    f"Unknown topology type in metadata: {topology_type}"
                )
            row_mm = TOPOLOGY_TYPES[topology_type]
            if multi_master is not None and multi_master != row_mm:
                raise MetadataInconsistentError(
                    f"Inconsistent topology type in metadata for replica-set '{replicaset}'"
                )
            multi_master = row_mm

        members.append(f"mysql://{_text(row[3])}" if row[3] is not None else "")

    if not cluster:
        raise MetadataInconsistentError("No clusters defined in metadata server")

    return ClusterTopology(
        cluster_name=cluster,
        replicaset_name=replicaset or "",
        multi_master=bool(multi_master),
        member_addresses=members,
    )


def discover_topology(session) -> ClusterTopology:
    try:
        rows = session.query(TOPOLOGY_QUERY)
    except SessionError as exc:
        raise MetadataUnavailableError(f"Error querying metadata: {exc}") from exc

    topology = reduce_topology_rows(rows)
    log.debug(
        "Discovered cluster=%s replicaset=%s multi_master=%s members=%s",
        topology.cluster_name,
        topology.replicaset_name,
        topology.multi_master,
        topology.bootstrap_server_addresses,
    )
    return topology
