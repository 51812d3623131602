import pytest

from routerboot.errors import (
    MetadataInconsistentError,
    MetadataUnavailableError,
    MultipleClustersError,
    MultipleReplicasetsError,
)
from routerboot.metadata.discovery import discover_topology, reduce_topology_rows
from routerboot.mysql.session import SessionError


def test_single_primary_members_in_row_order():
    topo = reduce_topology_rows(
        [
            ("prod", "default", "pm", "db-1:3306"),
            ("prod", "default", "pm", "db-2:3306"),
        ]
    )
    assert topo.cluster_name == "prod"
    assert topo.replicaset_name == "default"
    assert topo.multi_master is False
    assert topo.bootstrap_server_addresses == "mysql://db-1:3306,mysql://db-2:3306"


def test_multi_primary():
    topo = reduce_topology_rows([("prod", "default", "mm", "db-1:3306")])
    assert topo.multi_master is True


def test_null_address_leaves_empty_segment_and_null_type_is_ignored():
    topo = reduce_topology_rows(
        [
            ("prod", "default", "pm", "db-1:3306"),
            ("prod", "default", None, None),
            ("prod", "default", "pm", "db-3:3306"),
        ]
    )
    assert topo.bootstrap_server_addresses == "mysql://db-1:3306,,mysql://db-3:3306"
    assert topo.multi_master is False


def test_bytes_columns_are_decoded():
    topo = reduce_topology_rows([(b"prod", b"default", b"mm", b"db-1:3306")])
    assert topo.cluster_name == "prod"
    assert topo.member_addresses == ["mysql://db-1:3306"]


def test_two_clusters_is_rejected():
    with pytest.raises(MultipleClustersError, match="more than one cluster"):
        reduce_topology_rows(
            [("a", "default", "pm", "db-1:3306"), ("b", "default", "pm", "db-2:3306")]
        )


def test_two_replicasets_is_rejected():
    with pytest.raises(MultipleReplicasetsError, match="more than one replica-set"):
        reduce_topology_rows(
            [("a", "r1", "pm", "db-1:3306"), ("a", "r2", "pm", "db-2:3306")]
        )


def test_unknown_topology_type():
    with pytest.raises(MetadataInconsistentError, match="Unknown topology type in metadata: xx"):
        reduce_topology_rows([("a", "r1", "xx", "db-1:3306")])


def test_disagreeing_topology_types():
    with pytest.raises(MetadataInconsistentError):
        reduce_topology_rows([("a", "r1", "pm", "db-1:3306"), ("a", "r1", "mm", "db-2:3306")])


def test_no_rows():
    with pytest.raises(MetadataInconsistentError, match="No clusters defined"):
        reduce_topology_rows([])


def test_discover_topology_uses_session(fake_session):
    topo = discover_topology(fake_session)
    assert topo.cluster_name == "mycluster"
    assert len(topo.member_addresses) == 3
    assert "@@server_uuid" in fake_session.sql()[0]


def test_query_failure_is_unavailable(fake_session):
    fake_session.fail_on["F.cluster_name"] = SessionError("Table doesn't exist (1146)", code=1146)
    with pytest.raises(MetadataUnavailableError, match="Error querying metadata: Table doesn't exist"):
        discover_topology(fake_session)
