import copy

import pytest
from pymysql.converters import escape_string

from routerboot.mysql.session import ER_DUP_ENTRY, SessionError, Transaction


SINGLE_PRIMARY_ROWS = [
    ("mycluster", "default", "pm", "db-1:3306"),
    ("mycluster", "default", "pm", "db-2:3306"),
    ("mycluster", "default", "pm", "db-3:3306"),
]


class FakeSession:
    """
    In-memory stand-in for MySQLSession. Answers the handful of metadata
    queries the bootstrap issues and keeps hosts/routers tables so
    registration, reuse and duplicate detection behave like the server.
    """

    def __init__(self, rows=None, schema_version=(1, 0, 1), member_state="ONLINE"):
        self.rows = list(SINGLE_PRIMARY_ROWS if rows is None else rows)
        self.schema_version = schema_version
        self.member_state = member_state
        self.statements = []
        self.fail_on = {}
        self.hosts = {}      # host_name -> host_id
        self.routers = {}    # router_id -> (host_id, router_name)
        self.closed = False
        self._last_id = 0
        self._snapshot = None

    # helpers --------------------------------------------------------------
    def sql(self):
        return [s for s, _ in self.statements]

    def writes(self):
        verbs = ("INSERT", "UPDATE", "CREATE", "DROP", "GRANT")
        return [s for s in self.sql() if s.startswith(verbs)]

    def add_router(self, hostname, name):
        host_id = self.hosts.setdefault(hostname, len(self.hosts) + 1)
        router_id = max(self.routers, default=0) + 1
        self.routers[router_id] = (host_id, name)
        return router_id

    def _record(self, sql, args):
        self.statements.append((sql, args))
        for needle, exc in self.fail_on.items():
            if needle in sql:
                raise exc

    def _host_name(self, host_id):
        for name, hid in self.hosts.items():
            if hid == host_id:
                return name
        return None

    # session API ----------------------------------------------------------
    def query(self, sql, args=None):
        self._record(sql, args)
        if "schema_version" in sql:
            return [self.schema_version] if self.schema_version else []
        if "replication_group_members" in sql:
            return [(self.member_state,)] if self.member_state else []
        if "F.cluster_name" in sql:
            return list(self.rows)
        if "JOIN mysql_innodb_cluster_metadata.hosts" in sql:
            router = self.routers.get(args[0])
            if router is None:
                return []
            return [(router[0], self._host_name(router[0]))]
        if sql.startswith("SELECT host_id FROM"):
            host_id = self.hosts.get(args[0])
            return [(host_id,)] if host_id is not None else []
        if sql.startswith("SELECT router_id FROM"):
            host_id, name = args
            return [(rid,) for rid, r in self.routers.items() if r == (host_id, name)]
        return []

    def query_one(self, sql, args=None):
        rows = self.query(sql, args)
        return rows[0] if rows else None

    def execute(self, sql, args=None):
        self._record(sql, args)
        if sql == "START TRANSACTION":
            self._snapshot = copy.deepcopy((self.hosts, self.routers))
        elif sql == "COMMIT":
            self._snapshot = None
        elif sql == "ROLLBACK":
            if self._snapshot is not None:
                self.hosts, self.routers = self._snapshot
                self._snapshot = None
        elif sql.startswith("INSERT INTO mysql_innodb_cluster_metadata.hosts"):
            self._last_id = len(self.hosts) + 1
            self.hosts[args[0]] = self._last_id
        elif sql.startswith("INSERT INTO mysql_innodb_cluster_metadata.routers"):
            if tuple(args) in self.routers.values():
                raise SessionError(
                    f"Duplicate entry '{args[0]}-{args[1]}' for key 'h' ({ER_DUP_ENTRY})",
                    code=ER_DUP_ENTRY,
                )
            self._last_id = max(self.routers, default=0) + 1
            self.routers[self._last_id] = tuple(args)
        return 1

    def last_insert_id(self):
        return self._last_id

    def quote(self, value):
        return "'" + escape_string(value) + "'"

    def transaction(self):
        return Transaction(self)

    def close(self):
        self.closed = True


class RecordingObserver:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def names(self):
        return [e.__class__.__name__ for e in self.events]


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def recorder():
    return RecordingObserver()
