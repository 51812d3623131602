from pathlib import Path

from routerboot.bootstrap.models import ClusterTopology
from routerboot.bootstrap.options import resolve_options
from routerboot.bootstrap.render import connection_summary, render_config, render_start_scripts


TOPOLOGY = ClusterTopology(
    cluster_name="prod",
    replicaset_name="default",
    multi_master=False,
    member_addresses=["mysql://db-1:3306", "mysql://db-2:3306"],
)


def test_full_directory_config_layout():
    opts = resolve_options(
        {"logdir": "/srv/r/log", "rundir": "/srv/r/run", "socketsdir": "/srv/r", "use-sockets": ""},
        multi_master=False,
    )
    opts.keyring_file_path = "/srv/r/run/keyring"
    opts.keyring_master_key_file_path = "/srv/r/mysqlrouter.key"

    out = render_config(
        router_id=7,
        router_name="edge",
        topology=TOPOLOGY,
        username="mysql_innodb_cluster_router7",
        options=opts,
    )

    assert out == (
        "# File automatically generated during MySQL Router bootstrap\n"
        "[DEFAULT]\n"
        "name=edge\n"
        "logging_folder=/srv/r/log\n"
        "runtime_folder=/srv/r/run\n"
        "keyring_path=/srv/r/run/keyring\n"
        "master_key_path=/srv/r/mysqlrouter.key\n"
        "\n"
        "[logger]\n"
        "level = INFO\n"
        "\n"
        "[metadata_cache:prod]\n"
        "router_id=7\n"
        "bootstrap_server_addresses=mysql://db-1:3306,mysql://db-2:3306\n"
        "user=mysql_innodb_cluster_router7\n"
        "metadata_cluster=prod\n"
        "ttl=300\n"
        "\n"
        "[routing:prod_default_rw]\n"
        "bind_address=0.0.0.0\n"
        "bind_port=6446\n"
        "socket=/srv/r/mysql.sock\n"
        "destinations=metadata-cache://prod/default?role=PRIMARY\n"
        "mode=read-write\n"
        "protocol=classic\n"
        "\n"
        "[routing:prod_default_ro]\n"
        "bind_address=0.0.0.0\n"
        "bind_port=6447\n"
        "socket=/srv/r/mysqlro.sock\n"
        "destinations=metadata-cache://prod/default?role=SECONDARY\n"
        "mode=read-only\n"
        "protocol=classic\n"
        "\n"
        "[routing:prod_default_x_rw]\n"
        "bind_address=0.0.0.0\n"
        "bind_port=64460\n"
        "socket=/srv/r/mysqlx.sock\n"
        "destinations=metadata-cache://prod/default?role=PRIMARY\n"
        "mode=read-write\n"
        "protocol=x\n"
        "\n"
        "[routing:prod_default_x_ro]\n"
        "bind_address=0.0.0.0\n"
        "bind_port=64470\n"
        "socket=/srv/r/mysqlxro.sock\n"
        "destinations=metadata-cache://prod/default?role=SECONDARY\n"
        "mode=read-only\n"
        "protocol=x\n"
        "\n"
    )


def test_unset_defaults_are_omitted_and_bind_address_is_used():
    opts = resolve_options({"bind-address": "10.1.1.1", "base-port": "7000"}, multi_master=True)
    out = render_config(
        router_id=1, router_name="", topology=TOPOLOGY, username="u", options=opts
    )

    assert out.startswith(
        "# File automatically generated during MySQL Router bootstrap\n[DEFAULT]\n\n[logger]\n"
    )
    assert "bind_address=10.1.1.1\nbind_port=7000\n" in out
    assert "[routing:prod_default_x_rw]\nbind_address=10.1.1.1\nbind_port=7001\n" in out
    assert "_ro]" not in out
    assert "socket=" not in out


def test_socket_only_route_has_no_bind_lines():
    opts = resolve_options({"use-sockets": "", "skip-tcp": "", "socketsdir": "/tmp"}, multi_master=True)
    out = render_config(router_id=1, router_name="r", topology=TOPOLOGY, username="u", options=opts)
    assert "bind_port" not in out
    assert "[routing:prod_default_rw]\nsocket=/tmp/mysql.sock\ndestinations=" in out


def test_connection_summary():
    opts = resolve_options({"use-sockets": "", "skip-tcp": "", "socketsdir": "/tmp"}, multi_master=True)
    assert connection_summary(opts) == {
        "classic": {"rw": "/tmp/mysql.sock", "ro": None},
        "x": {"rw": "/tmp/mysqlx.sock", "ro": None},
    }
    tcp = resolve_options({}, multi_master=False)
    assert connection_summary(tcp)["classic"] == {"rw": "localhost:6446", "ro": "localhost:6447"}


def test_posix_scripts_with_master_key_file(tmp_path: Path):
    scripts = render_start_scripts(
        directory=tmp_path, executable="/usr/bin/mysqlrouter", interactive_master_key=False, windows=False
    )
    assert set(scripts) == {"start.sh", "stop.sh"}
    start = scripts["start.sh"]
    assert start.startswith(f"#!/bin/bash\nbasedir={tmp_path}\n")
    assert "ROUTER_PID=$basedir/mysqlrouter.pid /usr/bin/mysqlrouter -c $basedir/mysqlrouter.conf &" in start
    assert "stty" not in start
    assert f"kill -HUP `cat {tmp_path}/mysqlrouter.pid`" in scripts["stop.sh"]
    assert f"rm -f {tmp_path}/mysqlrouter.pid" in scripts["stop.sh"]


def test_posix_start_script_prompts_without_master_key_file(tmp_path: Path):
    start = render_start_scripts(
        directory=tmp_path, executable="/usr/bin/mysqlrouter", interactive_master_key=True, windows=False
    )["start.sh"]
    assert "stty -echo" in start
    assert "read password" in start
    assert "echo $password | ROUTER_PID=" in start


def test_windows_scripts(tmp_path: Path):
    scripts = render_start_scripts(
        directory=tmp_path, executable="C:/mysql/bin/mysqlrouter.exe", interactive_master_key=False, windows=True
    )
    assert set(scripts) == {"start.ps1", "stop.ps1"}
    assert "Start-Process" in scripts["start.ps1"]
    assert "Stop-Process" in scripts["stop.ps1"]
