"""Shared fixtures: a small inventory and a fake ansible-playbook."""

import stat
import textwrap
import time
from pathlib import Path

import pytest

from pgfleet.conf import parse_config
from pgfleet.runner import Executor
from pgfleet.server import ControlServer

SAMPLE_INVENTORY = textwrap.dedent(
    """\
    all:
      children:
        meta:
          hosts:
            10.0.0.1: {meta_node: true}
          vars:
            pg_cluster: pg-meta
        pg-meta:
          hosts:
            10.0.0.1: {pg_seq: 1, pg_role: primary}
          vars:
            pg_cluster: pg-meta
        pg-test:
          hosts:
            10.0.0.2: {pg_seq: 1, pg_role: primary}
            10.0.0.3: {pg_seq: 2, pg_role: replica, pg_offline_query: true}
          vars:
            pg_cluster: pg-test
            pg_version: 14
            pg_users:
              - {name: test, password: secret, pgbouncer: true}
              - {password: nameless}
            pg_databases:
              - {name: test, owner: test}
      vars:
        version: v1.5.1
        admin_ip: 10.0.0.1
        dcs_type: consul
        dcs_servers:
          meta-1: 10.0.0.1
        nginx_upstream:
          - {name: home, host: pigsty, url: "127.0.0.1:3000"}
        repo_address: yum.pigsty
        repo_name: pigsty
        repo_home: /www
        node_ntp_config: true
        node_ntp_servers:
          - pool pool.ntp.org iburst
        node_dns_server: add
        node_dns_servers:
          - 10.0.0.1
    """
)

# Echoes its arguments, appends to $ANSIBLE_LOG_PATH, and picks its
# behavior from the playbook name.
FAKE_PLAYBOOK = textwrap.dedent(
    """\
    #!/bin/sh
    echo "ARGS: $*"
    if [ -n "$ANSIBLE_LOG_PATH" ]; then
        echo "ansible log: $*" >> "$ANSIBLE_LOG_PATH"
    fi
    case "$*" in
        *fail.yml*)
            echo "fatal: [10.0.0.2]: FAILED!"
            exit 2
            ;;
        *slow.yml*)
            echo "TASK [slow]"
            exec sleep 30
            ;;
        *stderr.yml*)
            echo "warning on stderr" >&2
            ;;
    esac
    echo "PLAY RECAP ok=1 failed=0"
    """
)


def wait_for(predicate, timeout: float = 10.0, interval: float = 0.05) -> bool:
    """Poll predicate until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def inventory_text() -> str:
    return SAMPLE_INVENTORY


@pytest.fixture
def config(inventory_text):
    return parse_config(inventory_text)


@pytest.fixture
def inventory_path(tmp_path, inventory_text) -> Path:
    """Inventory written to <tmp>/work/pigsty.yml."""
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    path = work_dir / "pigsty.yml"
    path.write_text(inventory_text)
    return path


@pytest.fixture
def fake_playbook(tmp_path, monkeypatch) -> Path:
    """Install the fake ansible-playbook and point ANSIBLE_PLAYBOOK_BIN at it."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    path = bin_dir / "ansible-playbook"
    path.write_text(FAKE_PLAYBOOK)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("ANSIBLE_PLAYBOOK_BIN", str(path))
    return path


@pytest.fixture
def executor(inventory_path, fake_playbook) -> Executor:
    return Executor(inventory_path)


@pytest.fixture
def server(inventory_path, fake_playbook, tmp_path):
    srv = ControlServer(inventory_path, data_dir=tmp_path / "data")
    yield srv
    srv.del_job()


@pytest.fixture
def poll():
    return wait_for
