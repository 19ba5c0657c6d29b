"""Tests for the control server job slot, config swaps and persistence."""

import json
import threading

import pytest

from pgfleet.exceptions import ClusterNotFoundError, ConflictError, PgFleetError, SchemaError
from pgfleet.runner import JobStatus
from pgfleet.server import ServerSettings
from pgfleet.server.locks import RWLock

NEW_INVENTORY = """\
all:
  children:
    meta:
      hosts:
        10.0.0.1: {}
    pg-new:
      hosts:
        10.0.0.7: {pg_seq: 1, pg_role: primary}
"""


class TestServerSettings:
    def test_defaults_from_env(self, monkeypatch):
        monkeypatch.setenv("PGFLEET_LISTEN_ADDR", "127.0.0.1:8080")
        monkeypatch.setenv("PGFLEET_DATA_DIR", "/var/lib/pgfleet")

        settings = ServerSettings()

        assert settings.listen_addr == "127.0.0.1:8080"
        assert settings.data_dir == "/var/lib/pgfleet"

    @pytest.mark.parametrize(
        "addr,expected",
        [
            (":9633", ("0.0.0.0", 9633)),
            ("127.0.0.1:8080", ("127.0.0.1", 8080)),
            ("[::1]:9633", ("::1", 9633)),
        ],
    )
    def test_host_port(self, addr, expected):
        assert ServerSettings(listen_addr=addr).host_port() == expected

    def test_invalid_listen_addr(self):
        with pytest.raises(PgFleetError):
            ServerSettings(listen_addr="localhost").host_port()


class TestJobSlot:
    """At most one live job."""

    def test_submit_and_finish(self, server):
        job = server.submit_job("pgsql", "pg-test", ["pg_hba"])

        assert job.wait(10)
        assert job.status == JobStatus.SUCCESS
        assert job.playbook == "pgsql.yml"
        assert job.options.tags == "pg_hba"
        assert server.get_job() is None

    def test_second_job_conflicts(self, server, poll):
        running = server.submit_job("slow.yml", "pg-test")
        assert poll(lambda: running.status == JobStatus.RUNNING)

        with pytest.raises(ConflictError) as exc:
            server.submit_job("pgsql.yml", "pg-test")

        assert exc.value.job is running
        assert server.get_job() is running

    def test_del_job_cancels(self, server, poll):
        running = server.submit_job("slow.yml", "pg-test")
        assert poll(lambda: running.status == JobStatus.RUNNING)

        deleted = server.del_job()

        assert deleted is running
        assert deleted.status == JobStatus.FAILED
        assert deleted.error == "cancelled"
        assert server.get_job() is None
        assert server.del_job() is None

    def test_new_job_after_finished_one(self, server):
        first = server.submit_job("pgsql.yml", "pg-test")
        assert first.wait(10)

        second = server.submit_job("pgsql.yml", "pg-test")

        assert second.wait(10)
        assert second.id != first.id


class TestConfigSwap:
    """Reloading and replacing the inventory."""

    def test_reload_refused_while_running(self, server, poll):
        running = server.submit_job("slow.yml", "pg-test")
        assert poll(lambda: running.status == JobStatus.RUNNING)

        with pytest.raises(ConflictError):
            server.reload()

    def test_reload_after_finished_job(self, server):
        job = server.submit_job("pgsql.yml", "pg-test")
        assert job.wait(10)
        before = server.executor

        after = server.reload()

        assert after is server.executor
        assert after is not before

    def test_update_config_refused_while_running(self, server, poll, inventory_path):
        before = inventory_path.read_bytes()
        running = server.submit_job("slow.yml", "pg-test")
        assert poll(lambda: running.status == JobStatus.RUNNING)

        with pytest.raises(ConflictError):
            server.update_config(NEW_INVENTORY)

        assert inventory_path.read_bytes() == before
        assert "pg-test" in server.executor.config.cluster_map

    def test_update_config(self, server, inventory_path):
        backup = server.update_config(NEW_INVENTORY)

        assert backup.exists()
        assert inventory_path.read_text() == NEW_INVENTORY
        assert list(server.executor.config.cluster_map) == ["pg-new"]
        assert server.read_config() == NEW_INVENTORY.encode("utf-8")

    def test_update_config_invalid(self, server, inventory_path):
        before = inventory_path.read_bytes()

        with pytest.raises(SchemaError):
            server.update_config("all: [broken\n")

        assert inventory_path.read_bytes() == before

    def test_get_cluster(self, server):
        assert server.get_cluster("pg-test").name == "pg-test"
        with pytest.raises(ClusterNotFoundError):
            server.get_cluster("pg-nope")


class TestPersistence:
    """Job descriptors and ansible logs under the data directory."""

    def test_job_descriptor_and_log(self, server, tmp_path):
        job = server.submit_job("pgsql.yml", "pg-test")
        assert job.wait(10)

        assert job.log_path == str(tmp_path / "data" / "log" / f"{job.id}.log")
        assert "ansible log:" in server.log_path(job.id).read_text()
        saved = json.loads(server.job_path(job.id).read_text())
        assert saved["id"] == job.id
        assert saved["playbook"] == "pgsql.yml"

    def test_descriptor_updated_when_finished(self, server):
        job = server.submit_job("pgsql.yml", "pg-test")
        assert job.wait(10)

        saved = json.loads(server.job_path(job.id).read_text())

        assert saved["status"] == "success"
        assert saved["done_at"] is not None
        assert server.list_job_dir()[0]["status"] == "success"

    def test_descriptor_of_failed_job(self, server):
        job = server.submit_job("fail.yml", "pg-test")
        assert job.wait(10)

        saved = json.loads(server.job_path(job.id).read_text())

        assert saved["status"] == "failed"
        assert "fail.yml" in saved["error"]

    def test_descriptor_of_cancelled_job(self, server, poll):
        job = server.submit_job("slow.yml", "pg-test")
        assert poll(lambda: job.status == JobStatus.RUNNING)

        server.del_job()

        saved = json.loads(server.job_path(job.id).read_text())
        assert saved["status"] == "failed"
        assert saved["error"] == "cancelled"

    def test_listings(self, server):
        job = server.submit_job("pgsql.yml", "pg-test")
        assert job.wait(10)

        assert [j["id"] for j in server.list_job_dir()] == [job.id]
        logs = server.list_log_dir()
        assert logs[0]["name"] == f"{job.id}.log"
        assert logs[0]["size"] > 0
        assert server.latest_log() == server.log_path(job.id)

    def test_empty_listings(self, server):
        assert server.list_job_dir() == []
        assert server.list_log_dir() == []
        assert server.latest_log() is None

    @pytest.mark.parametrize("job_id", ["../etc/passwd", "a/b", "", "x.log"])
    def test_invalid_job_id(self, server, job_id):
        with pytest.raises(ValueError):
            server.log_path(job_id)

    def test_stream_job(self, server):
        job = server.new_job("pgsql", "pg-test", name="pgsql init pg-test")

        lines = list(server.stream_job(job))

        assert job.status == JobStatus.SUCCESS
        assert any("PLAY RECAP" in line for line in lines)
        assert all(not line.endswith("\n") for line in lines)


class TestRWLock:
    def test_readers_share(self):
        lock = RWLock()
        with lock.read():
            acquired = threading.Event()

            def reader():
                with lock.read():
                    acquired.set()

            t = threading.Thread(target=reader)
            t.start()
            t.join(5)

        assert acquired.is_set()

    def test_writer_excludes_readers(self):
        lock = RWLock()
        order = []

        def reader():
            with lock.read():
                order.append("read")

        with lock.write():
            t = threading.Thread(target=reader)
            t.start()
            t.join(0.2)
            order.append("write")
        t.join(5)

        assert order == ["write", "read"]
