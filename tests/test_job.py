"""Tests for job building, lifecycle and output capture."""

import io
import json

import pytest

from pgfleet.exceptions import CancellationError, ExternalProcessError, PgFleetError
from pgfleet.runner import (
    JobStatus,
    PlaybookOptions,
    with_extra_vars,
    with_forks,
    with_limit,
    with_log_path,
    with_name,
    with_playbook,
    with_playbook_options,
    with_stdout,
    with_tags,
)


class TestJobOptions:
    """Option functions and scope filling."""

    def test_new_job_applies_options(self, executor):
        job = executor.new_job(
            with_playbook("pgsql.yml"),
            with_name("pgsql init"),
            with_limit("pg-test"),
            with_tags("pg_hba", "", "pg_reload"),
            with_extra_vars("pg_reload", True),
            with_forks(10),
        )

        assert job.status == JobStatus.READY
        assert job.tags == ["pg_hba", "pg_reload"]
        assert job.options.limit == "pg-test"
        assert job.options.tags == "pg_hba,pg_reload"
        assert job.options.forks == "10"
        assert job.options.inventory == "pigsty.yml"
        assert "--limit pg-test" in job.command
        assert job.command.endswith("pgsql.yml")
        assert executor.get_job(job.id) is job

    def test_raw_options_take_precedence(self, executor):
        """Convenience limit/tags only fill empty playbook options."""
        job = executor.new_job(
            with_playbook("pgsql.yml"),
            with_playbook_options(PlaybookOptions(limit="10.0.0.2")),
            with_limit("pg-test"),
            with_tags("pg_hba"),
        )

        assert job.options.limit == "10.0.0.2"
        assert job.options.tags == "pg_hba"
        assert job.limit == "pg-test"

    def test_ids_are_unique(self, executor):
        a = executor.new_job(with_playbook("pgsql.yml"))
        b = executor.new_job(with_playbook("pgsql.yml"))

        assert a.id != b.id

    def test_to_dict(self, executor):
        job = executor.new_job(with_playbook("pgsql.yml"), with_name("x"), with_limit("pg-test"))

        data = json.loads(job.to_json())

        assert data["id"] == job.id
        assert data["status"] == "ready"
        assert data["start_at"] is None
        assert data["limit"] == "pg-test"


class TestJobRun:
    """Synchronous execution."""

    def test_success(self, executor):
        out = io.StringIO()
        job = executor.new_job(with_playbook("pgsql.yml"), with_limit("pg-test"), with_stdout(out))

        job.run()

        assert job.status == JobStatus.SUCCESS
        assert job.error == ""
        assert job.start_at <= job.done_at
        assert "--inventory pigsty.yml --limit pg-test pgsql.yml" in out.getvalue()
        assert "PLAY RECAP" in out.getvalue()

    def test_failure(self, executor):
        job = executor.new_job(with_playbook("fail.yml"), with_stdout(io.StringIO()))

        with pytest.raises(ExternalProcessError):
            job.run()

        assert job.status == JobStatus.FAILED
        assert "fail.yml" in job.error
        assert job.done_at is not None

    def test_job_runs_only_once(self, executor):
        job = executor.new_job(with_playbook("pgsql.yml"), with_stdout(io.StringIO()))
        job.run()

        with pytest.raises(PgFleetError):
            job.run()

    def test_runs_in_inventory_directory(self, executor):
        out = io.StringIO()
        job = executor.new_job(with_playbook("pgsql.yml"), with_stdout(out))

        job.run()

        assert job.build_command().cwd == executor.work_dir

    def test_ansible_log_path(self, executor, tmp_path):
        log = tmp_path / "logs" / "ansible.log"
        job = executor.new_job(
            with_playbook("pgsql.yml"), with_log_path(log), with_stdout(io.StringIO())
        )

        job.run()

        assert job.log_path == str(log)
        assert "ansible log:" in log.read_text()

    def test_cancel_before_run(self, executor):
        job = executor.new_job(with_playbook("pgsql.yml"), with_stdout(io.StringIO()))
        job.cancel()

        with pytest.raises(CancellationError):
            job.run()

        assert job.status == JobStatus.FAILED
        assert job.error == "cancelled"

    def test_cancel_after_finish_is_noop(self, executor):
        job = executor.new_job(with_playbook("pgsql.yml"), with_stdout(io.StringIO()))
        job.run()

        job.cancel()

        assert job.status == JobStatus.SUCCESS


class TestJobAsync:
    """Background execution and output routing."""

    def test_run_async_writes_job_log(self, executor):
        job = executor.new_job(with_playbook("pgsql.yml"), with_name("pgsql init"))

        job_id = job.run_async()

        assert job_id == job.id
        assert job.wait(10)
        assert job.status == JobStatus.SUCCESS
        text = (executor.log_dir / f"{job.id}.log").read_text()
        assert f"Job: {job.id}" in text
        assert "PLAY RECAP" in text
        assert "Status: SUCCESS" in text

    def test_cancel_running_job(self, executor, poll):
        job = executor.new_job(with_playbook("slow.yml"), with_stdout(io.StringIO()))
        job.run_async()
        assert poll(lambda: job.status == JobStatus.RUNNING)

        job.cancel()

        assert job.wait(10)
        assert job.status == JobStatus.FAILED
        assert job.error == "cancelled"

    @pytest.mark.parametrize(
        "playbook,status", [("pgsql.yml", JobStatus.SUCCESS), ("fail.yml", JobStatus.FAILED)]
    )
    def test_on_done_sees_terminal_job(self, executor, playbook, status):
        seen = []
        job = executor.new_job(with_playbook(playbook), with_stdout(io.StringIO()))
        job.on_done = lambda j: seen.append((j.status, j.done_at is not None))

        job.run_async()

        assert job.wait(10)
        assert seen == [(status, True)]

    def test_pipe_output(self, executor):
        job = executor.new_job(with_playbook("pgsql.yml"))
        reader = job.pipe_output()

        job.run_async()
        with reader:
            text = reader.read()

        assert job.wait(10)
        assert "PLAY RECAP" in text
        assert not (executor.log_dir / f"{job.id}.log").exists()
