"""Tests for ansible-playbook command building and execution."""

import io
import json
import threading

import pytest

from pgfleet.exceptions import CancellationError, ExternalProcessError
from pgfleet.runner import PlaybookCommand, PlaybookOptions
from pgfleet.runner.playbook import playbook_binary


class TestPlaybookOptions:
    def test_empty_options(self):
        assert PlaybookOptions().to_args() == []

    def test_argument_order(self):
        """extra-vars, forks, inventory, limit, tags."""
        options = PlaybookOptions(
            inventory="pigsty.yml",
            limit="pg-test",
            tags="pg_hba,pg_reload",
            extra_vars={"pg_reload": True},
            forks="10",
        )

        args = options.to_args()

        assert args == [
            "--extra-vars",
            json.dumps({"pg_reload": True}),
            "--forks",
            "10",
            "--inventory",
            "pigsty.yml",
            "--limit",
            "pg-test",
            "--tags",
            "pg_hba,pg_reload",
        ]


class TestPlaybookCommand:
    """Command line rendering and child process handling."""

    def test_binary_from_env(self, monkeypatch):
        monkeypatch.setenv("ANSIBLE_PLAYBOOK_BIN", "/opt/ansible/bin/ansible-playbook")

        assert playbook_binary() == "/opt/ansible/bin/ansible-playbook"
        assert PlaybookCommand("pgsql.yml").binary == "/opt/ansible/bin/ansible-playbook"

    def test_binary_default(self, monkeypatch):
        monkeypatch.delenv("ANSIBLE_PLAYBOOK_BIN", raising=False)

        assert playbook_binary() == "ansible-playbook"

    def test_str_is_shell_quoted(self):
        cmd = PlaybookCommand(
            "pgsql.yml",
            PlaybookOptions(limit="pg-test", extra_vars={"a": "b c"}),
            binary="ansible-playbook",
        )

        assert cmd.argv()[-1] == "pgsql.yml"
        assert str(cmd) == "ansible-playbook --extra-vars '{\"a\": \"b c\"}' --limit pg-test pgsql.yml"

    def test_run_streams_output(self, fake_playbook, tmp_path):
        out = io.StringIO()
        cmd = PlaybookCommand("pgsql.yml", PlaybookOptions(limit="pg-test"), cwd=tmp_path)

        assert cmd.run(stdout=out) == 0

        text = out.getvalue()
        assert "ARGS: --limit pg-test pgsql.yml" in text
        assert "PLAY RECAP" in text

    def test_stderr_merged_by_default(self, fake_playbook):
        out = io.StringIO()

        PlaybookCommand("stderr.yml").run(stdout=out)

        assert "warning on stderr" in out.getvalue()

    def test_stderr_sink(self, fake_playbook):
        out, err = io.StringIO(), io.StringIO()

        PlaybookCommand("stderr.yml").run(stdout=out, stderr=err)

        assert "warning on stderr" in err.getvalue()
        assert "warning on stderr" not in out.getvalue()

    def test_extra_env_reaches_child(self, fake_playbook, tmp_path):
        log = tmp_path / "ansible.log"

        PlaybookCommand("pgsql.yml").run(stdout=io.StringIO(), env={"ANSIBLE_LOG_PATH": str(log)})

        assert "ansible log: pgsql.yml" in log.read_text()

    def test_non_zero_exit(self, fake_playbook):
        out = io.StringIO()

        with pytest.raises(ExternalProcessError) as exc:
            PlaybookCommand("fail.yml").run(stdout=out)

        assert exc.value.returncode == 2
        assert "FAILED!" in out.getvalue()

    def test_launch_failure(self, tmp_path):
        cmd = PlaybookCommand("pgsql.yml", binary=str(tmp_path / "no-such-binary"))

        with pytest.raises(ExternalProcessError) as exc:
            cmd.run(stdout=io.StringIO())

        assert exc.value.returncode is None

    def test_cancelled_before_start(self, fake_playbook):
        event = threading.Event()
        event.set()

        with pytest.raises(CancellationError):
            PlaybookCommand("pgsql.yml").run(stdout=io.StringIO(), cancel_event=event)

    def test_cancel_terminates_child(self, fake_playbook):
        """A quiet child is terminated soon after the event is set."""
        event = threading.Event()
        timer = threading.Timer(0.5, event.set)
        timer.start()

        try:
            with pytest.raises(CancellationError):
                PlaybookCommand("slow.yml").run(stdout=io.StringIO(), cancel_event=event)
        finally:
            timer.cancel()

    def test_closed_sink_does_not_abort_run(self, fake_playbook):
        """Output keeps draining when the reader went away."""
        out = io.StringIO()
        out.close()

        assert PlaybookCommand("pgsql.yml").run(stdout=out) == 0
