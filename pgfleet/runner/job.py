"""
Job

One ansible-playbook invocation with identity, status and captured output.
Jobs are built by ``Executor.new_job`` from option functions::

    job = executor.new_job(
        with_playbook("pgsql.yml"),
        with_name("pgsql init"),
        with_limit("pg-test"),
        with_tags("pg_hba"),
    )
    job.run()
"""

import json
import logging
import os
import threading
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, TextIO

from pgfleet.constants import ANSIBLE_LOG_PATH_ENV, ANSIBLE_QUIET_ENV
from pgfleet.exceptions import (
    CancellationError,
    InventoryIOError,
    PgFleetError,
)
from pgfleet.logger import JobLogWriter
from pgfleet.runner.playbook import PlaybookCommand, PlaybookOptions

if TYPE_CHECKING:
    from pgfleet.runner.executor import Executor

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    READY = "ready"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.FAILED)


def new_job_id() -> str:
    """Time ordered uuid1, random uuid4 if the node clock cannot be used."""
    try:
        return str(uuid.uuid1())
    except (ValueError, OSError):
        return str(uuid.uuid4())


def setup_os_env() -> None:
    """Silence ansible diagnostics for this process and its children."""
    os.environ.update(ANSIBLE_QUIET_ENV)


class Job:
    """
    Playbook execution.

    Status moves ``ready -> running -> success | failed`` once; a new job
    must be created to retry. Cancellation ends in ``failed`` with
    ``error == "cancelled"``.
    """

    def __init__(self, executor: Optional["Executor"] = None):
        self.id = new_job_id()
        self.name = ""
        self.playbook = ""
        self.limit = ""
        self.tags: List[str] = []
        self.log_path = ""
        self.status = JobStatus.READY
        self.start_at: Optional[datetime] = None
        self.done_at: Optional[datetime] = None
        self.command = ""
        self.error = ""

        self.options = PlaybookOptions()
        self.stdout: Optional[TextIO] = None
        self.stderr: Optional[TextIO] = None
        self.executor = executor

        self._cancel_event = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._pipe_writer: Optional[TextIO] = None
        # called from the background thread once the job is terminal
        self.on_done: Optional[Callable[["Job"], None]] = None

    # ------------------------------------------------------------------
    # Command
    # ------------------------------------------------------------------
    def apply_scope(self) -> None:
        """Fill limit/tags into playbook options unless already set there."""
        if self.limit and not self.options.limit:
            self.options.limit = self.limit
        if self.tags and not self.options.tags:
            self.options.tags = ",".join(self.tags)

    def build_command(self) -> PlaybookCommand:
        cwd = self.executor.work_dir if self.executor is not None else None
        if self.executor is not None and not self.options.inventory:
            self.options.inventory = self.executor.inventory
        return PlaybookCommand(self.playbook, self.options, cwd=cwd)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def run(self, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Run the playbook synchronously.

        Args:
            cancel_event: External cancellation token; ``cancel()`` sets it too

        Raises:
            InventoryIOError: If the ansible log file cannot be created
            ExternalProcessError: If ansible-playbook fails to launch or exits non-zero
            CancellationError: If the job is cancelled mid-run
        """
        if self.status != JobStatus.READY:
            raise PgFleetError(f"job {self.id} is {self.status.value}, create a new job")
        if cancel_event is not None:
            if self._cancel_event.is_set():
                cancel_event.set()
            self._cancel_event = cancel_event

        try:
            setup_os_env()
            cmd = self.build_command()
            self.command = str(cmd)

            env: Dict[str, str] = {}
            if self.log_path:
                try:
                    Path(self.log_path).parent.mkdir(parents=True, exist_ok=True)
                    open(self.log_path, "w").close()
                except OSError as e:
                    self._finish(JobStatus.FAILED, str(e))
                    raise InventoryIOError(
                        f"fail to create ansible log {self.log_path}", context=str(e)
                    ) from e
                env[ANSIBLE_LOG_PATH_ENV] = self.log_path

            self.start_at = datetime.now()
            self.status = JobStatus.RUNNING
            logger.info(self.command)
            try:
                cmd.run(
                    stdout=self.stdout,
                    stderr=self.stderr,
                    env=env,
                    cancel_event=self._cancel_event,
                )
            except CancellationError:
                self._finish(JobStatus.FAILED, "cancelled")
                raise
            except PgFleetError as e:
                logger.error("job %s failed: %s", self.id, e.message)
                self._finish(JobStatus.FAILED, e.message)
                raise
            self._finish(JobStatus.SUCCESS)
        finally:
            self._done.set()

    def _finish(self, status: JobStatus, error: str = "") -> None:
        if self.start_at is not None:
            self.done_at = datetime.now()
        self.error = error
        self.status = status

    def cancel(self) -> None:
        """Request termination; no-op once the job is terminal."""
        if not self.status.is_terminal:
            self._cancel_event.set()

    def run_async(self, cancel_event: Optional[threading.Event] = None) -> str:
        """
        Start ``run`` on a daemon thread.

        Without a stdout sink the output goes to ``<log_dir>/<id>.log``.

        Returns:
            Job id

        Raises:
            InventoryIOError: If the job log file cannot be created
        """
        writer: Optional[JobLogWriter] = None
        if self.stdout is None and self.executor is not None:
            log_file = Path(self.executor.log_dir) / f"{self.id}.log"
            try:
                writer = JobLogWriter(log_file, self.id, self.name, self.command)
            except OSError as e:
                self._finish(JobStatus.FAILED, str(e))
                self._done.set()
                raise InventoryIOError(
                    f"fail to create log of job {self.id}", context=str(e)
                ) from e
            self.stdout = writer

        self._thread = threading.Thread(
            target=self._run_background,
            args=(writer, cancel_event),
            name=f"job-{self.id[:8]}",
            daemon=True,
        )
        self._thread.start()
        return self.id

    def _run_background(
        self, writer: Optional[JobLogWriter], cancel_event: Optional[threading.Event]
    ) -> None:
        try:
            self.run(cancel_event)
        except PgFleetError as e:
            logger.error("job %s (%s) failed: %s", self.id, self.name, e.message)
        finally:
            if writer is not None:
                writer.close(self.status.value)
            if self.on_done is not None:
                self.on_done(self)
            self.close_pipe()

    def pipe_output(self) -> TextIO:
        """
        Route output through an OS pipe.

        Returns:
            Read end, EOF once the background run finished
        """
        read_fd, write_fd = os.pipe()
        self._pipe_writer = os.fdopen(write_fd, "w", encoding="utf-8", buffering=1)
        self.stdout = self._pipe_writer
        return os.fdopen(read_fd, "r", encoding="utf-8", errors="replace")

    def close_pipe(self) -> None:
        """Close the write end created by pipe_output, if any."""
        if self._pipe_writer is not None:
            self._pipe_writer.close()
            self._pipe_writer = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the job is terminal.

        Returns:
            True if the job finished within timeout
        """
        if self._thread is not None:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return self._done.wait(timeout)

    # ------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "playbook": self.playbook,
            "limit": self.limit,
            "tags": list(self.tags),
            "extra_vars": dict(self.options.extra_vars),
            "log_path": self.log_path,
            "status": self.status.value,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "done_at": self.done_at.isoformat() if self.done_at else None,
            "command": self.command,
            "error": self.error,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __repr__(self) -> str:
        return f"Job(id={self.id!r}, name={self.name!r}, status={self.status.value!r})"


# ----------------------------------------------------------------------
# Options
# ----------------------------------------------------------------------
JobOption = Callable[[Job], None]


def with_name(name: str) -> JobOption:
    def apply(job: Job) -> None:
        job.name = name

    return apply


def with_playbook(playbook: str) -> JobOption:
    def apply(job: Job) -> None:
        job.playbook = playbook

    return apply


def with_limit(limit: str) -> JobOption:
    def apply(job: Job) -> None:
        job.limit = limit

    return apply


def with_tags(*tags: str) -> JobOption:
    def apply(job: Job) -> None:
        job.tags = [t for t in tags if t]

    return apply


def with_log_path(log_path) -> JobOption:
    """Have ansible write its own log (ANSIBLE_LOG_PATH) to log_path."""

    def apply(job: Job) -> None:
        job.log_path = str(log_path) if log_path else ""

    return apply


def with_extra_vars(key: str, value: Any) -> JobOption:
    def apply(job: Job) -> None:
        job.options.extra_vars[key] = value

    return apply


def with_forks(forks) -> JobOption:
    def apply(job: Job) -> None:
        job.options.forks = str(forks) if forks else ""

    return apply


def with_playbook_options(options: PlaybookOptions) -> JobOption:
    """Replace the raw playbook options; their limit/tags take precedence."""

    def apply(job: Job) -> None:
        job.options = options

    return apply


def with_stdout(sink: TextIO) -> JobOption:
    def apply(job: Job) -> None:
        job.stdout = sink

    return apply


def with_stderr(sink: TextIO) -> JobOption:
    def apply(job: Job) -> None:
        job.stderr = sink

    return apply
