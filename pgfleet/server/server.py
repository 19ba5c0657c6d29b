"""
Control Server

Owns one Executor and at most one live job. The executor reference is
guarded by a plain mutex, the job slot by a readers-writer lock; when both
are needed the job lock is taken first.
"""

import json
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pgfleet.conf.cluster import Cluster
from pgfleet.conf.config import parse_config, overwrite_config
from pgfleet.constants import (
    DATA_DIR_ENV,
    DEFAULT_DATA_DIR,
    DEFAULT_INVENTORY_PATH,
    DEFAULT_LISTEN_ADDR,
    INVENTORY_ENV,
    JOB_SUBDIR,
    LISTEN_ADDR_ENV,
    LOG_SUBDIR,
)
from pgfleet.exceptions import (
    ClusterNotFoundError,
    ConflictError,
    InventoryIOError,
    PgFleetError,
)
from pgfleet.runner.executor import Executor
from pgfleet.runner.job import (
    Job,
    with_limit,
    with_name,
    with_playbook,
    with_tags,
)
from pgfleet.server.locks import RWLock

logger = logging.getLogger(__name__)

JOB_ID_RE = re.compile(r"^[0-9A-Za-z-]+$")


@dataclass
class ServerSettings:
    """Settings of ``pgfleet serve``; unset fields fall back to env, then defaults."""

    config_path: str = field(
        default_factory=lambda: os.environ.get(INVENTORY_ENV, DEFAULT_INVENTORY_PATH)
    )
    data_dir: str = field(
        default_factory=lambda: os.environ.get(DATA_DIR_ENV, DEFAULT_DATA_DIR)
    )
    listen_addr: str = field(
        default_factory=lambda: os.environ.get(LISTEN_ADDR_ENV, DEFAULT_LISTEN_ADDR)
    )
    public_dir: Optional[str] = None

    def host_port(self) -> Tuple[str, int]:
        """
        Split listen_addr into host and port.

        ``:9633`` listens on all interfaces.
        """
        host, _, port = self.listen_addr.rpartition(":")
        if not port.isdigit():
            raise PgFleetError(f"invalid listen address {self.listen_addr}")
        return host.strip("[]") or "0.0.0.0", int(port)


class ControlServer:
    """Control plane shared by all HTTP request handlers."""

    def __init__(
        self,
        config_path: Union[str, Path],
        data_dir: Union[str, Path] = DEFAULT_DATA_DIR,
        public_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Args:
            config_path: Inventory file or directory
            data_dir: Holds ``log/`` and ``job/`` persistence directories
            public_dir: Static assets directory, packaged assets if None

        Raises:
            InventoryIOError, SchemaError, ValidationError: If the initial
                inventory cannot be loaded
        """
        self.data_dir = Path(data_dir)
        self.public_dir = Path(public_dir) if public_dir else None
        self._executor_lock = threading.Lock()
        self._job_lock = RWLock()
        self._job: Optional[Job] = None
        self._executor = Executor(config_path)

        for directory in (self.log_dir, self.job_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InventoryIOError(f"fail to create {directory}", context=str(e)) from e

    @property
    def executor(self) -> Executor:
        with self._executor_lock:
            return self._executor

    @property
    def config_path(self) -> Path:
        return self.executor.config_path

    # ------------------------------------------------------------------
    # Job slot
    # ------------------------------------------------------------------
    def run_job(self, job: Job) -> Job:
        """
        Store job in the slot and start it in background.

        Raises:
            ConflictError: If a ready or running job holds the slot
        """
        with self._job_lock.write():
            current = self._job
            if current is not None and not current.status.is_terminal:
                raise ConflictError("job running", job=current)
            self._job = job
            job.run_async()
        logger.info("job %s started: %s", job.id, job.command)
        return job

    def get_job(self) -> Optional[Job]:
        """Return the live job; a finished job is dropped from the slot."""
        with self._job_lock.read():
            job = self._job
            if job is None or not job.status.is_terminal:
                return job
        with self._job_lock.write():
            if self._job is job:
                self._job = None
        return None

    def del_job(self) -> Optional[Job]:
        """
        Cancel the live job and clear the slot.

        Returns:
            The cancelled job (terminal on return), or None if no job was live
        """
        with self._job_lock.write():
            job, self._job = self._job, None
            if job is None or job.status.is_terminal:
                return None
            logger.warning("cancelling job %s", job.id)
            job.cancel()
            job.wait()
            return job

    def _ensure_idle(self) -> None:
        # caller holds the job write lock
        if self._job is not None and self._job.status.is_terminal:
            self._job = None
        if self._job is not None:
            raise ConflictError("can not change config while job running", job=self._job)

    def _swap_executor(self, path: Union[str, Path]) -> Executor:
        executor = Executor(path)
        with self._executor_lock:
            self._executor = executor
        logger.info("executor reloaded from %s", executor.config_path)
        return executor

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    def reload(self, path: Optional[Union[str, Path]] = None) -> Executor:
        """
        Swap in a freshly loaded executor.

        Raises:
            ConflictError: If a job is stored
            InventoryIOError, SchemaError, ValidationError: If loading fails;
                the previous executor stays in place
        """
        with self._job_lock.write():
            self._ensure_idle()
            return self._swap_executor(path or self.config_path)

    def read_config(self) -> bytes:
        path = self.config_path
        try:
            return path.read_bytes()
        except OSError as e:
            raise InventoryIOError(f"fail to read config {path}", context=str(e)) from e

    def update_config(self, data: Union[bytes, str]) -> Optional[Path]:
        """
        Validate, persist with backup, then reload.

        Returns:
            Backup path of the previous inventory

        Raises:
            SchemaError, ValidationError: If data is not a valid inventory
            ConflictError: If a job is stored; nothing is written
            InventoryIOError: If writing fails
        """
        parse_config(data)
        with self._job_lock.write():
            self._ensure_idle()
            path = self.config_path
            backup = overwrite_config(data, path)
            self._swap_executor(path)
        return backup

    def get_cluster(self, name: str) -> Cluster:
        """
        Raises:
            ClusterNotFoundError: If the inventory has no such cluster
        """
        config = self.executor.config
        cluster = config.get_cluster(name)
        if cluster is None:
            raise ClusterNotFoundError(name, [c.name for c in config.clusters])
        return cluster

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    def new_job(
        self,
        playbook: str,
        limit: str = "",
        tags: Optional[List[str]] = None,
        name: Optional[str] = None,
    ) -> Job:
        """
        Build a job whose ansible log goes to ``data_dir/log/<id>.log``.

        The descriptor is saved now and again once the job is terminal.
        """
        if not playbook.endswith(".yml"):
            playbook += ".yml"
        job = self.executor.new_job(
            with_playbook(playbook),
            with_name(name or f"{playbook}-{limit}"),
            with_limit(limit),
            with_tags(*(tags or [])),
        )
        job.log_path = str(self.log_path(job.id))
        job.on_done = self._persist_job
        logger.info("new job %s created, log: %s", job.id, job.log_path)
        self._persist_job(job)
        return job

    def _persist_job(self, job: Job) -> None:
        try:
            self.save_job(job)
        except InventoryIOError as e:
            logger.error("fail to save job %s: %s", job.id, e)

    def submit_job(self, playbook: str, limit: str = "", tags: Optional[List[str]] = None) -> Job:
        return self.run_job(self.new_job(playbook, limit, tags))

    def stream_job(self, job: Job) -> Iterator[str]:
        """
        Start job and iterate over its output lines.

        The job is started before this returns, so a ConflictError surfaces
        to the caller immediately. Iteration ends once the output pipe hits
        EOF and the job reached a terminal state.
        """
        reader = job.pipe_output()
        try:
            self.run_job(job)
        except PgFleetError:
            job.close_pipe()
            reader.close()
            raise

        def lines() -> Iterator[str]:
            with reader:
                for line in reader:
                    yield line.rstrip("\n")
            job.wait()

        return lines()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    @property
    def log_dir(self) -> Path:
        return self.data_dir / LOG_SUBDIR

    @property
    def job_dir(self) -> Path:
        return self.data_dir / JOB_SUBDIR

    def log_path(self, job_id: str) -> Path:
        """Ansible log path of job_id; raises ValueError on ids that are not plain tokens."""
        if not JOB_ID_RE.match(job_id):
            raise ValueError(f"invalid job id {job_id!r}")
        return self.log_dir / f"{job_id}.log"

    def job_path(self, job_id: str) -> Path:
        if not JOB_ID_RE.match(job_id):
            raise ValueError(f"invalid job id {job_id!r}")
        return self.job_dir / f"{job_id}.json"

    def save_job(self, job: Job) -> Path:
        path = self.job_path(job.id)
        try:
            path.write_text(json.dumps(job.to_dict(), indent=2))
        except OSError as e:
            raise InventoryIOError(f"fail to save job to {path}", context=str(e)) from e
        return path

    def list_job_dir(self) -> List[Dict[str, Any]]:
        """Persisted job descriptors, most recent first."""
        jobs = []
        for path in _files_by_mtime(self.job_dir, "*.json"):
            try:
                jobs.append(json.loads(path.read_text()))
            except (OSError, ValueError) as e:
                logger.warning("skip unreadable job file %s: %s", path, e)
        return jobs

    def list_log_dir(self) -> List[Dict[str, Any]]:
        """Name, size and mtime of every log file, most recent first."""
        logs = []
        for path in _files_by_mtime(self.log_dir, "*.log"):
            st = path.stat()
            logs.append({"name": path.name, "size": st.st_size, "mtime": int(st.st_mtime)})
        return logs

    def latest_log(self) -> Optional[Path]:
        paths = _files_by_mtime(self.log_dir, "*.log")
        return paths[0] if paths else None


def _files_by_mtime(directory: Path, pattern: str) -> List[Path]:
    try:
        paths = [p for p in directory.glob(pattern) if p.is_file()]
        return sorted(paths, key=lambda p: p.stat().st_mtime, reverse=True)
    except OSError as e:
        raise InventoryIOError(f"fail to list {directory}", context=str(e)) from e
