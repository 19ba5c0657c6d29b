"""
Executor

Factory of jobs bound to one loaded inventory and its working directory.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from pgfleet.conf.config import Config, load_config
from pgfleet.constants import (
    DEFAULT_INVENTORY_NAME,
    EXECUTOR_HOME,
    EXECUTOR_LOG_DIR,
    EXECUTOR_PUBLIC_DIR,
)
from pgfleet.exceptions import InventoryIOError
from pgfleet.runner.job import Job, JobOption

logger = logging.getLogger(__name__)


class Executor:
    """
    Holds the inventory location, the parsed config and the jobs it created.

    ansible-playbook always runs in ``work_dir`` (the inventory's directory)
    so relative playbook names resolve against it.
    """

    def __init__(self, path: Union[str, Path], log_dir: Optional[Union[str, Path]] = None):
        """
        Args:
            path: Inventory file, or a directory holding ``pigsty.yml``
            log_dir: Directory for job output logs, ``<work_dir>/.pgfleet/log`` if None

        Raises:
            InventoryIOError: If the inventory cannot be found or read
            SchemaError, ValidationError: If the inventory is invalid
        """
        config_path = Path(path).expanduser().absolute()
        if not config_path.exists():
            raise InventoryIOError(f"invalid inventory path {config_path}")
        if config_path.is_dir():
            work_dir = config_path
            config_path = config_path / DEFAULT_INVENTORY_NAME
            if not config_path.is_file():
                raise InventoryIOError(f"could not find {DEFAULT_INVENTORY_NAME} in {work_dir}")
        else:
            work_dir = config_path.parent

        self.work_dir: Path = work_dir
        self.inventory: str = config_path.name
        self.config: Config = load_config(config_path)
        self.jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._log_dir = Path(log_dir) if log_dir else None
        logger.debug("load config from %s", config_path)

    @property
    def config_path(self) -> Path:
        return self.work_dir / self.inventory

    @property
    def log_dir(self) -> Path:
        if self._log_dir is not None:
            return self._log_dir
        return self.work_dir / EXECUTOR_HOME / EXECUTOR_LOG_DIR

    @property
    def static_dir(self) -> Path:
        return self.work_dir / EXECUTOR_HOME / EXECUTOR_PUBLIC_DIR

    def new_job(self, *options: JobOption) -> Job:
        """
        Build and register a job.

        Options apply in order; convenience limit/tags fill the playbook
        options afterwards only where those are still empty.
        """
        job = Job(executor=self)
        for option in options:
            option(job)
        job.apply_scope()
        job.command = str(job.build_command())
        with self._lock:
            self.jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self.jobs.get(job_id)

    def __repr__(self) -> str:
        return f"Executor(work_dir={str(self.work_dir)!r}, inventory={self.inventory!r})"
