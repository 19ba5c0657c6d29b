"""
Job Command

Base for every CLI verb that runs one playbook against a limit.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pgfleet.base.base_command import BaseCommand
from pgfleet.constants import ERROR_LIMIT_REQUIRED
from pgfleet.runner.job import (
    Job,
    with_extra_vars,
    with_forks,
    with_limit,
    with_name,
    with_playbook,
    with_tags,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaybookTask:
    """
    What a verb runs.

    Attributes:
        name: Human readable job name
        playbook: Playbook file
        tags: Fixed tags; user ``-t`` tags are used when empty
        extra_vars: Always passed
        force_vars: Passed only with ``-f``
        force_forks: Forks used with ``-f``
        mode_var: Extra var fed by ``-m``
        mode_format: Normalizes the ``-m`` value
        default_limit: Limit used when ``-l`` is absent
    """

    name: str
    playbook: str
    tags: Tuple[str, ...] = ()
    extra_vars: Dict[str, Any] = field(default_factory=dict)
    force_vars: Dict[str, Any] = field(default_factory=dict)
    force_forks: str = ""
    mode_var: str = ""
    mode_format: Optional[Callable[[str], str]] = None
    default_limit: str = ""


@dataclass
class JobOptions:
    """Options shared by playbook verbs."""

    limit: str = ""
    tags: List[str] = field(default_factory=list)
    force: bool = False
    mode: str = ""


def split_tags(values) -> List[str]:
    """Split repeatable, comma separated ``-t`` values."""
    tags = []
    for value in values or ():
        tags.extend(t.strip() for t in value.split(",") if t.strip())
    return tags


class JobCommand(BaseCommand):
    """
    Run a PlaybookTask synchronously, streaming output to the terminal.

    A limit is required unless ``-f`` is given or the task has a default one.
    """

    def __init__(
        self,
        verb: str,
        task: PlaybookTask,
        options: JobOptions,
        inventory: Optional[str] = None,
        verbose: bool = False,
    ):
        super().__init__(inventory=inventory, verbose=verbose)
        self.verb = verb
        self.task = task
        self.options = options

    @property
    def limit(self) -> str:
        return self.options.limit or self.task.default_limit

    def check_limit(self) -> None:
        if not self.limit and not self.options.force:
            self.exit_with_error(ERROR_LIMIT_REQUIRED.format(verb=self.verb.upper()))

    def build_job(self) -> Job:
        task = self.task
        job_options = [
            with_playbook(task.playbook),
            with_name(task.name),
            with_limit(self.limit),
            with_tags(*(task.tags or self.options.tags)),
        ]
        extra_vars = dict(task.extra_vars)
        if self.options.force:
            extra_vars.update(task.force_vars)
            if task.force_forks:
                job_options.append(with_forks(task.force_forks))
        if task.mode_var and self.options.mode:
            mode = self.options.mode
            if task.mode_format is not None:
                mode = task.mode_format(mode)
            extra_vars[task.mode_var] = mode
        job_options.extend(with_extra_vars(k, v) for k, v in extra_vars.items())
        return self.executor.new_job(*job_options)

    def execute(self) -> None:
        self.check_limit()
        job = self.build_job()
        self.console.print(
            job.command, style="dim", markup=False, highlight=False, soft_wrap=True
        )
        job.run()
        self.print_success(f"{self.task.name} finished")


def tune_mode(mode: str) -> str:
    """Node tune profile: ``OLTP.yml`` -> ``oltp``."""
    mode = mode.lower()
    if mode.endswith(".yml"):
        mode = mode[: -len(".yml")]
    return mode


def conf_mode(mode: str) -> str:
    """Patroni config template: ``OLTP`` -> ``oltp.yml``."""
    mode = mode.lower()
    if not mode.endswith(".yml"):
        mode += ".yml"
    return mode
