"""Job execution: ansible-playbook commands, jobs and the executor."""

from pgfleet.runner.executor import Executor
from pgfleet.runner.job import (
    Job,
    JobStatus,
    setup_os_env,
    with_extra_vars,
    with_forks,
    with_limit,
    with_log_path,
    with_name,
    with_playbook,
    with_playbook_options,
    with_stderr,
    with_stdout,
    with_tags,
)
from pgfleet.runner.playbook import PlaybookCommand, PlaybookOptions

__all__ = [
    "Executor",
    "Job",
    "JobStatus",
    "PlaybookCommand",
    "PlaybookOptions",
    "setup_os_env",
    "with_extra_vars",
    "with_forks",
    "with_limit",
    "with_log_path",
    "with_name",
    "with_playbook",
    "with_playbook_options",
    "with_stderr",
    "with_stdout",
    "with_tags",
]
