"""Base classes for pgfleet CLI commands."""

from pgfleet.base.base_command import BaseCommand, resolve_inventory
from pgfleet.base.job_command import (
    JobCommand,
    JobOptions,
    PlaybookTask,
    conf_mode,
    split_tags,
    tune_mode,
)

__all__ = [
    "BaseCommand",
    "JobCommand",
    "JobOptions",
    "PlaybookTask",
    "conf_mode",
    "resolve_inventory",
    "split_tags",
    "tune_mode",
]
