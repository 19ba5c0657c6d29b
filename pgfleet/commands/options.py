"""
Shared click wiring for playbook verbs.
"""

from typing import Optional

import click

from pgfleet.base import JobCommand, JobOptions, PlaybookTask, split_tags


def add_task_command(
    group: click.Group,
    verb: str,
    task: PlaybookTask,
    help_text: str,
    mode_help: Optional[str] = None,
) -> click.Command:
    """
    Register ``<group> <verb>`` running task with -l/-t/-f (and -m if mode_help).

    Args:
        group: Parent click group
        verb: Subcommand name
        task: Playbook task to run
        help_text: Short help of the subcommand
        mode_help: Help of the -m option, no -m option when None

    Returns:
        The registered command
    """

    @click.pass_context
    def callback(ctx: click.Context, limit: str, tags, force: bool, mode: str = ""):
        obj = dict(ctx.obj)
        defaults = obj.pop("job_defaults", None) or JobOptions()
        options = JobOptions(
            limit=limit or defaults.limit,
            tags=split_tags(tags) or defaults.tags,
            force=force or defaults.force,
            mode=mode,
        )
        JobCommand(f"{group.name} {verb}", task, options, **obj).run()

    command = callback
    if mode_help:
        command = click.option("-m", "--mode", default="", help=mode_help)(command)
    command = click.option("-f", "--force", is_flag=True, help="Force execution")(command)
    command = click.option(
        "-t", "--tags", multiple=True, help="Limit execution tasks (repeatable, comma separated)"
    )(command)
    command = click.option("-l", "--limit", default="", help="Limit execution hosts")(command)
    return group.command(name=verb, help=help_text)(command)


def output_format(detail: bool, yaml_out: bool, json_out: bool) -> str:
    """Turn -d/-y/-j flags into a Cluster.repr_as format."""
    if sum((detail, yaml_out, json_out)) > 1:
        raise click.UsageError("format args -d -j -y can not be used together")
    if yaml_out:
        return "yaml"
    if json_out:
        return "json"
    if detail:
        return "detail"
    return "default"
