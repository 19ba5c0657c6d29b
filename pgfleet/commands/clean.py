"""
Clean Commands

Remove pgsql clusters, instances or single components. A limit is
mandatory unless -f is given, otherwise every instance would be purged.
"""

import click

from pgfleet.base import JobCommand, JobOptions, PlaybookTask, split_tags
from pgfleet.commands.options import add_task_command

CLEAN_REMOVE = PlaybookTask(name="pgsql remove", playbook="pgsql-remove.yml")

CLEAN_TASKS = {
    "all": (
        PlaybookTask(
            name="pgsql remove all",
            playbook="pgsql-remove.yml",
            tags=("service", "monitor", "postgres", "dcs", "pkgs"),
        ),
        "Remove pgsql and uninstall packages",
    ),
    "service": (
        PlaybookTask(name="clean service", playbook="pgsql-remove.yml", tags=("service",)),
        "Remove pgsql service",
    ),
    "monitor": (
        PlaybookTask(name="clean monitor", playbook="pgsql-remove.yml", tags=("monitor",)),
        "Remove pgsql monitor",
    ),
    "postgres": (
        PlaybookTask(name="clean postgres", playbook="pgsql-remove.yml", tags=("postgres",)),
        "Remove postgres, pgbouncer and patroni",
    ),
    "dcs": (
        PlaybookTask(name="clean dcs", playbook="pgsql-remove.yml", tags=("dcs",)),
        "Remove consul dcs agent",
    ),
    "packages": (
        PlaybookTask(name="clean packages", playbook="pgsql-remove.yml", tags=("packages",)),
        "Remove pgsql and dcs packages",
    ),
    "promtail": (
        PlaybookTask(
            name="clean promtail",
            playbook="pgsql-promtail.yml",
            tags=("promtail_clean",),
            extra_vars={"promtail_clean": True},
        ),
        "Remove promtail service",
    ),
}


@click.group(invoke_without_command=True)
@click.option("-l", "--limit", default="", help="Limit execution hosts")
@click.option("-t", "--tags", multiple=True, help="Limit execution tasks")
@click.option("-f", "--force", is_flag=True, help="Allow running without limit")
@click.pass_context
def clean(ctx, limit, tags, force):
    """
    Remove pgsql clusters or instances

    \b
    Examples:
      pgfleet clean -l pg-test            # remove cluster pg-test
      pgfleet clean -l 10.10.10.13        # remove one instance
      pgfleet clean service -l pg-test    # remove service component only
    """
    if ctx.invoked_subcommand is None:
        options = JobOptions(limit=limit, tags=split_tags(tags), force=force)
        JobCommand("clean", CLEAN_REMOVE, options, **ctx.obj).run()
    else:
        # subcommands fall back to the group level -l/-t/-f
        ctx.obj = dict(ctx.obj, job_defaults=JobOptions(limit, split_tags(tags), force))


for _verb, (_task, _help) in CLEAN_TASKS.items():
    add_task_command(clean, _verb, _task, _help)
