"""
PgSQL Commands

List postgres clusters and run pgsql playbooks against them.
"""

import click

from pgfleet.base import BaseCommand, PlaybookTask, conf_mode, tune_mode
from pgfleet.commands.options import add_task_command, output_format
from pgfleet.constants import GROUP_META

PGSQL_TASKS = {
    "init": PlaybookTask(
        name="pgsql init",
        playbook="pgsql.yml",
        force_vars={"pg_exists_action": "clean", "dcs_exists_action": "clean"},
    ),
    "node": PlaybookTask(
        name="node init",
        playbook="pgsql.yml",
        tags=("node",),
        mode_var="node_tune",
        mode_format=tune_mode,
    ),
    "dcs": PlaybookTask(
        name="dcs init",
        playbook="pgsql.yml",
        tags=("dcs",),
        force_vars={"dcs_exists_action": "clean"},
    ),
    "postgres": PlaybookTask(
        name="postgres init",
        playbook="pgsql.yml",
        tags=("postgres",),
        force_vars={"pg_exists_action": "clean"},
    ),
    "monitor": PlaybookTask(name="monitor init", playbook="pgsql.yml", tags=("monitor",)),
    "service": PlaybookTask(name="service init", playbook="pgsql.yml", tags=("service",)),
    "pgbouncer": PlaybookTask(
        name="pgbouncer init", playbook="pgsql.yml", tags=("pgbouncer",)
    ),
    "template": PlaybookTask(name="template init", playbook="pgsql.yml", tags=("pg_init",)),
    "business": PlaybookTask(
        name="userdb init", playbook="pgsql.yml", tags=("pg_user", "pg_db")
    ),
    "config": PlaybookTask(
        name="pgsql config",
        playbook="pgsql.yml",
        tags=("pg_config",),
        mode_var="pg_conf",
        mode_format=conf_mode,
    ),
    "monly": PlaybookTask(
        name="monly init", playbook="pgsql-monitor.yml", tags=("monitor",)
    ),
    "hba": PlaybookTask(
        name="hba init",
        playbook="pgsql.yml",
        tags=("pg_hba",),
        extra_vars={"pg_reload": True},
    ),
    "remove": PlaybookTask(
        name="pgsql remove", playbook="pgsql-remove.yml", force_forks="10"
    ),
    "promtail": PlaybookTask(
        name="init promtail",
        playbook="pgsql-promtail.yml",
        force_vars={"promtail_clean": True},
    ),
}

PGSQL_HELP = {
    "init": "Init new postgres clusters or instances",
    "node": "Init pgsql node",
    "dcs": "Init pgsql dcs (consul)",
    "postgres": "Init postgres service (postgres|patroni|pgbouncer)",
    "monitor": "Init monitor components",
    "service": "Init services provider",
    "pgbouncer": "Init pgbouncer service",
    "template": "Init postgres template database",
    "business": "Init postgres business users and databases",
    "config": "Config pgsql with patroni template",
    "monly": "Init monitor system in monitor-only mode",
    "hba": "Init hba rule files",
    "remove": "Remove postgres cluster or instances",
    "promtail": "Init promtail log collect agent",
}

MODE_HELP = {
    "node": "Node tune template: oltp|olap|crit|tiny|other...",
    "config": "Patroni config template: oltp|olap|crit|tiny|other...",
}


class ClusterListCommand(BaseCommand):
    """Print every non-meta cluster matching the limit patterns."""

    def __init__(self, limit: str = "", format: str = "default", **kwargs):
        super().__init__(**kwargs)
        self.limit = limit
        self.format = format

    def execute(self) -> None:
        patterns = [p for p in self.limit.split(",") if p]
        for cluster in self.executor.config.clusters:
            if cluster.name == GROUP_META:
                continue
            if patterns and not cluster.match_names(patterns):
                continue
            self.console.print(
                cluster.repr_as(self.format), markup=False, highlight=False, soft_wrap=True
            )


def list_options(func):
    func = click.option("-j", "--json", "json_out", is_flag=True, help="JSON output")(func)
    func = click.option("-y", "--yaml", "yaml_out", is_flag=True, help="YAML output")(func)
    func = click.option("-d", "--detail", is_flag=True, help="Detail format")(func)
    func = click.option("-l", "--limit", default="", help="Limit listed clusters")(func)
    return func


@click.group(invoke_without_command=True)
@list_options
@click.pass_context
def pgsql(ctx, limit, detail, yaml_out, json_out):
    """
    Setup pgsql clusters

    \b
    Examples:
      pgfleet pgsql                       # show cluster definitions
      pgfleet pgsql init -l pg-test       # create cluster pg-test
      pgfleet pgsql hba -l pg-test        # refresh hba rules
      pgfleet pgsql remove -l 10.10.10.13 # remove one instance
    """
    if ctx.invoked_subcommand is None:
        fmt = output_format(detail, yaml_out, json_out)
        ClusterListCommand(limit=limit, format=fmt, **ctx.obj).run()


@pgsql.command(name="list")
@list_options
@click.pass_context
def pgsql_list(ctx, limit, detail, yaml_out, json_out):
    """List pgsql clusters"""
    fmt = output_format(detail, yaml_out, json_out)
    ClusterListCommand(limit=limit, format=fmt, **ctx.obj).run()


for _verb, _task in PGSQL_TASKS.items():
    add_task_command(pgsql, _verb, _task, PGSQL_HELP[_verb], MODE_HELP.get(_verb))
