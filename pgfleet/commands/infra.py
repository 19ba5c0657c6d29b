"""
Infra Commands

Show the infrastructure digest and run infra playbooks on meta nodes.
"""

import click

from pgfleet.base import BaseCommand, PlaybookTask
from pgfleet.commands.options import add_task_command
from pgfleet.constants import GROUP_META


def infra_task(name: str, tags=(), playbook: str = "infra.yml") -> PlaybookTask:
    return PlaybookTask(
        name=name, playbook=playbook, tags=tuple(tags), default_limit=GROUP_META
    )


INFRA_TASKS = {
    "init": (infra_task("infra init"), "Complete infra init on meta node"),
    "repo": (infra_task("infra repo init", ["repo"]), "Setup local yum repo"),
    "node": (infra_task("infra node init", ["node"]), "Setup node infrastructure"),
    "ca": (infra_task("infra ca init", ["ca"]), "Setup local ca"),
    "dns": (infra_task("infra dns init", ["nameserver"]), "Setup dnsmasq nameserver"),
    "prometheus": (
        infra_task("infra prometheus init", ["prometheus"]),
        "Setup prometheus & alertmanager",
    ),
    "grafana": (infra_task("infra grafana init", ["grafana"]), "Setup grafana service"),
    "loki": (
        infra_task("infra loki init", playbook="infra-loki.yml"),
        "Setup loki logging collector",
    ),
    "pgsql": (infra_task("infra pgsql init", ["pgsql"]), "Setup pgsql on meta nodes"),
    "haproxy": (
        infra_task("infra haproxy index update", ["nginx_haproxy", "nginx_restart"]),
        "Refresh haproxy admin page index",
    ),
    "target": (
        infra_task("infra filesd target", ["prometheus_targets", "prometheus_reload"]),
        "Refresh prometheus static targets",
    ),
}


class InfraInfoCommand(BaseCommand):
    def execute(self) -> None:
        self.console.print(
            self.executor.config.infra_info(), markup=False, highlight=False, soft_wrap=True
        )


@click.group(invoke_without_command=True)
@click.pass_context
def infra(ctx):
    """
    Setup infrastructure on meta nodes

    Without a subcommand, print meta nodes, DCS, nginx, repo, NTP and DNS
    settings. Subcommands target the meta group unless -l is given.
    """
    if ctx.invoked_subcommand is None:
        InfraInfoCommand(**ctx.obj).run()


for _verb, (_task, _help) in INFRA_TASKS.items():
    add_task_command(infra, _verb, _task, _help)
