"""
Node Commands

List database nodes and run node playbooks.
"""

import logging

import click

from pgfleet.base import BaseCommand, PlaybookTask, tune_mode
from pgfleet.commands.options import add_task_command
from pgfleet.constants import GROUP_META

logger = logging.getLogger(__name__)

KNOWN_TUNE_PROFILES = ("oltp", "olap", "crit", "tiny")


def node_tune_mode(mode: str) -> str:
    mode = tune_mode(mode)
    if mode not in KNOWN_TUNE_PROFILES:
        logger.warning("unknown profile %s specified", mode)
    return mode


NODE_TASKS = {
    "init": PlaybookTask(
        name="node init",
        playbook="node.yml",
        force_vars={"dcs_exists_action": "clean"},
    ),
    "dcs": PlaybookTask(
        name="node dcs init",
        playbook="node.yml",
        tags=("dcs",),
        force_vars={"dcs_exists_action": "clean"},
    ),
    "tune": PlaybookTask(
        name="node tune",
        playbook="node.yml",
        tags=("node_tuned",),
        mode_var="node_tune",
        mode_format=node_tune_mode,
    ),
    "remove": PlaybookTask(
        name="node remove",
        playbook="node-remove.yml",
        force_vars={"yum_remove": True},
    ),
}

NODE_HELP = {
    "init": "Init database node",
    "dcs": "Init database node consul",
    "tune": "Tune database node",
    "remove": "Remove node (-f also uninstalls packages)",
}


class NodeListCommand(BaseCommand):
    """Print one line per database node; meta nodes are starred."""

    def __init__(self, limit: str = "", **kwargs):
        super().__init__(**kwargs)
        self.limit = limit

    def execute(self) -> None:
        config = self.executor.config
        patterns = [p for p in self.limit.split(",") if p]
        for cluster in config.clusters:
            if cluster.name == GROUP_META:
                continue
            for ins in cluster.instances:
                if patterns and not ins.match_names(patterns):
                    continue
                name = f"*{ins.name:<31}" if config.is_meta_node(ins.ip) else f"{ins.name:<32}"
                self.console.print(
                    f"{ins.ip:<15}\t{name}\t{ins.seq}.{ins.role}.{ins.cluster_name}",
                    markup=False,
                    highlight=False,
                    soft_wrap=True,
                )


@click.group(invoke_without_command=True)
@click.option("-l", "--limit", default="", help="Limit listed nodes")
@click.pass_context
def node(ctx, limit):
    """
    Setup database nodes

    \b
    Examples:
      pgfleet node                        # list database nodes
      pgfleet node init -l pg-test        # init nodes of pg-test
      pgfleet node tune -l pg-test -m olap
    """
    if ctx.invoked_subcommand is None:
        NodeListCommand(limit=limit, **ctx.obj).run()


for _verb, _task in NODE_TASKS.items():
    add_task_command(
        node,
        _verb,
        _task,
        NODE_HELP[_verb],
        "Node tune template: oltp|olap|crit|tiny|other..." if _verb == "tune" else None,
    )
