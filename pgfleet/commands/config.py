"""
Config Commands

Inspect the inventory file.
"""

import click

from pgfleet.base import BaseCommand


class ConfigPathCommand(BaseCommand):
    def execute(self) -> None:
        self.console.print(
            str(self.executor.config_path), markup=False, highlight=False, soft_wrap=True
        )


class ConfigDumpCommand(BaseCommand):
    """Print the inventory re-serialized from the parsed model."""

    def execute(self) -> None:
        self.console.print(
            self.executor.config.to_yaml(), markup=False, highlight=False, soft_wrap=True
        )


class ConfigValidateCommand(BaseCommand):
    """Load the inventory and report a short summary; errors exit non-zero."""

    def execute(self) -> None:
        config = self.executor.config
        meta = len(config.meta_cluster.instances) if config.meta_cluster else 0
        self.print_success(
            f"{self.executor.config_path} is valid: {len(config.cluster_map)} clusters, "
            f"{len(config.instance_map)} instances, {meta} meta nodes"
        )


@click.group()
def config():
    """Manage the inventory file"""
    pass


@config.command(name="path")
@click.pass_context
def config_path(ctx):
    """Print absolute inventory path"""
    ConfigPathCommand(**ctx.obj).run()


@config.command(name="dump")
@click.pass_context
def config_dump(ctx):
    """Print the parsed inventory as YAML"""
    ConfigDumpCommand(**ctx.obj).run()


@config.command(name="validate")
@click.pass_context
def config_validate(ctx):
    """Parse and validate the inventory"""
    ConfigValidateCommand(**ctx.obj).run()
