#!/usr/bin/env python3
"""pgfleet CLI - Main entry point"""

import functools
import os
import sys

import rich_click as click
from click.exceptions import ClickException, UsageError

from pgfleet import __version__
from pgfleet.commands.clean import clean
from pgfleet.commands.config import config
from pgfleet.commands.infra import infra
from pgfleet.commands.node import node
from pgfleet.commands.pgsql import pgsql
from pgfleet.commands.serve import serve
from pgfleet.constants import DEFAULT_INVENTORY_PATH
from pgfleet.exceptions import PgFleetError
from pgfleet.logger import console, setup_logging

# Configure rich-click help output
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100
click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"
click.rich_click.ERRORS_EPILOGUE = ""


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            if e.ctx and e.ctx.command:
                console.print(
                    f"[dim]Run[/dim] [cyan]pgfleet {e.ctx.command_path.split(' ', 1)[-1]} --help[/cyan]"
                    " [dim]for usage information[/dim]\n"
                )
            sys.exit(2)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except PgFleetError as e:
            console.print(f"\n[bold red]✗ {type(e).__name__}:[/bold red] {e.message}\n")
            if e.context:
                console.print(f"[dim]Context: {e.context}[/dim]\n")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(130)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")
            # Show traceback in verbose mode or if DEBUG env var is set
            if os.environ.get("DEBUG") or os.environ.get("VERBOSE"):
                console.print_exception()
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-i",
    "--inventory",
    default=DEFAULT_INVENTORY_PATH,
    show_default=True,
    help="Inventory file or directory (env PGFLEET_INVENTORY)",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, inventory: str, verbose: bool) -> None:
    """
    pgfleet - PostgreSQL fleet control plane

    \b
    Nouns:
      infra    setup infrastructure   init|repo|node|ca|dns|prometheus|grafana|loki|pgsql|haproxy|target
      node     setup database nodes   init|dcs|tune|remove
      pgsql    setup pgsql clusters   init|node|dcs|postgres|monitor|service|pgbouncer|...|remove
      clean    remove pgsql clusters  all|service|monitor|postgres|dcs|packages|promtail
      config   inventory file         path|dump|validate
      serve    run the API server

    \b
    Examples:
      pgfleet infra                       # infra summary
      pgfleet pgsql                       # pgsql clusters summary
      pgfleet pgsql init -l pg-test       # create cluster pg-test
      pgfleet pgsql init -l 10.10.10.13   # add instance 10.10.10.13
      pgfleet clean -l pg-test            # remove cluster pg-test
    """
    setup_logging(verbose)
    ctx.obj = {"inventory": inventory, "verbose": verbose}


cli.add_command(pgsql)
cli.add_command(node)
cli.add_command(infra)
cli.add_command(clean)
cli.add_command(config)
cli.add_command(serve)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli()


if __name__ == "__main__":
    main()
