"""
Serve Command

Run the HTTP control server.
"""

from dataclasses import dataclass
from typing import Optional

import click

from pgfleet.base import BaseCommand
from pgfleet.server.server import ServerSettings


@dataclass
class ServeOptions:
    """Options for serve command; None falls back to env, then defaults."""

    listen_addr: Optional[str] = None
    data_dir: Optional[str] = None
    public_dir: Optional[str] = None


class ServeCommand(BaseCommand):
    """
    Start the control server.

    The inventory is loaded before the server binds; an invalid inventory
    aborts startup.
    """

    def __init__(self, options: ServeOptions, **kwargs):
        super().__init__(**kwargs)
        self.options = options

    def settings(self) -> ServerSettings:
        settings = ServerSettings(config_path=self.inventory)
        if self.options.listen_addr:
            settings.listen_addr = self.options.listen_addr
        if self.options.data_dir:
            settings.data_dir = self.options.data_dir
        if self.options.public_dir:
            settings.public_dir = self.options.public_dir
        return settings

    def execute(self) -> None:
        from pgfleet.server.app import start_server

        settings = self.settings()
        self.print_dim(
            f"inventory={settings.config_path} data={settings.data_dir} "
            f"listen={settings.listen_addr}"
        )
        start_server(settings)


@click.command()
@click.option("-L", "--listen-addr", default=None, help="Listen address, default :9633")
@click.option("-D", "--data-dir", default=None, help="Data directory, default /tmp/pgfleet")
@click.option("-P", "--public-dir", default=None, help="Static assets directory")
@click.pass_context
def serve(ctx, listen_addr, data_dir, public_dir):
    """
    Run pgfleet API server

    \b
    Examples:
      pgfleet serve
      pgfleet serve -L 127.0.0.1:9633 -D /var/lib/pgfleet
    """
    options = ServeOptions(listen_addr=listen_addr, data_dir=data_dir, public_dir=public_dir)
    ServeCommand(options, **ctx.obj).run()
