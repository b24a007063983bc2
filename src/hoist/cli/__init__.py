"""
hoist.cli — CLI entry point.

Commands:
  hoist push NAME[:TAG] [--force]   — Push to a registry
  hoist login [SERVER]              — Store registry credentials
  hoist logout [SERVER]             — Remove registry credentials
"""

import logging

import click

from hoist.cli.push_cmd import push_cmd
from hoist.cli.login_cmd import login_cmd as _login_cmd, logout_cmd


@click.group()
@click.option("--debug", "-D", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="hoist")
def main(debug):
    """hoist — push images to container registries."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


main.add_command(push_cmd, "push")
main.add_command(_login_cmd, "login")
main.add_command(logout_cmd, "logout")
