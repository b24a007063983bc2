"""
hoist.cli.login_cmd — hoist login / hoist logout commands.

  hoist login                         # default registry
  hoist login registry.example.com -u bot -p TOKEN
  echo $TOKEN | hoist login ghcr.io -u me --password-stdin
  hoist logout registry.example.com
"""

from __future__ import annotations

import logging
import sys
from typing import Callable

import click

from hoist.oci.config import HoistConfig, save_config
from hoist.oci.credentials import Credential, auth_config_key, convert_to_hostname
from hoist.oci.errors import LoginError
from hoist.oci.reference import index_info_for

logger = logging.getLogger(__name__)


def verify_registry_login(hostname: str, username: str, password: str) -> None:
    """Check the credential against the registry with oras-py."""
    import oras.client

    try:
        client = oras.client.OrasClient()
        response = client.login(
            hostname=hostname,
            username=username,
            password=password,
        )
    except Exception as e:
        raise LoginError(f"Login to {hostname} failed: {e}") from e

    status = response.get("Status", "") if isinstance(response, dict) else ""
    if status and "succeeded" not in status.lower():
        raise LoginError(f"Login to {hostname} failed: {status}")


class InteractiveLogin:
    """Obtain a credential for an identity key, prompting for what is
    missing, then store and save it.

    Used by `hoist login` and as the re-authentication step of a push.
    """

    def __init__(
        self,
        cfg: HoistConfig,
        username: str | None = None,
        password: str | None = None,
        email: str | None = None,
        verify: Callable[[str, str, str], None] | None = None,
    ):
        self.cfg = cfg
        self.username = username
        self.password = password
        self.email = email
        self.verify = verify

    def __call__(self, key: str) -> Credential:
        stored = self.cfg.auths.resolve(key)

        username = self.username
        if not username:
            default = stored.username if stored and stored.username else None
            username = click.prompt("Username", default=default)
        password = self.password
        if not password:
            password = click.prompt("Password", hide_input=True)
        if not username or not password:
            raise LoginError("Username and password are required")

        email = self.email
        if email is None:
            email = stored.email if stored else ""

        hostname = convert_to_hostname(key)
        verify = self.verify if self.verify is not None else verify_registry_login
        verify(hostname, username, password)

        credential = Credential(
            username=username,
            secret=password,
            email=email,
            server_address=key,
        )
        self.cfg.auths.upsert(key, credential)
        save_config(self.cfg)
        logger.debug("Saved credential for %s", key)
        click.echo("Login Succeeded")
        return credential


def _default_server(cfg: HoistConfig) -> str:
    from hoist.oci.client import transport_from_config

    transport = transport_from_config(cfg)
    return cfg.resolved_default_registry(transport.index_server_name)


@click.command("login")
@click.argument("server", required=False)
@click.option("--username", "-u", default=None, help="Registry username")
@click.option("--password", "-p", default=None,
              help="Registry password/token (or use --password-stdin)")
@click.option("--password-stdin", is_flag=True,
              help="Read password from stdin")
@click.option("--email", "-e", default=None, help="Email")
def login_cmd(server, username, password, password_stdin, email):
    """Log in to a registry.

    If no server is specified, the default registry is used.
    """
    from hoist.oci.config import load_config
    from hoist.oci.errors import HoistError

    if password and password_stdin:
        click.echo("Error: --password and --password-stdin are mutually "
                   "exclusive", err=True)
        sys.exit(1)
    if password_stdin:
        if not username:
            click.echo("Error: Must provide --username with --password-stdin",
                       err=True)
            sys.exit(1)
        password = sys.stdin.readline().rstrip("\r\n")

    try:
        cfg = load_config()
        if server is None:
            server = _default_server(cfg)
        key = auth_config_key(index_info_for(server))
        InteractiveLogin(cfg, username, password, email)(key)
    except HoistError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.command("logout")
@click.argument("server", required=False)
def logout_cmd(server):
    """Log out from a registry.

    If no server is specified, the default is specified by the engine.
    """
    from hoist.oci.config import load_config
    from hoist.oci.errors import HoistError

    try:
        cfg = load_config()
        if server is None:
            server = _default_server(cfg)
        key = auth_config_key(index_info_for(server))

        if key not in cfg.auths:
            click.echo(f"Not logged in to {key}")
            return

        click.echo(f"Remove login credentials for {key}")
        cfg.auths.remove(key)
        save_config(cfg)
    except HoistError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
