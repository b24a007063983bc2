"""
hoist.cli.push_cmd — hoist push command.

  hoist push registry.example.com/team/app:v1
  hoist push team/app            # short name, default registry
  hoist push app:v1 --force      # no confirmation for public registries
"""

import sys
import click


def _read_answer(prompt: str) -> str:
    return click.prompt(prompt, default="", show_default=False, prompt_suffix="")


@click.command("push")
@click.argument("name")
@click.option("--force", "-f", is_flag=True,
              help="Push to public registry without confirmation")
def push_cmd(name, force):
    """Push an image or a repository to a registry.

    NAME is NAME[:TAG]; digest references cannot be pushed.
    """
    from hoist.oci.config import load_config
    from hoist.oci.client import transport_from_config
    from hoist.oci.errors import HoistError
    from hoist.oci.push import Pusher, confirm_push
    from hoist.cli.login_cmd import InteractiveLogin

    try:
        cfg = load_config()
        pusher = Pusher(
            transport=transport_from_config(cfg),
            store=cfg.auths,
            confirm=lambda: confirm_push(_read_answer, click.echo),
            login=InteractiveLogin(cfg),
            echo=click.echo,
            default_index=cfg.resolved_default_registry(),
        )
        result = pusher.push(name, force=force)
        if result.declined:
            return

        with result.stream as messages:
            for message in messages:
                click.echo(str(message))

    except HoistError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
