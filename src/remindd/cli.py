"""remindd CLI entrypoint."""

from __future__ import annotations

import click

from remindd import __version__


@click.group()
@click.version_option(version=__version__, prog_name="remindd")
def main() -> None:
    """Reminders over JSON-RPC."""


# Register subcommands
from remindd.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
