"""Print the advertised tool descriptors."""

from __future__ import annotations

import json

import click

from remindd.cli_commands._output import console, print_tools_table


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print descriptors as JSON.")
def tools(as_json: bool) -> None:
    """Show the tools advertised during ``initialize``."""
    from remindd.protocol.tools import REMINDER_TOOLS

    descriptors = REMINDER_TOOLS.descriptors()
    if as_json:
        console.print_json(json.dumps([d.to_wire() for d in descriptors]))
        return
    print_tools_table(descriptors)
