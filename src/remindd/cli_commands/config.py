"""``remindd config`` — validate and show the effective configuration."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from remindd.cli_commands._output import console, err_console, print_config


@click.command("config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config YAML (defaults to $REMINDD_CONFIG).",
)
@click.option("--json", "as_json", is_flag=True, help="Print the configuration as JSON.")
def config_cmd(config_path: Path | None, as_json: bool) -> None:
    """Validate the configuration and print the effective values."""
    from remindd.daemon.config import ConfigError, load_config
    from remindd.daemon.supervisor import ExitCode

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)

    if as_json:
        console.print_json(config.model_dump_json())
        return
    print_config(config)
