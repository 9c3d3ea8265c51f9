"""Run the daemon on stdin/stdout."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from remindd.cli_commands._output import err_console

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config YAML (defaults to $REMINDD_CONFIG).",
)
@click.option(
    "--backend",
    type=click.Choice(["memory", "file"]),
    default=None,
    help="Reminders backend.",
)
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Store file for the file backend.",
)
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR.")
@click.option(
    "--require-authorization",
    is_flag=True,
    default=None,
    help="Exit at startup if reminders access is denied.",
)
@click.option("--telemetry", is_flag=True, default=None, help="Enable tracing to stderr.")
def serve(
    config_path: Path | None,
    backend: str | None,
    store_path: Path | None,
    log_level: str | None,
    require_authorization: bool | None,
    telemetry: bool | None,
) -> None:
    """Serve reminders tools over JSON-RPC on stdin/stdout.

    Diagnostics go to stderr; stdout carries protocol frames only.
    """
    from remindd.daemon.config import ConfigError, load_config
    from remindd.daemon.supervisor import ExitCode, run_stdio
    from remindd.provider import build_provider
    from remindd.utils.log import configure_logging

    try:
        config = load_config(config_path).with_overrides(
            backend=backend,
            store_path=store_path,
            log_level=log_level,
            require_authorization=require_authorization or None,
        )
    except ConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)

    configure_logging(config.log_level, console=err_console)

    if telemetry:
        config.telemetry.enabled = True
    if config.telemetry.enabled:
        from remindd.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(otlp_endpoint=config.telemetry.otlp_endpoint)
        except ImportError as exc:
            logger.warning("Telemetry disabled: %s", exc)

    provider = build_provider(config)

    try:
        exit_code = asyncio.run(run_stdio(config, provider))
    except KeyboardInterrupt:
        exit_code = ExitCode.CLEAN
    except Exception:
        logger.exception("Daemon crashed")
        exit_code = ExitCode.RUNTIME_FAILURE

    logger.info("Exiting with %s (%d)", exit_code.name, exit_code)
    sys.exit(int(exit_code))
