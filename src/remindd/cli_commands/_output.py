"""Shared CLI output formatters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from remindd.daemon.config import DaemonConfig
    from remindd.protocol.models import ToolDescriptor

console = Console()
err_console = Console(stderr=True)


def print_tools_table(descriptors: tuple[ToolDescriptor, ...]) -> None:
    """Pretty-print tool descriptors as a table."""
    table = Table(title="Advertised Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments")

    for descriptor in descriptors:
        properties = descriptor.input_schema.get("properties", {})
        required = set(descriptor.input_schema.get("required", []))
        args = ", ".join(
            f"{name}*" if name in required else name for name in properties
        )
        table.add_row(descriptor.name, _truncate(descriptor.description), args or "-")

    console.print(table)


def print_config(config: DaemonConfig) -> None:
    """Pretty-print the effective configuration."""
    table = Table(title="Effective Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    for key, value in config.model_dump(mode="json").items():
        table.add_row(key, str(value))

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
