"""Smoke test to verify the project scaffolding works."""

from __future__ import annotations

import subprocess
import sys

import pytest


def test_import() -> None:
    import remindd

    assert remindd.__version__ == "0.1.0"


def test_cli_entrypoint() -> None:
    from remindd.cli import main

    assert callable(main)


@pytest.mark.parametrize(
    "module",
    ["remindd.protocol.tools", "remindd.protocol", "remindd.daemon", "remindd.cli"],
)
def test_fresh_interpreter_import(module: str) -> None:
    """Module-level registries must build without relying on import order."""
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0, result.stderr


def test_tool_registry_built_at_import() -> None:
    from remindd.protocol.tools import REMINDER_TOOLS

    assert [d.name for d in REMINDER_TOOLS.descriptors()] == REMINDER_TOOLS.names()


def test_package_imports() -> None:
    from remindd.daemon import DaemonConfig, ExitCode, Supervisor
    from remindd.protocol import Dispatcher, RpcServer
    from remindd.provider import InMemoryProvider, ReminderProvider

    assert Supervisor is not None
    assert DaemonConfig is not None
    assert ExitCode.CLEAN == 0
    assert Dispatcher is not None
    assert RpcServer is not None
    assert isinstance(InMemoryProvider(), ReminderProvider)
