"""Tests for the Supervisor lifecycle."""

from __future__ import annotations

import asyncio
import json
import signal
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from remindd.daemon.config import DaemonConfig
from remindd.daemon.supervisor import ExitCode, StartupError, Supervisor
from remindd.protocol.session import Authorization, Phase
from remindd.provider.base import AuthorizationStatus, UnavailableError
from remindd.provider.file_store import JsonFileProvider
from remindd.provider.memory import InMemoryProvider

if TYPE_CHECKING:
    from pathlib import Path


class _Sink:
    def __init__(self) -> None:
        self.data = bytearray()

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def messages(self) -> list[Any]:
        return [json.loads(line) for line in self.data.decode().splitlines()]


def _line(message: dict[str, Any]) -> bytes:
    return json.dumps(message).encode() + b"\n"


INIT = {"jsonrpc": "2.0", "id": 1, "method": "initialize"}


def _supervisor(
    provider: Any = None,
    *,
    config: DaemonConfig | None = None,
    clock: Any = None,
) -> tuple[Supervisor, asyncio.StreamReader, _Sink]:
    reader = asyncio.StreamReader()
    sink = _Sink()
    kwargs = {"clock": clock} if clock is not None else {}
    supervisor = Supervisor(
        config or DaemonConfig(),
        provider or InMemoryProvider(),
        reader,
        sink,
        **kwargs,
    )
    return supervisor, reader, sink


def _hanging_provider() -> MagicMock:
    async def hang() -> list[Any]:
        await asyncio.sleep(3600)
        return []

    provider = MagicMock()
    provider.request_authorization = AsyncMock(return_value=AuthorizationStatus.GRANTED)
    provider.lists = AsyncMock(side_effect=hang)
    return provider


async def _wait_for(predicate: Any, timeout: float = 1.0) -> None:
    for _ in range(int(timeout / 0.01)):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not met")


class TestRun:
    async def test_eof_is_clean_exit(self) -> None:
        supervisor, reader, sink = _supervisor()
        reader.feed_data(_line(INIT))
        reader.feed_eof()

        assert await supervisor.run(handle_signals=False) is ExitCode.CLEAN

        (reply,) = sink.messages()
        assert reply["result"]["authorization"] == "granted"
        assert supervisor.session.phase is Phase.READY

    async def test_oversized_frame_is_transport_failure(self) -> None:
        supervisor, reader, _ = _supervisor(config=DaemonConfig(max_frame_bytes=16))
        reader.feed_data(b"x" * 64)
        assert await supervisor.run(handle_signals=False) is ExitCode.TRANSPORT_FAILURE

    async def test_provider_unavailable_at_start(self) -> None:
        provider = MagicMock()
        provider.request_authorization = AsyncMock(side_effect=UnavailableError("offline"))
        supervisor, _, _ = _supervisor(provider)
        assert await supervisor.run(handle_signals=False) is ExitCode.PROVIDER_UNAVAILABLE

    async def test_denied_with_required_authorization(self) -> None:
        supervisor, _, _ = _supervisor(
            InMemoryProvider(grant=False),
            config=DaemonConfig(require_authorization=True),
        )
        assert await supervisor.run(handle_signals=False) is ExitCode.AUTHORIZATION_DENIED

    async def test_denied_keeps_serving(self, caplog: pytest.LogCaptureFixture) -> None:
        supervisor, reader, sink = _supervisor(InMemoryProvider(grant=False))
        reader.feed_data(_line(INIT))
        reader.feed_eof()

        assert await supervisor.run(handle_signals=False) is ExitCode.CLEAN
        assert sink.messages()[0]["result"]["authorization"] == "denied"
        assert "access denied" in caplog.text

    async def test_skip_authorization_on_start(self) -> None:
        provider = InMemoryProvider()
        supervisor, reader, _ = _supervisor(
            provider, config=DaemonConfig(authorize_on_start=False)
        )
        reader.feed_eof()
        assert await supervisor.run(handle_signals=False) is ExitCode.CLEAN
        assert provider.calls == []

    async def test_pid_file(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "run" / "remindd.pid"
        supervisor, reader, _ = _supervisor(config=DaemonConfig(pid_file=pid_file))

        run = asyncio.create_task(supervisor.run(handle_signals=False))
        await _wait_for(pid_file.exists)
        assert pid_file.read_text().strip().isdigit()

        reader.feed_eof()
        assert await run is ExitCode.CLEAN
        assert not pid_file.exists()


class TestStop:
    async def test_graceful_stop_waits_for_grace_period(self) -> None:
        supervisor, reader, _ = _supervisor(
            _hanging_provider(), config=DaemonConfig(grace_period=0.05)
        )
        await supervisor.start()
        reader.feed_data(_line(INIT))
        await _wait_for(lambda: supervisor.session.ready)
        reader.feed_data(
            _line(
                {
                    "jsonrpc": "2.0",
                    "id": 2,
                    "method": "tools/call",
                    "params": {"name": "get_lists"},
                }
            )
        )
        await _wait_for(lambda: supervisor.server.in_flight == 1)

        await supervisor.stop()

        assert supervisor.server.in_flight == 0
        assert not supervisor.server.accepting

    async def test_second_stop_forces(self) -> None:
        supervisor, reader, _ = _supervisor(
            _hanging_provider(), config=DaemonConfig(grace_period=3600)
        )
        await supervisor.start()
        reader.feed_data(_line(INIT))
        await _wait_for(lambda: supervisor.session.ready)
        reader.feed_data(
            _line(
                {
                    "jsonrpc": "2.0",
                    "id": 2,
                    "method": "tools/call",
                    "params": {"name": "get_lists"},
                }
            )
        )
        await _wait_for(lambda: supervisor.server.in_flight == 1)

        graceful = asyncio.create_task(supervisor.stop())
        await asyncio.sleep(0.01)
        assert not graceful.done()

        await asyncio.wait_for(supervisor.stop(graceful=False), timeout=1)
        await asyncio.wait_for(graceful, timeout=1)
        assert supervisor.server.in_flight == 0

    async def test_signals(self) -> None:
        supervisor, _, _ = _supervisor(
            _hanging_provider(), config=DaemonConfig(grace_period=3600)
        )
        run = asyncio.create_task(supervisor.run(handle_signals=False))
        await _wait_for(lambda: supervisor.session.authorization is Authorization.GRANTED)

        supervisor._on_signal(signal.SIGTERM)
        supervisor._on_signal(signal.SIGINT)

        assert await asyncio.wait_for(run, timeout=1) is ExitCode.CLEAN


class TestHealth:
    async def test_health_check(self) -> None:
        ticks = iter([100.0, 102.5])
        supervisor, _, _ = _supervisor(clock=lambda: next(ticks))
        await supervisor.start()

        health = supervisor.health_check()

        assert health.phase is Phase.UNINITIALIZED
        assert health.authorization is Authorization.GRANTED
        assert health.uptime == 2.5
        assert health.in_flight == 0
        assert health.accepting is True
        await supervisor.stop()

    async def test_health_method_on_the_wire(self) -> None:
        supervisor, reader, sink = _supervisor()
        reader.feed_data(_line({"jsonrpc": "2.0", "id": 7, "method": "health"}))
        reader.feed_eof()

        await supervisor.run(handle_signals=False)

        (reply,) = sink.messages()
        assert set(reply["result"]) == {"phase", "authorization", "uptime", "inFlight", "accepting"}


class TestStartupError:
    def test_message(self) -> None:
        err = StartupError(ExitCode.AUTHORIZATION_DENIED, "denied")
        assert err.exit_code == 77
        assert "AUTHORIZATION_DENIED" in str(err)


class TestStartupFailures:
    async def test_undecodable_store_is_provider_unavailable(self, tmp_path: Path) -> None:
        store = tmp_path / "reminders.json"
        store.write_bytes(b'{"lists": [{"name": "\xff\xfe"}]}')
        supervisor, _, _ = _supervisor(JsonFileProvider(store))

        assert await supervisor.run(handle_signals=False) is ExitCode.PROVIDER_UNAVAILABLE
        assert not supervisor.server.accepting

    async def test_unexpected_startup_error_is_runtime_failure(self) -> None:
        provider = MagicMock()
        provider.request_authorization = AsyncMock(side_effect=RuntimeError("boom"))
        supervisor, _, _ = _supervisor(provider)

        assert await supervisor.run(handle_signals=False) is ExitCode.RUNTIME_FAILURE
        assert not supervisor.server.accepting
