"""Supervisor — lifecycle of the daemon process.

Wires a provider, the dispatcher and the RPC server to a pair of streams
and owns startup, shutdown, signal handling and the health probe.  Restarts
are the job of the external process manager; :class:`ExitCode` tells it
whether a restart can help.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from remindd.protocol.dispatcher import Dispatcher
from remindd.protocol.errors import TransportError
from remindd.protocol.framer import FrameWriter, LineFramer, open_stdio
from remindd.protocol.server import RpcServer
from remindd.protocol.session import Authorization, Phase, SessionState
from remindd.provider.base import ProviderError, UnavailableError

if TYPE_CHECKING:
    from pathlib import Path

    from remindd.daemon.config import DaemonConfig
    from remindd.protocol.framer import ByteSink
    from remindd.provider.base import ReminderProvider

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Process exit status, chosen for the external supervisor."""

    CLEAN = 0
    RUNTIME_FAILURE = 1
    TRANSPORT_FAILURE = 74
    PROVIDER_UNAVAILABLE = 75  # transient, restart may help
    AUTHORIZATION_DENIED = 77  # permanent, do not restart
    CONFIG_ERROR = 78


class StartupError(Exception):
    """Startup cannot continue; carries the exit code to report."""

    def __init__(self, exit_code: ExitCode, detail: str) -> None:
        self.exit_code = exit_code
        self.detail = detail
        super().__init__(f"Startup failed ({exit_code.name}): {detail}")


class HealthStatus(BaseModel):
    """Answer of the health probe."""

    model_config = ConfigDict(populate_by_name=True)

    phase: Phase
    authorization: Authorization
    uptime: float = Field(description="Seconds since start().")
    in_flight: int = Field(default=0, alias="inFlight")
    accepting: bool = True


class Supervisor:
    """Runs one daemon session over *reader* / *sink*.

    Usage::

        reader, writer = await open_stdio()
        supervisor = Supervisor(config, provider, reader, writer)
        exit_code = await supervisor.run()
    """

    def __init__(
        self,
        config: DaemonConfig,
        provider: ReminderProvider,
        reader: asyncio.StreamReader,
        sink: ByteSink,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._clock = clock
        self.session = SessionState()
        self.dispatcher = Dispatcher(provider, session=self.session, health_probe=self._health_wire)
        self._writer = FrameWriter(sink)
        self.server = RpcServer(
            self.dispatcher,
            LineFramer(reader, max_frame_bytes=config.max_frame_bytes),
            self._writer,
        )
        self._started_at: float | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()
        self._stopping = False
        self._signal_count = 0
        self._signal_tasks: set[asyncio.Task[None]] = set()
        self._installed_signals: list[signal.Signals] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin reading the transport and resolve startup authorization.

        Raises:
            StartupError: Authorization is unavailable, or denied while
                ``require_authorization`` is set.
        """
        self._started_at = self._clock()
        self._write_pid_file()
        self._serve_task = asyncio.create_task(self.server.serve(), name="remindd-serve")
        logger.info("remindd started (pid %d)", os.getpid())

        if not self.config.authorize_on_start:
            return

        try:
            authorization = await self.dispatcher.authorizer.authorize()
        except UnavailableError as exc:
            raise StartupError(ExitCode.PROVIDER_UNAVAILABLE, str(exc)) from exc
        except ProviderError as exc:
            raise StartupError(ExitCode.RUNTIME_FAILURE, str(exc)) from exc

        if authorization is Authorization.DENIED:
            if self.config.require_authorization:
                raise StartupError(ExitCode.AUTHORIZATION_DENIED, "reminders access denied")
            logger.warning("Reminders access denied; tool calls will fail until granted")

    async def stop(self, graceful: bool = True) -> None:
        """Stop accepting frames and finish or cancel in-flight requests.

        A graceful stop waits up to ``grace_period`` seconds.  Calling with
        ``graceful=False`` while a graceful stop is running cancels what is
        left immediately.
        """
        if self._stopping:
            if not graceful:
                cancelled = await self.server.cancel_all()
                logger.warning("Forced stop: cancelled %d request(s)", cancelled)
            await self._stopped.wait()
            return

        self._stopping = True
        logger.info("Stopping (%s)", "graceful" if graceful else "immediate")
        self.server.stop_accepting()
        if self._serve_task is not None and not self._serve_task.done():
            self._serve_task.cancel()

        if graceful:
            await self.server.drain(self.config.grace_period)
        else:
            await self.server.cancel_all()
        await self._writer.close()
        self._stopped.set()

    def health_check(self) -> HealthStatus:
        snapshot = self.session.snapshot()
        uptime = 0.0 if self._started_at is None else self._clock() - self._started_at
        return HealthStatus(
            phase=snapshot.phase,
            authorization=snapshot.authorization,
            uptime=round(uptime, 3),
            in_flight=self.server.in_flight,
            accepting=self.server.accepting,
        )

    async def run(self, *, handle_signals: bool = True) -> ExitCode:
        """Run until EOF, a stop request, or a fatal error."""
        if handle_signals:
            self.install_signal_handlers()
        try:
            try:
                await self.start()
            except StartupError as exc:
                logger.error("%s", exc)
                await self.stop(graceful=False)
                return exc.exit_code
            except Exception:
                logger.exception("Startup crashed")
                await self.stop(graceful=False)
                return ExitCode.RUNTIME_FAILURE
            return await self._wait()
        finally:
            self.remove_signal_handlers()
            self._remove_pid_file()

    async def _wait(self) -> ExitCode:
        assert self._serve_task is not None
        stop_waiter = asyncio.create_task(self._stopped.wait())
        try:
            await asyncio.wait({self._serve_task, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_waiter.cancel()

        if self._stopping:
            await self._stopped.wait()
            return ExitCode.CLEAN

        exc = self._serve_task.exception()
        if isinstance(exc, TransportError):
            logger.error("Transport failure: %s", exc)
            await self.stop(graceful=True)
            return ExitCode.TRANSPORT_FAILURE
        if exc is not None:
            logger.error("Read loop crashed", exc_info=exc)
            await self.stop(graceful=False)
            return ExitCode.RUNTIME_FAILURE

        await self.stop(graceful=True)
        return ExitCode.CLEAN

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def install_signal_handlers(self) -> None:
        """Map SIGTERM/SIGINT to a graceful stop; a second signal forces it."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers unsupported for %s", sig.name)
                continue
            self._installed_signals.append(sig)

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed_signals:
            loop.remove_signal_handler(sig)
        self._installed_signals.clear()

    def _on_signal(self, sig: signal.Signals) -> None:
        self._signal_count += 1
        graceful = self._signal_count == 1
        logger.info("Received %s, %s", sig.name, "shutting down" if graceful else "forcing exit")
        task = asyncio.create_task(self.stop(graceful=graceful))
        self._signal_tasks.add(task)
        task.add_done_callback(self._signal_tasks.discard)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _health_wire(self) -> dict[str, Any]:
        return self.health_check().model_dump(mode="json", by_alias=True)

    @property
    def _pid_file(self) -> Path | None:
        return self.config.pid_file

    def _write_pid_file(self) -> None:
        if self._pid_file is None:
            return
        try:
            self._pid_file.parent.mkdir(parents=True, exist_ok=True)
            self._pid_file.write_text(f"{os.getpid()}\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Cannot write pid file %s: %s", self._pid_file, exc)

    def _remove_pid_file(self) -> None:
        if self._pid_file is None:
            return
        try:
            self._pid_file.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Cannot remove pid file %s: %s", self._pid_file, exc)


async def run_stdio(config: DaemonConfig, provider: ReminderProvider) -> ExitCode:
    """Serve *provider* on the process's stdin/stdout."""
    reader, writer = await open_stdio()
    supervisor = Supervisor(config, provider, reader, writer)
    try:
        return await supervisor.run()
    finally:
        writer.close()
