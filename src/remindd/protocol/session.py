"""Session state: negotiation phase and provider authorization.

One :class:`SessionState` exists per process.  The ``initialize`` handler is
the only writer of :attr:`SessionState.phase`; :class:`Authorizer` is the
only writer of :attr:`SessionState.authorization`.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from remindd.provider.base import AccessDeniedError, AuthorizationStatus

if TYPE_CHECKING:
    from remindd.provider.base import ReminderProvider

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Capability negotiation phase."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Authorization(str, Enum):
    """Provider authorization as last resolved."""

    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


_PHASE_ORDER = {Phase.UNINITIALIZED: 0, Phase.INITIALIZING: 1, Phase.READY: 2}


class SessionSnapshot(BaseModel):
    """Point-in-time copy of the session state."""

    phase: Phase
    authorization: Authorization


class SessionState:
    """Process-wide negotiation and authorization state.

    Writes are serialized by an :class:`asyncio.Lock`.  Phase moves forward
    only; authorization may move from ``DENIED`` back to ``GRANTED``.
    """

    def __init__(self) -> None:
        self._phase = Phase.UNINITIALIZED
        self._authorization = Authorization.UNKNOWN
        self._lock = asyncio.Lock()

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def authorization(self) -> Authorization:
        return self._authorization

    @property
    def ready(self) -> bool:
        return self._phase is Phase.READY

    async def advance(self, phase: Phase) -> None:
        """Move to *phase*; moving backwards raises :class:`ValueError`."""
        async with self._lock:
            if _PHASE_ORDER[phase] < _PHASE_ORDER[self._phase]:
                msg = f"Cannot move session from {self._phase.value} to {phase.value}"
                raise ValueError(msg)
            if phase is not self._phase:
                logger.info("Session phase: %s -> %s", self._phase.value, phase.value)
            self._phase = phase

    async def record_authorization(self, status: AuthorizationStatus) -> Authorization:
        async with self._lock:
            new = (
                Authorization.GRANTED
                if status is AuthorizationStatus.GRANTED
                else Authorization.DENIED
            )
            if new is not self._authorization:
                logger.info(
                    "Authorization: %s -> %s", self._authorization.value, new.value
                )
            self._authorization = new
            return new

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(phase=self._phase, authorization=self._authorization)


class Authorizer:
    """Single-flight authorization requests against a provider.

    Concurrent callers share one in-flight request.  Once granted, later
    calls return immediately without asking the provider again.
    """

    def __init__(self, provider: ReminderProvider, session: SessionState) -> None:
        self._provider = provider
        self._session = session
        self._pending: asyncio.Future[Authorization] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def authorize(self) -> Authorization:
        """Resolve authorization, asking the provider unless already granted.

        Raises:
            UnavailableError: The provider could not be reached.
        """
        if self._session.authorization is Authorization.GRANTED:
            return Authorization.GRANTED

        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._request())
        pending = self._pending
        # a cancelled caller must not cancel the shared request
        return await asyncio.shield(pending)

    async def _request(self) -> Authorization:
        logger.info("Requesting reminders authorization")
        try:
            status = await self._provider.request_authorization()
        except AccessDeniedError:
            status = AuthorizationStatus.DENIED
        return await self._session.record_authorization(status)
