"""The ReminderProvider protocol, the only seam between the RPC core and a store.

Every backend (in-memory, JSON file, an OS reminders service) satisfies
this protocol so that the dispatcher can invoke tools without knowing where
reminders live.  Failures are raised as :class:`ProviderError` subclasses.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class AuthorizationStatus(str, Enum):
    """Outcome of an authorization request."""

    GRANTED = "granted"
    DENIED = "denied"


class Reminder(BaseModel):
    """A single reminder as reported by the backend.

    ``id`` is opaque to the core and stable for the life of the record.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    notes: str | None = None
    due_date: datetime | None = Field(default=None, alias="dueDate")
    completed: bool = False
    list_name: str = Field(alias="listName")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ReminderList(BaseModel):
    """A named reminder list."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    is_default: bool = Field(default=False, alias="isDefault")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Base error for all backend failures."""


class AccessDeniedError(ProviderError):
    """The backend refused access to the reminders store."""


class NotFoundError(ProviderError):
    """A reminder or list does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class UnavailableError(ProviderError):
    """The backend could not be reached."""


class InvalidInputError(ProviderError):
    """Malformed input reached the backend."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ReminderProvider(Protocol):
    """Reads and writes reminders in an external store."""

    async def request_authorization(self) -> AuthorizationStatus:
        """Ask for access; may wait on an out-of-band user decision.

        Re-invocation must be idempotent: once granted it stays granted.
        """
        ...

    async def create(
        self,
        title: str,
        notes: str | None = None,
        due_date: datetime | None = None,
        list_name: str | None = None,
    ) -> str:
        """Create a reminder and return its id."""
        ...

    async def list(
        self,
        list_name: str | None = None,
        include_completed: bool = False,
    ) -> list[Reminder]:
        """Return reminders of *list_name* (default list when ``None``).

        Order must be stable for unchanged store state.
        """
        ...

    async def complete(self, reminder_id: str) -> bool:
        """Mark a reminder completed; raises :class:`NotFoundError` if absent."""
        ...

    async def lists(self) -> list[ReminderList]:
        """Return all reminder lists."""
        ...
