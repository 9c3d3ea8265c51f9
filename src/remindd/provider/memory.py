"""In-memory reminders backend.

Dict-backed :class:`~remindd.provider.base.ReminderProvider` suitable for
tests and for running the daemon without an OS reminders service.  Every
call is recorded in :attr:`InMemoryProvider.calls`.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from remindd.provider.base import (
    AccessDeniedError,
    AuthorizationStatus,
    NotFoundError,
    Reminder,
    ReminderList,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST = "Reminders"


class InMemoryProvider:
    """Keeps lists and reminders in insertion-ordered dicts.

    *grant* is the answer to :meth:`request_authorization`; flip it to
    simulate a user granting access after an earlier denial.
    """

    def __init__(
        self,
        lists: list[str] | None = None,
        *,
        default_list: str = DEFAULT_LIST,
        grant: bool = True,
    ) -> None:
        self.default_list = default_list
        self.grant = grant
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._authorized: bool | None = None
        self._lists: dict[str, ReminderList] = {}
        self._reminders: dict[str, Reminder] = {}

        for name in [default_list, *(lists or [])]:
            if name not in self._lists:
                self._lists[name] = ReminderList(name=name, is_default=name == default_list)

    async def request_authorization(self) -> AuthorizationStatus:
        self.calls.append(("request_authorization", {}))
        # once granted, stays granted
        if not self._authorized:
            self._authorized = self.grant
        logger.debug("InMemoryProvider: authorization %s", self._authorized)
        return AuthorizationStatus.GRANTED if self._authorized else AuthorizationStatus.DENIED

    async def create(
        self,
        title: str,
        notes: str | None = None,
        due_date: datetime | None = None,
        list_name: str | None = None,
    ) -> str:
        self.calls.append(
            ("create", {"title": title, "notes": notes, "due_date": due_date, "list_name": list_name})
        )
        self._check_access()
        target = self._resolve_list(list_name)
        reminder_id = uuid.uuid4().hex
        self._reminders[reminder_id] = Reminder(
            id=reminder_id,
            title=title,
            notes=notes,
            due_date=due_date,
            list_name=target,
        )
        return reminder_id

    async def list(
        self,
        list_name: str | None = None,
        include_completed: bool = False,
    ) -> list[Reminder]:
        self.calls.append(
            ("list", {"list_name": list_name, "include_completed": include_completed})
        )
        self._check_access()
        target = self._resolve_list(list_name)
        return [
            reminder.model_copy()
            for reminder in self._reminders.values()
            if reminder.list_name == target and (include_completed or not reminder.completed)
        ]

    async def complete(self, reminder_id: str) -> bool:
        self.calls.append(("complete", {"reminder_id": reminder_id}))
        self._check_access()
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            raise NotFoundError("reminder", reminder_id)
        reminder.completed = True
        return True

    async def lists(self) -> list[ReminderList]:
        self.calls.append(("lists", {}))
        self._check_access()
        return [item.model_copy() for item in self._lists.values()]

    def call_names(self) -> list[str]:
        """Names of recorded calls, in order."""
        return [name for name, _ in self.calls]

    def _check_access(self) -> None:
        if not self._authorized:
            raise AccessDeniedError("reminders access not granted")

    def _resolve_list(self, list_name: str | None) -> str:
        name = list_name or self.default_list
        if name not in self._lists:
            raise NotFoundError("list", name)
        return name
