"""JSON-file reminders backend.

The whole store is one JSON document::

    {
        "lists": [{"name": "Reminders", "isDefault": true}],
        "reminders": [{"id": "...", "title": "...", "listName": "Reminders", ...}]
    }

File IO runs in a worker thread.  Writes go to a temporary sibling file
which then replaces the store, so readers never see a half-written file.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from remindd.provider.base import (
    AccessDeniedError,
    AuthorizationStatus,
    NotFoundError,
    Reminder,
    ReminderList,
    UnavailableError,
)
from remindd.provider.memory import DEFAULT_LIST

logger = logging.getLogger(__name__)


class StoreDocument(BaseModel):
    """On-disk layout of the store."""

    lists: list[ReminderList] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)


class JsonFileProvider:
    """Persists reminders to a single JSON file at *path*.

    The file is created with only the default list on first access.
    """

    def __init__(
        self,
        path: Path,
        *,
        default_list: str = DEFAULT_LIST,
        grant: bool = True,
    ) -> None:
        self.path = path
        self.default_list = default_list
        self.grant = grant
        self._authorized: bool | None = None
        self._lock = asyncio.Lock()

    async def request_authorization(self) -> AuthorizationStatus:
        if not self._authorized:
            self._authorized = self.grant
        if self._authorized:
            # surface an unreadable store at authorization time
            async with self._lock:
                await self._load()
            return AuthorizationStatus.GRANTED
        return AuthorizationStatus.DENIED

    async def create(
        self,
        title: str,
        notes: str | None = None,
        due_date: datetime | None = None,
        list_name: str | None = None,
    ) -> str:
        self._check_access()
        async with self._lock:
            doc = await self._load()
            target = self._resolve_list(doc, list_name)
            reminder_id = uuid.uuid4().hex
            doc.reminders.append(
                Reminder(
                    id=reminder_id,
                    title=title,
                    notes=notes,
                    due_date=due_date,
                    list_name=target,
                )
            )
            await self._save(doc)
        logger.debug("Created reminder %s in %s", reminder_id, target)
        return reminder_id

    async def list(
        self,
        list_name: str | None = None,
        include_completed: bool = False,
    ) -> list[Reminder]:
        self._check_access()
        async with self._lock:
            doc = await self._load()
        target = self._resolve_list(doc, list_name)
        return [
            reminder
            for reminder in doc.reminders
            if reminder.list_name == target and (include_completed or not reminder.completed)
        ]

    async def complete(self, reminder_id: str) -> bool:
        self._check_access()
        async with self._lock:
            doc = await self._load()
            for reminder in doc.reminders:
                if reminder.id == reminder_id:
                    if not reminder.completed:
                        reminder.completed = True
                        await self._save(doc)
                    return True
        raise NotFoundError("reminder", reminder_id)

    async def lists(self) -> list[ReminderList]:
        self._check_access()
        async with self._lock:
            doc = await self._load()
        return doc.lists

    def _check_access(self) -> None:
        if not self._authorized:
            raise AccessDeniedError("reminders access not granted")

    def _resolve_list(self, doc: StoreDocument, list_name: str | None) -> str:
        name = list_name or self.default_list
        if not any(item.name == name for item in doc.lists):
            raise NotFoundError("list", name)
        return name

    async def _load(self) -> StoreDocument:
        return await asyncio.to_thread(self._read_sync)

    async def _save(self, doc: StoreDocument) -> None:
        await asyncio.to_thread(self._write_sync, doc)

    def _read_sync(self) -> StoreDocument:
        if not self.path.exists():
            doc = StoreDocument(lists=[ReminderList(name=self.default_list, is_default=True)])
            self._write_sync(doc)
            return doc
        try:
            raw: Any = json.loads(self.path.read_text(encoding="utf-8"))
            return StoreDocument.model_validate(raw)
        except OSError as exc:
            raise UnavailableError(f"Cannot read {self.path}: {exc}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise UnavailableError(f"Corrupt store {self.path}: {exc}") from exc

    def _write_sync(self, doc: StoreDocument) -> None:
        payload = {
            "lists": [item.to_wire() for item in doc.lists],
            "reminders": [item.to_wire() for item in doc.reminders],
        }
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise UnavailableError(f"Cannot write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
