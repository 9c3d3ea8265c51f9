"""Reminder providers: the adapter contract and bundled backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from remindd.provider.base import (
    AccessDeniedError,
    AuthorizationStatus,
    InvalidInputError,
    NotFoundError,
    ProviderError,
    Reminder,
    ReminderList,
    ReminderProvider,
    UnavailableError,
)
from remindd.provider.file_store import JsonFileProvider
from remindd.provider.memory import InMemoryProvider

if TYPE_CHECKING:
    from remindd.daemon.config import DaemonConfig

__all__ = [
    "AccessDeniedError",
    "AuthorizationStatus",
    "InMemoryProvider",
    "InvalidInputError",
    "JsonFileProvider",
    "NotFoundError",
    "ProviderError",
    "Reminder",
    "ReminderList",
    "ReminderProvider",
    "UnavailableError",
    "build_provider",
]


def build_provider(config: DaemonConfig) -> ReminderProvider:
    """Instantiate the backend selected by *config*."""
    if config.backend == "file":
        if config.store_path is None:
            msg = "backend 'file' requires 'store_path'"
            raise ValueError(msg)
        return JsonFileProvider(
            config.store_path,
            default_list=config.default_list,
            grant=config.grant_access,
        )
    return InMemoryProvider(
        config.lists,
        default_list=config.default_list,
        grant=config.grant_access,
    )
