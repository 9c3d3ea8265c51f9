"""Shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from remindd.protocol.dispatcher import Dispatcher
from remindd.provider.memory import InMemoryProvider


@pytest.fixture(autouse=True)
def _reset_remindd_logger() -> Iterator[None]:
    """Undo ``configure_logging`` so caplog sees remindd records."""
    yield
    logger = logging.getLogger("remindd")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def provider() -> InMemoryProvider:
    return InMemoryProvider(lists=["Work"])


@pytest.fixture
def dispatcher(provider: InMemoryProvider) -> Dispatcher:
    return Dispatcher(provider)
