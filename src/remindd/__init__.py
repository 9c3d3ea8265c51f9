"""remindd: a reminders daemon speaking JSON-RPC 2.0 over stdio."""

from __future__ import annotations

__version__ = "0.1.0"

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "remindd"
