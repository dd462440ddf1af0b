"""
Per-conversation session flags.

A small key/value store backed by a JSON file. The orchestrator uses it for
the one-shot "welcomed" flag that turns the first message of a conversation
into a greeting. Flags are never cleared by the assistant itself.
"""

from __future__ import annotations

from typing import Any, Dict

from app.config.logger import app_logger
from app.db.json_store import JsonCollection


WELCOMED_PREFIX = "welcomed:"


def empty_flags() -> Dict[str, Any]:
    return {}


def welcomed_key(conversation_id: str) -> str:
    return f"{WELCOMED_PREFIX}{conversation_id}"


class SessionFlags:
    """Generic JSON key/value store for conversation state."""

    def __init__(self, collection: JsonCollection):
        self._collection = collection

    def get(self, key: str, default: Any = None) -> Any:
        return self._collection.read().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        try:
            with self._collection.locked():
                data = self._collection.read()
                data[key] = value
                self._collection.write(data)
        except OSError as e:
            app_logger.warning(f"Could not persist session flag {key}: {e}")
            return False
        return True

    def has_been_welcomed(self, conversation_id: str) -> bool:
        return bool(self.get(welcomed_key(conversation_id), False))

    def mark_welcomed(self, conversation_id: str) -> bool:
        return self.set(welcomed_key(conversation_id), True)
