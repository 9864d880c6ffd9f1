"""Durable chat history for the session.

Stores the most recent messages under a fixed key and restores them when a
new session starts.
"""

from career_assistant.storage.history_store import (
    DEFAULT_KEY,
    DEFAULT_LIMIT,
    HistoryStore,
    InMemoryHistoryStore,
    JsonHistoryStore,
)

__all__ = [
    "DEFAULT_KEY",
    "DEFAULT_LIMIT",
    "HistoryStore",
    "InMemoryHistoryStore",
    "JsonHistoryStore",
]
