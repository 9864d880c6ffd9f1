"""Chat history persistence.

Only the most recent messages are persisted; the in-memory session keeps
everything until it is cleared.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from career_assistant.models.schemas import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_KEY = "careerAssistantMessages"
DEFAULT_LIMIT = 20

_messages_adapter = TypeAdapter(list[ChatMessage])


class HistoryStore(Protocol):
    def load(self) -> list[ChatMessage]: ...

    def save(self, messages: list[ChatMessage]) -> None: ...

    def clear(self) -> None: ...


class InMemoryHistoryStore:
    """Session-only store. Data is lost when the process exits."""

    def __init__(self, limit: int = DEFAULT_LIMIT) -> None:
        self._limit = limit
        self._messages: list[ChatMessage] = []

    def load(self) -> list[ChatMessage]:
        return list(self._messages)

    def save(self, messages: list[ChatMessage]) -> None:
        self._messages = list(messages[-self._limit :])

    def clear(self) -> None:
        self._messages = []


class JsonHistoryStore:
    """JSON file store holding messages under a fixed key.

    The file is a JSON object so several keys can share one file, the way
    browser local storage does.
    """

    def __init__(
        self,
        path: Path | str,
        key: str = DEFAULT_KEY,
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._path = Path(path)
        self._key = key
        self._limit = limit

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable history file {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring history file {self._path}: not a JSON object")
            return {}
        return data

    def _write_all(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)

    def load(self) -> list[ChatMessage]:
        """Load persisted messages, or an empty list if none are stored."""
        raw = self._read_all().get(self._key)
        if raw is None:
            return []
        try:
            messages = _messages_adapter.validate_python(raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed stored history: {e.error_count()} error(s)")
            return []
        logger.info(f"Loaded {len(messages)} messages from {self._path}")
        return messages

    def save(self, messages: list[ChatMessage]) -> None:
        """Persist the most recent messages under the store key."""
        data = self._read_all()
        data[self._key] = _messages_adapter.dump_python(messages[-self._limit :], mode="json")
        self._write_all(data)

    def clear(self) -> None:
        data = self._read_all()
        if data.pop(self._key, None) is not None:
            self._write_all(data)
