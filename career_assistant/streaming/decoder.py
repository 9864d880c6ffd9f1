"""Event decoder: raw stream records to typed events.

Each record looks like ``{"event": ..., "status": ..., "data": {...}}``.
Decoding never raises; unknown events are skipped and malformed payloads
are logged and dropped.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from career_assistant.models.schemas import (
    ChunkPayload,
    CompletePayload,
    ErrorPayload,
    EventKind,
    SearchErrorPayload,
    SearchResultPayload,
    SearchStartPayload,
    StreamEvent,
    TerminatedPayload,
)

logger = logging.getLogger(__name__)

_PAYLOAD_MODELS: dict[EventKind, type[BaseModel]] = {
    EventKind.CHUNK: ChunkPayload,
    EventKind.COMPLETE: CompletePayload,
    EventKind.ERROR: ErrorPayload,
    EventKind.TERMINATED: TerminatedPayload,
    EventKind.SEARCH_START: SearchStartPayload,
    EventKind.SEARCH_RESULT: SearchResultPayload,
    EventKind.SEARCH_ERROR: SearchErrorPayload,
}

# Names the career assistant backend actually emits for message events
_EVENT_ALIASES = {
    "MESSAGE_CHUNK": EventKind.CHUNK,
    "MESSAGE_COMPLETE": EventKind.COMPLETE,
}

SEARCH_SUCCESS_STATUS = "SUCCESS"
SSE_DATA_PREFIX = "data: "


def _classify(name: Any) -> EventKind | None:
    if not isinstance(name, str):
        return None
    if name in _EVENT_ALIASES:
        return _EVENT_ALIASES[name]
    try:
        return EventKind(name)
    except ValueError:
        return None


def decode_record(record: Any) -> StreamEvent | None:
    """Classify and validate one raw stream record.

    Args:
        record: Parsed record from the stream.

    Returns:
        The decoded event, or None when the record is unknown or malformed.
    """
    if not isinstance(record, dict):
        logger.warning(f"Dropping non-object stream record: {record!r}")
        return None

    kind = _classify(record.get("event"))
    if kind is None:
        logger.debug(f"Ignoring unknown stream event: {record.get('event')!r}")
        return None

    status = record.get("status")
    if kind is EventKind.SEARCH_RESULT and status is not None and status != SEARCH_SUCCESS_STATUS:
        logger.warning(f"Dropping SEARCH_RESULT with status {status!r}")
        return None

    data = record.get("data")
    if data is None:
        data = {}

    try:
        payload = _PAYLOAD_MODELS[kind].model_validate(data)
    except ValidationError as e:
        logger.warning(f"Dropping malformed {kind.value} record: {e.error_count()} error(s)")
        return None

    request_id = record.get("request_id")
    return StreamEvent(
        kind=kind,
        payload=payload,
        status=status if isinstance(status, str) else None,
        request_id=str(request_id) if request_id is not None else None,
    )


def parse_sse_line(line: str) -> dict | None:
    """Extract the JSON record from one ``data: ...`` SSE line.

    Returns None for blank lines, comments, other SSE fields and bad JSON.
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    try:
        data = json.loads(line.removeprefix(SSE_DATA_PREFIX))
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping malformed SSE data line: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Skipping non-object SSE payload: {data!r}")
        return None
    return data


def is_terminal_record(record: dict) -> bool:
    """Whether a raw record validly ends its request.

    A completion, error or termination record whose payload fails validation
    does not count: the session never sees it, so the stream is not over.
    """
    event = decode_record(record)
    return event is not None and event.is_terminal
