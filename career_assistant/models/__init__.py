"""Pydantic models for chat messages, stream events and job search results.

Provides type safety and validation at the edges where raw records and
search responses enter the session.

Models:
    - ChatMessage: Committed message in the conversation
    - HistoryTurn: Role/content pair sent to the backend as context
    - StreamEvent: Decoded, variant-tagged stream record
    - Position: One job listing
    - SearchResultSet: Cumulative positions for one turn
"""

from career_assistant.models.positions import (
    Position,
    PositionPage,
    PositionSearchResponse,
    SearchResultSet,
    ViewMoreLink,
)
from career_assistant.models.schemas import (
    TERMINAL_KINDS,
    ChatMessage,
    ChunkPayload,
    CompletePayload,
    ErrorPayload,
    EventKind,
    HistoryTurn,
    Role,
    SearchErrorPayload,
    SearchResultPayload,
    SearchStartPayload,
    SessionState,
    StreamEvent,
    TerminatedPayload,
)

__all__ = [
    "TERMINAL_KINDS",
    "ChatMessage",
    "ChunkPayload",
    "CompletePayload",
    "ErrorPayload",
    "EventKind",
    "HistoryTurn",
    "Position",
    "PositionPage",
    "PositionSearchResponse",
    "Role",
    "SearchErrorPayload",
    "SearchResultPayload",
    "SearchResultSet",
    "SearchStartPayload",
    "SessionState",
    "StreamEvent",
    "TerminatedPayload",
    "ViewMoreLink",
]
