"""Chat and stream-event models.

Wire-level records arrive as plain dicts; the decoder validates them into
these models so the rest of the session only sees typed, variant-tagged
events.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class SessionState(str, Enum):
    """Lifecycle states of the session controller."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    CANCELLING = "cancelling"


class HistoryTurn(BaseModel):
    """A prior message as sent to the backend for context (no timestamp)."""

    role: Role
    content: str


class ChatMessage(BaseModel):
    """A committed message in the conversation.

    Attributes:
        role: Who wrote the message.
        content: The message text.
        timestamp: When the message was committed.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_turn(self) -> HistoryTurn:
        return HistoryTurn(role=self.role, content=self.content)


class EventKind(str, Enum):
    """Kinds of stream events understood by the session."""

    CHUNK = "CHUNK"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"
    TERMINATED = "TERMINATED"
    SEARCH_START = "SEARCH_START"
    SEARCH_RESULT = "SEARCH_RESULT"
    SEARCH_ERROR = "SEARCH_ERROR"


TERMINAL_KINDS = frozenset({EventKind.COMPLETE, EventKind.ERROR, EventKind.TERMINATED})


class ChunkPayload(BaseModel):
    content: str


class CompletePayload(BaseModel):
    full_response: str


class ErrorPayload(BaseModel):
    error: str = Field(validation_alias=AliasChoices("error", "message"))


class TerminatedPayload(BaseModel):
    message: str | None = None


class SearchStartPayload(BaseModel):
    message: str | None = None


class SearchResultPayload(BaseModel):
    """Either a ready-made result set or the parameters to fetch one.

    Attributes:
        job_search_result: Result set delivered inline.
        job_search_params: Parameters for a separate position search.
        api_url: Endpoint hint sent alongside the parameters.
    """

    job_search_result: dict | None = None
    job_search_params: dict | None = None
    api_url: str | None = None

    @model_validator(mode="after")
    def require_result_or_params(self) -> "SearchResultPayload":
        if self.job_search_result is None and self.job_search_params is None:
            raise ValueError("job_search_result or job_search_params is required")
        return self

    @property
    def needs_fetch(self) -> bool:
        return self.job_search_result is None


class SearchErrorPayload(BaseModel):
    error: str = Field(validation_alias=AliasChoices("error", "message"))


EventPayload = (
    ChunkPayload
    | CompletePayload
    | ErrorPayload
    | TerminatedPayload
    | SearchStartPayload
    | SearchResultPayload
    | SearchErrorPayload
)


class StreamEvent(BaseModel):
    """A decoded stream event tagged with its kind and originating request.

    Attributes:
        kind: Which event this is.
        payload: Validated payload for ``kind``.
        status: Optional status string from the record.
        request_id: Request the record belongs to, when the server sent one.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    payload: EventPayload
    status: str | None = None
    request_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS
