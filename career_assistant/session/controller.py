"""Session controller for the career assistant chat.

Owns the single active request of a conversation and drives it through
IDLE -> SENDING -> STREAMING -> IDLE. Stream records are routed to the
message accumulator (reply text) and the pagination merger (job search
results). Presentation code observes the session through ``subscribe``.

Request fencing: every request gets its own ``ActiveRequest`` object and
the transport callback is bound to it. Records arriving for an object that
is no longer active, or carrying a different ``request_id``, are dropped.
That is what keeps lagging records after a terminal event from touching
state.
"""

import asyncio
import functools
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from career_assistant.config import SessionConfig, get_session_config
from career_assistant.errors import (
    AssistantError,
    CancelFailed,
    InvalidInput,
    SearchFetchError,
    SendFailed,
    SessionBusy,
    StreamError,
)
from career_assistant.models.positions import SearchResultSet
from career_assistant.models.schemas import (
    ChatMessage,
    EventKind,
    HistoryTurn,
    Role,
    SessionState,
    StreamEvent,
)
from career_assistant.search.merger import PaginationMerger
from career_assistant.storage.history_store import HistoryStore, InMemoryHistoryStore
from career_assistant.streaming.accumulator import MessageAccumulator
from career_assistant.streaming.decoder import decode_record
from career_assistant.transport.base import Transport

logger = logging.getLogger(__name__)


class NoticeKind(str, Enum):
    """What a session notice reports."""

    STATE_CHANGED = "state_changed"
    PARTIAL_UPDATED = "partial_updated"
    MESSAGE_COMMITTED = "message_committed"
    SEARCH_STARTED = "search_started"
    SEARCH_UPDATED = "search_updated"
    TERMINATED = "terminated"
    ERROR = "error"
    HISTORY_CLEARED = "history_cleared"


@dataclass(frozen=True)
class SessionNotice:
    """Update delivered to session subscribers.

    Attributes:
        kind: What happened.
        state: Controller state after the change.
        message: Committed message, for MESSAGE_COMMITTED.
        partial: Partial reply text, for PARTIAL_UPDATED.
        search: Result set snapshot, for SEARCH_UPDATED.
        error: The error, for ERROR.
        detail: Free-form server text (search start, termination).
        request_id: Request the notice concerns, when known.
    """

    kind: NoticeKind
    state: SessionState
    message: ChatMessage | None = None
    partial: str | None = None
    search: SearchResultSet | None = None
    error: AssistantError | None = None
    detail: str | None = None
    request_id: str | None = None


SessionListener = Callable[[SessionNotice], None]


@dataclass(eq=False)
class ActiveRequest:
    """The one in-flight request of a session."""

    request_id: str | None = None
    is_active: bool = True
    accumulator: MessageAccumulator = field(default_factory=MessageAccumulator)
    cancel_task: asyncio.Task | None = None

    @property
    def partial_content(self) -> str:
        return self.accumulator.partial


class SessionController:
    """Explicit state machine for one conversation.

    Wraps a transport with:
    - Single active request enforcement
    - Optimistic user messages and server-authoritative replies
    - Request-id fencing of stream records
    - Fire-and-forget cancellation
    - Job search seeding and pagination alongside the reply
    """

    def __init__(
        self,
        transport: Transport,
        store: HistoryStore | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        """Initialize the session and restore persisted history.

        Args:
            transport: Adapter performing the network calls.
            store: History persistence. Defaults to in-memory storage.
            config: Session configuration. Loads from environment if not provided.
        """
        self._config = config or get_session_config()
        self._transport = transport
        self._store = store or InMemoryHistoryStore(limit=self._config.persist_limit)
        self._messages: list[ChatMessage] = self._store.load()
        self._state = SessionState.IDLE
        self._active: ActiveRequest | None = None
        self._search = PaginationMerger(transport.fetch_positions)
        self._listeners: list[SessionListener] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def active_request(self) -> ActiveRequest | None:
        return self._active

    @property
    def partial_content(self) -> str:
        return self._active.partial_content if self._active else ""

    @property
    def search_results(self) -> SearchResultSet | None:
        return self._search.result_set

    @property
    def is_loading_more(self) -> bool:
        return self._search.is_fetching

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: NoticeKind, **fields: Any) -> None:
        notice = SessionNotice(kind=kind, state=self._state, **fields)
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.exception(f"Session listener failed on {kind.value}")

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.info(f"Session state {self._state.value} -> {state.value}")
        self._state = state
        self._notify(NoticeKind.STATE_CHANGED)

    def _persist(self) -> None:
        try:
            self._store.save(self._messages)
        except OSError as e:
            logger.error(f"Failed to persist chat history: {e}")

    def _append_message(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._persist()
        self._notify(NoticeKind.MESSAGE_COMMITTED, message=message)

    def _history_context(self) -> list[HistoryTurn]:
        window = self._config.history_window
        if window == 0:
            return []
        return [message.to_turn() for message in self._messages[-window:]]

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _finish(self, active: ActiveRequest) -> bool:
        """Clear ``active`` and return to IDLE. Only the first call counts."""
        if self._active is not active:
            return False
        self._active = None
        active.is_active = False
        active.accumulator.reset()
        self._set_state(SessionState.IDLE)
        return True

    async def send(self, text: str) -> str | None:
        """Send a user message and start streaming the reply.

        The user message is committed before the network call, so it stays
        in history even if the call fails.

        Args:
            text: The user's message.

        Returns:
            Request id of the started stream, or None if the reply finished
            before the server assigned one.

        Raises:
            InvalidInput: If ``text`` is empty after trimming.
            SessionBusy: If a request is already active.
            SendFailed: If the stream could not be started.
        """
        content = text.strip() if isinstance(text, str) else ""
        if not content:
            raise InvalidInput("Message content cannot be empty")
        if self._state is not SessionState.IDLE:
            raise SessionBusy(f"Cannot send while {self._state.value}")

        context = self._history_context()
        active = ActiveRequest()
        self._active = active
        self._set_state(SessionState.SENDING)
        self._append_message(ChatMessage(role=Role.USER, content=content))

        try:
            request_id = await self._transport.start_stream(
                content,
                context,
                functools.partial(self._handle_record, active),
            )
        except Exception as e:
            logger.error(f"Failed to start chat stream: {e}")
            self._finish(active)
            raise SendFailed(f"Failed to send message: {e}") from e

        if self._active is not active:
            logger.info(f"Request {request_id} finished before acknowledgement")
            return request_id
        if request_id is None:
            self._finish(active)
            raise SendFailed("Failed to send message: no request id")

        active.request_id = request_id
        if self._state is SessionState.SENDING:
            self._set_state(SessionState.STREAMING)
        return request_id

    def on_event(self, record: dict[str, Any]) -> None:
        """Route one raw record to the active request.

        Records pushed here are not bound to a request, so once the active
        request has an id only records carrying that id are accepted.
        """
        active = self._active
        if active is None:
            logger.debug("Ignoring record with no active request")
            return
        if active.request_id is not None and not (
            isinstance(record, dict) and record.get("request_id")
        ):
            logger.debug("Ignoring record without a request id")
            return
        self._handle_record(active, record)

    def _handle_record(self, origin: ActiveRequest, record: dict[str, Any]) -> None:
        if origin is not self._active:
            logger.debug("Ignoring record for a finished request")
            return

        event = decode_record(record)
        if event is None:
            return

        if event.request_id is not None:
            if origin.request_id is None:
                origin.request_id = event.request_id
            elif event.request_id != origin.request_id:
                logger.debug(f"Ignoring record for request {event.request_id}")
                return

        self._dispatch(origin, event)

    def _dispatch(self, active: ActiveRequest, event: StreamEvent) -> None:
        payload = event.payload
        request_id = active.request_id

        if event.kind is EventKind.CHUNK:
            partial = active.accumulator.append(payload.content)
            self._notify(NoticeKind.PARTIAL_UPDATED, partial=partial, request_id=request_id)

        elif event.kind is EventKind.COMPLETE:
            self._append_message(active.accumulator.finalize(payload.full_response))
            self._finish(active)

        elif event.kind is EventKind.ERROR:
            logger.error(f"Stream error for request {request_id}: {payload.error}")
            self._finish(active)
            self._notify(NoticeKind.ERROR, error=StreamError(payload.error), request_id=request_id)

        elif event.kind is EventKind.TERMINATED:
            logger.info(f"Request {request_id} terminated")
            self._finish(active)
            self._notify(NoticeKind.TERMINATED, detail=payload.message, request_id=request_id)

        elif event.kind is EventKind.SEARCH_START:
            self._notify(NoticeKind.SEARCH_STARTED, detail=payload.message, request_id=request_id)

        elif event.kind is EventKind.SEARCH_RESULT:
            if payload.needs_fetch:
                if payload.api_url:
                    logger.debug(f"Search parameters sent for {payload.api_url}")
                self._spawn(self._seed_from_params(payload.job_search_params))
            else:
                self._seed_from_result(payload.job_search_result)

        elif event.kind is EventKind.SEARCH_ERROR:
            logger.warning(f"Search error for request {request_id}: {payload.error}")
            self._notify(
                NoticeKind.ERROR,
                error=SearchFetchError(payload.error),
                request_id=request_id,
            )

    def _seed_from_result(self, result: dict[str, Any]) -> None:
        try:
            result_set = self._search.seed(result)
        except SearchFetchError as e:
            logger.warning(f"Dropping search result: {e}")
            self._notify(NoticeKind.ERROR, error=e)
            return
        self._notify(NoticeKind.SEARCH_UPDATED, search=result_set)

    async def _seed_from_params(self, params: dict[str, Any]) -> None:
        try:
            result_set = await self._search.fetch_and_seed(params)
        except SearchFetchError as e:
            self._notify(NoticeKind.ERROR, error=e)
            return
        if result_set is not None:
            self._notify(NoticeKind.SEARCH_UPDATED, search=result_set)

    async def load_more(self) -> SearchResultSet | None:
        """Fetch the next page of job positions for the current turn.

        Runs independently of the chat stream. Failures are reported to
        subscribers and close pagination for this result set.

        Returns:
            The current result set after the fetch.
        """
        try:
            result_set = await self._search.request_more()
        except SearchFetchError as e:
            self._notify(NoticeKind.ERROR, error=e)
            return self._search.result_set
        if result_set is not None:
            self._notify(NoticeKind.SEARCH_UPDATED, search=result_set)
        return result_set

    def terminate(self) -> asyncio.Task | None:
        """Ask the server to stop the active request.

        Does not wait for the round trip. The request is only cleared when
        the matching terminal record arrives.

        Returns:
            The cancellation task, or None if there is nothing to cancel.
        """
        active = self._active
        if active is None or active.request_id is None:
            logger.warning("No request id to terminate")
            return None
        if active.cancel_task is not None and not active.cancel_task.done():
            return active.cancel_task

        self._set_state(SessionState.CANCELLING)
        active.cancel_task = self._spawn(self._cancel(active))
        return active.cancel_task

    async def _cancel(self, active: ActiveRequest) -> None:
        request_id = active.request_id
        try:
            await self._transport.cancel(request_id)
        except Exception as e:
            logger.error(f"Failed to terminate request {request_id}: {e}")
            if self._active is active and self._state is SessionState.CANCELLING:
                self._set_state(SessionState.STREAMING)
            self._notify(
                NoticeKind.ERROR,
                error=CancelFailed(f"Failed to terminate request {request_id}: {e}"),
                request_id=request_id,
            )
            return
        logger.info(f"Termination requested for {request_id}")

    def clear_history(self) -> None:
        """Empty the chat history and its persisted copy.

        Raises:
            SessionBusy: If a reply is still in progress.
        """
        if self._state is not SessionState.IDLE:
            raise SessionBusy("Wait for the current reply before clearing history")

        self._messages.clear()
        self._search.clear()
        try:
            self._store.clear()
        except OSError as e:
            logger.error(f"Failed to clear persisted chat history: {e}")
        logger.info("Chat history cleared")
        self._notify(NoticeKind.HISTORY_CLEARED)

    async def aclose(self) -> None:
        """Cancel background search and cancellation tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
