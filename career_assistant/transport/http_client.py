"""httpx transport for the career assistant API.

Consumes the SSE stream from ``/career_assistant/chat`` in a background
task, hands each ``data:`` record to the session in arrival order and
exposes the terminate and position search calls.
"""

import asyncio
import logging
from typing import Any

import httpx

from career_assistant.config import SessionConfig, get_session_config
from career_assistant.errors import TransportError
from career_assistant.models.schemas import HistoryTurn
from career_assistant.streaming.decoder import is_terminal_record, parse_sse_line
from career_assistant.transport.base import RecordHandler

logger = logging.getLogger(__name__)

CHAT_PATH = "/career_assistant/chat"
TERMINATE_PATH = "/career_assistant/terminate"
POSITION_SEARCH_PATH = "/career_assistant/proxy/position_search"
REQUEST_ID_HEADER = "X-Request-ID"


def _error_record(message: str) -> dict[str, Any]:
    return {"event": "ERROR", "data": {"error": message}}


class CareerAssistantClient:
    """Transport adapter backed by an ``httpx.AsyncClient``.

    The request id comes from the ``X-Request-ID`` response header or, if
    the server omits it, from the first stream record that carries one.
    ``start_stream`` returns as soon as the id is known while the stream
    keeps being read in the background.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Session configuration. Loads from environment if not provided.
            client: Optional preconfigured HTTP client (e.g. for tests).
                    The caller keeps ownership of a client passed in.
        """
        self._config = config or get_session_config()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._config.request_timeout)
        self._streams: set[asyncio.Task] = set()

    async def __aenter__(self) -> "CareerAssistantClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.api_base_url}{path}"

    async def start_stream(
        self,
        message: str,
        history: list[HistoryTurn],
        on_record: RecordHandler,
    ) -> str | None:
        """Start a chat stream and return its request id.

        Args:
            message: The user's message.
            history: Prior turns sent as context.
            on_record: Called with every stream record in arrival order.

        Returns:
            Request id assigned by the server, or None if the stream
            finished before the server sent one.

        Raises:
            TransportError: If the stream fails before a request id arrives.
        """
        acknowledged: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()
        task = asyncio.create_task(self._pump(message, history, on_record, acknowledged))
        self._streams.add(task)
        task.add_done_callback(self._streams.discard)

        try:
            return await acknowledged
        except asyncio.CancelledError:
            task.cancel()
            raise

    async def _pump(
        self,
        message: str,
        history: list[HistoryTurn],
        on_record: RecordHandler,
        acknowledged: asyncio.Future[str | None],
    ) -> None:
        body = {
            "message": message,
            "history": [turn.model_dump(mode="json") for turn in history],
            "location": self._config.location,
        }
        terminal_seen = False
        error: TransportError | None = None

        try:
            async with self._client.stream(
                "POST",
                self._url(CHAT_PATH),
                json=body,
                headers={"Accept": "text/event-stream"},
            ) as response:
                response.raise_for_status()
                request_id = response.headers.get(REQUEST_ID_HEADER)
                if request_id and not acknowledged.done():
                    acknowledged.set_result(request_id)
                elif not request_id:
                    logger.debug("No request id header; waiting for it in the stream")

                async for line in response.aiter_lines():
                    record = parse_sse_line(line)
                    if record is None:
                        continue
                    if not acknowledged.done() and record.get("request_id"):
                        acknowledged.set_result(str(record["request_id"]))
                    terminal_seen = is_terminal_record(record)
                    on_record(record)
                    if terminal_seen:
                        break
        except httpx.HTTPStatusError as e:
            error = TransportError(f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            error = TransportError(f"Connection failed: {e}")
        except asyncio.CancelledError:
            if not acknowledged.done():
                acknowledged.cancel()
            raise

        if error is not None:
            logger.error(f"Chat stream failed: {error}")
        elif not acknowledged.done() and terminal_seen:
            # on_record already ended the turn
            logger.warning("Stream finished without a request id")
            acknowledged.set_result(None)
            return
        elif not acknowledged.done():
            error = TransportError("Stream ended without a request id")
        elif not terminal_seen:
            error = TransportError("Stream closed before completion")

        if error is None:
            return
        if not acknowledged.done():
            acknowledged.set_exception(error)
        elif not terminal_seen:
            on_record(_error_record(str(error)))

    async def _post_json(self, path: str, payload: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(self._url(path), json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Connection failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Invalid JSON response from {path}") from e

    async def cancel(self, request_id: str) -> None:
        """Ask the server to stop generating for ``request_id``."""
        await self._post_json(TERMINATE_PATH, {"request_id": request_id})
        logger.info(f"Terminate request accepted for {request_id}")

    async def fetch_positions(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run a position search through the assistant's search proxy."""
        result = await self._post_json(POSITION_SEARCH_PATH, params)
        if not isinstance(result, dict):
            raise TransportError("Position search returned a non-object body")
        return result

    async def aclose(self) -> None:
        """Stop any running streams and close the owned HTTP client."""
        streams = list(self._streams)
        for task in streams:
            task.cancel()
        await asyncio.gather(*streams, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()
