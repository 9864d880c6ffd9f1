"""Transport contract used by the session controller.

The controller only needs three calls; anything that can start an ordered
record stream, cancel it by request id and run a position search can drive
a session.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from career_assistant.models.schemas import HistoryTurn

RecordHandler = Callable[[dict[str, Any]], None]
PositionFetcher = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class Transport(Protocol):
    async def start_stream(
        self,
        message: str,
        history: list[HistoryTurn],
        on_record: RecordHandler,
    ) -> str | None:
        """Start a streaming request and return its request id.

        ``on_record`` is called once per raw record, in arrival order, for
        as long as the stream runs. Returns None only when the stream ended
        through ``on_record`` before the server assigned an id.
        """
        ...

    async def cancel(self, request_id: str) -> None:
        """Ask the server to stop generating for ``request_id``."""
        ...

    async def fetch_positions(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run a position search and return the raw response body."""
        ...
