"""Message accumulator for streamed assistant replies."""

import logging
from datetime import UTC, datetime

from career_assistant.models.schemas import ChatMessage, Role

logger = logging.getLogger(__name__)


class MessageAccumulator:
    """Collects content fragments until the server sends the full reply.

    Fragments are concatenated in arrival order. The committed message uses
    the server's final text, not the local concatenation, since the server
    may normalize formatting.
    """

    def __init__(self) -> None:
        self._fragments: list[str] = []

    @property
    def partial(self) -> str:
        """Text received so far for the reply in progress."""
        return "".join(self._fragments)

    def append(self, fragment: str) -> str:
        """Add a fragment and return the updated partial text."""
        self._fragments.append(fragment)
        return self.partial

    def finalize(self, full_text: str) -> ChatMessage:
        """Commit the server-declared reply and clear the buffer.

        Args:
            full_text: Complete reply text from the completion event.

        Returns:
            The committed assistant message.
        """
        if self._fragments and self.partial != full_text:
            logger.debug("Final reply differs from streamed fragments; using final text")
        self.reset()
        return ChatMessage(
            role=Role.ASSISTANT,
            content=full_text,
            timestamp=datetime.now(UTC),
        )

    def reset(self) -> None:
        self._fragments.clear()
