"""Session state machine for career assistant conversations.

Responsibilities:
    - Active request lifecycle (send, stream, terminate)
    - Conversation history and its persistence
    - Routing stream events to the reply buffer and search results
    - Notifying presentation code through subscriptions

Keeps protocol state out of any rendering concern.
"""

from career_assistant.session.controller import (
    ActiveRequest,
    NoticeKind,
    SessionController,
    SessionListener,
    SessionNotice,
)

__all__ = [
    "ActiveRequest",
    "NoticeKind",
    "SessionController",
    "SessionListener",
    "SessionNotice",
]
