"""Error taxonomy for the career assistant session.

Fatal-to-turn errors return the session to IDLE; search and cancellation
failures are reported but leave the chat turn untouched.
"""


class AssistantError(Exception):
    """Base class for all career assistant errors."""


class InvalidInput(AssistantError):
    """Submission rejected before any network call (e.g. empty text)."""


class SessionBusy(InvalidInput):
    """Operation rejected because a request is already active."""


class SendFailed(AssistantError):
    """The streaming request could not be started."""


class StreamError(AssistantError):
    """The server signalled a fatal error for the current turn."""


class SearchFetchError(AssistantError):
    """Fetching job positions failed. The chat turn continues."""


class CancelFailed(AssistantError):
    """The cancellation call itself failed."""


class TransportError(AssistantError):
    """HTTP or connection failure raised by the transport adapter."""
