"""Stream handling for assistant replies.

Turns raw stream records into typed events and builds the assistant reply
from them.

Responsibilities:
    - SSE ``data:`` line parsing
    - Event classification and payload validation
    - Partial reply buffering and final message commit

Holds no network or session state; the session controller wires these
pieces together.
"""

from career_assistant.streaming.accumulator import MessageAccumulator
from career_assistant.streaming.decoder import decode_record, is_terminal_record, parse_sse_line

__all__ = ["MessageAccumulator", "decode_record", "is_terminal_record", "parse_sse_line"]
