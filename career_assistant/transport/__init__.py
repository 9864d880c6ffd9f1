"""Network access for the career assistant session.

Responsibilities:
    - Starting the SSE chat stream and acquiring its request id
    - Delivering stream records in arrival order
    - Terminate and position search calls

The session controller depends only on the ``Transport`` protocol.
"""

from career_assistant.transport.base import PositionFetcher, RecordHandler, Transport
from career_assistant.transport.http_client import CareerAssistantClient

__all__ = ["CareerAssistantClient", "PositionFetcher", "RecordHandler", "Transport"]
