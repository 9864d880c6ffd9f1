"""Career Assistant - client-side session manager for a streaming job assistant.

Drives a conversational assistant over a streaming request/response channel,
augments replies with paginated job search results and supports mid-stream
cancellation. Uses httpx for transport and Pydantic for data validation.

Components:
    - models: Chat, stream event and job position schemas
    - streaming: Event decoding and reply accumulation
    - search: Result set seeding and pagination
    - session: The session state machine
    - transport: HTTP/SSE adapter
    - storage: Chat history persistence
"""

__version__ = "0.1.0"
