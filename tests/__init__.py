"""Test package for Career Assistant.

Unit tests cover each component in isolation against an in-process fake
transport; integration tests run the httpx transport against a stub
backend served through ASGI.

Structure:
    - unit/: Decoder, accumulator, merger, controller, storage, config
    - integration/: Full turns over HTTP/SSE

Leverages pytest with pytest-asyncio and pytest-check for soft assertions.
"""
