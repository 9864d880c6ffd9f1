"""Integration tests for components working together as a system.

Runs the real httpx transport and session controller against a stub
career assistant backend (FastAPI) through ``httpx.ASGITransport``.

Coverage:
    - SSE chat turns end to end
    - Request id acquisition from header or stream
    - Termination and position search calls
    - Transport failures surfacing as session errors
"""
