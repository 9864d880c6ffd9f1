"""Unit tests for individual components in isolation.

Coverage:
    - streaming/: Record decoding and reply accumulation
    - search/: Result set seeding, merging and pagination
    - session/: State machine, fencing and cancellation
    - storage/: History persistence
    - models/: Position parsing and config validation

Network access is replaced by a fake transport from conftest.
"""
