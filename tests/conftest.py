"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - config: Session configuration pointing at a test API
    - transport: In-process fake transport driven by the test
    - session: SessionController wired to the fake transport
    - notices: Notices recorded from the session
    - make_position: Factory for raw position records
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from career_assistant.config import SessionConfig
from career_assistant.session import SessionController, SessionNotice
from tests.fakes import FakeTransport


@pytest.fixture
def config(tmp_path: Path) -> SessionConfig:
    """Session configuration pointing at a test API."""
    return SessionConfig(
        api_base_url="http://test/api/v1",
        location="南溪",
        request_timeout=5.0,
        storage_path=str(tmp_path / "history.json"),
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(transport: FakeTransport, config: SessionConfig) -> SessionController:
    """SessionController with in-memory history and the fake transport."""
    return SessionController(transport, config=config)


@pytest.fixture
def notices(session: SessionController) -> list[SessionNotice]:
    """Every notice the session emits, in order."""
    recorded: list[SessionNotice] = []
    session.subscribe(recorded.append)
    return recorded


@pytest.fixture
def make_position() -> Callable[..., dict[str, Any]]:
    """Factory for raw position records as the search service sends them."""

    def factory(pid: int | str, **fields: Any) -> dict[str, Any]:
        record = {
            "id": pid,
            "positionName": f"职位{pid}",
            "companyName": f"公司{pid}",
            "workPlaceStr": "南溪区",
            "positionType": "1",
            "isUrgent": 0,
        }
        record.update(fields)
        return record

    return factory
