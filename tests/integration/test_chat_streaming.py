"""Integration tests for the career assistant HTTP transport.

Runs the real httpx client and session controller against a stub backend
built with FastAPI and mounted through ``httpx.ASGITransport``. No network
access is needed.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
import pytest_check as check
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from httpx import ASGITransport, AsyncClient

from career_assistant.config import SessionConfig
from career_assistant.errors import SendFailed, StreamError, TransportError
from career_assistant.models import Role, SessionState
from career_assistant.session import NoticeKind, SessionController, SessionNotice
from career_assistant.transport import CareerAssistantClient

API_PREFIX = "/api/v1/career_assistant"


class StubBackend:
    """Scripted career assistant backend.

    ``records`` are replayed as SSE ``data:`` lines; plain strings are sent
    verbatim so tests can inject malformed lines.
    """

    def __init__(self) -> None:
        self.records: list[dict[str, Any] | str] = []
        self.request_id: str | None = "srv-1"
        self.chat_status = 200
        self.terminate_status = 200
        self.search_pages: list[Any] = []
        self.chat_bodies: list[dict[str, Any]] = []
        self.terminated: list[str] = []
        self.search_calls: list[dict[str, Any]] = []
        self.app = self._build_app()

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post(f"{API_PREFIX}/chat")
        async def chat(request: Request):
            self.chat_bodies.append(await request.json())
            if self.chat_status != 200:
                return JSONResponse({"detail": "backend failure"}, status_code=self.chat_status)

            async def events() -> AsyncIterator[str]:
                for record in self.records:
                    if isinstance(record, str):
                        yield f"{record}\n\n"
                    else:
                        yield f"data: {json.dumps(record, ensure_ascii=False)}\n\n"

            headers = {"X-Request-ID": self.request_id} if self.request_id else None
            return StreamingResponse(events(), media_type="text/event-stream", headers=headers)

        @app.post(f"{API_PREFIX}/terminate")
        async def terminate(request: Request):
            body = await request.json()
            self.terminated.append(body["request_id"])
            if self.terminate_status != 200:
                return JSONResponse({"detail": "unknown request"}, status_code=self.terminate_status)
            return {"success": True}

        @app.post(f"{API_PREFIX}/proxy/position_search")
        async def position_search(request: Request):
            self.search_calls.append(await request.json())
            return self.search_pages.pop(0)

        return app


async def wait_for(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until ``condition`` holds."""
    async with asyncio.timeout(timeout):
        while not condition():
            await asyncio.sleep(0.01)


@pytest.fixture
def backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
async def client(backend: StubBackend, config: SessionConfig) -> CareerAssistantClient:
    """Career assistant client talking to the stub backend."""
    transport = ASGITransport(app=backend.app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        career_client = CareerAssistantClient(config=config, client=http)
        yield career_client
        await career_client.aclose()


@pytest.fixture
def live_session(client: CareerAssistantClient, config: SessionConfig) -> SessionController:
    return SessionController(client, config=config)


class TestChatTurn:
    """End-to-end chat turns over SSE."""

    async def test_full_turn_with_header_request_id(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """Chunks stream in and the final reply is committed."""
        backend.records = [
            {"event": "CHUNK", "data": {"content": "您好"}},
            {"event": "CHUNK", "data": {"content": "，以下是建议"}},
            {"event": "COMPLETE", "data": {"full_response": "您好，以下是详细建议：..."}},
        ]

        request_id = await live_session.send("如何写一份优秀的简历？")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        check.equal(request_id, "srv-1")
        check.equal(
            [(m.role, m.content) for m in live_session.messages],
            [
                (Role.USER, "如何写一份优秀的简历？"),
                (Role.ASSISTANT, "您好，以下是详细建议：..."),
            ],
        )
        check.equal(
            backend.chat_bodies,
            [{"message": "如何写一份优秀的简历？", "history": [], "location": "南溪"}],
        )

    async def test_second_turn_sends_history(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """Prior turns are sent as role/content pairs."""
        backend.records = [{"event": "MESSAGE_COMPLETE", "data": {"full_response": "您好"}}]
        await live_session.send("你好")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        await live_session.send("有什么岗位？")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        assert backend.chat_bodies[1]["history"] == [
            {"role": "user", "content": "你好"},
            {"role": "assistant", "content": "您好"},
        ]

    async def test_request_id_from_stream(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """Without the header the first record's request_id is used."""
        backend.request_id = None
        backend.records = [
            {"event": "CHUNK", "request_id": "srv-9", "data": {"content": "好"}},
            {"event": "COMPLETE", "request_id": "srv-9", "data": {"full_response": "好的"}},
        ]

        request_id = await live_session.send("你好")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        assert request_id == "srv-9"
        assert live_session.messages[-1].content == "好的"

    async def test_http_error_fails_send(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """A failing chat call surfaces as SendFailed."""
        backend.chat_status = 500

        with pytest.raises(SendFailed, match="HTTP 500"):
            await live_session.send("你好")

        assert live_session.state is SessionState.IDLE
        assert [m.content for m in live_session.messages] == ["你好"]

    async def test_unfinished_stream_without_request_id_fails_send(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """A stream that neither identifies its request nor finishes fails the send."""
        backend.request_id = None
        backend.records = [{"event": "CHUNK", "data": {"content": "好"}}]

        with pytest.raises(SendFailed, match="request id"):
            await live_session.send("你好")

        assert live_session.state is SessionState.IDLE

    async def test_finished_stream_without_request_id_succeeds(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """A reply that completes before any id arrives is not a send failure."""
        backend.request_id = None
        backend.records = [
            {"event": "CHUNK", "data": {"content": "好"}},
            {"event": "COMPLETE", "data": {"full_response": "好的"}},
        ]

        request_id = await live_session.send("你好")

        assert request_id is None
        assert live_session.state is SessionState.IDLE
        assert [(m.role, m.content) for m in live_session.messages] == [
            (Role.USER, "你好"),
            (Role.ASSISTANT, "好的"),
        ]

    async def test_malformed_final_record_reports_error(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """A COMPLETE without its text ends the turn with an error instead of hanging."""
        backend.records = [
            {"event": "CHUNK", "data": {"content": "好"}},
            {"event": "COMPLETE", "data": {}},
        ]
        notices: list[SessionNotice] = []
        live_session.subscribe(notices.append)

        await live_session.send("你好")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        errors = [n.error for n in notices if n.kind is NoticeKind.ERROR]
        assert len(errors) == 1
        assert isinstance(errors[0], StreamError)
        assert [m.role for m in live_session.messages] == [Role.USER]

    async def test_stream_closed_early_reports_error(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """A stream ending without a terminal record ends the turn with an error."""
        backend.records = [{"event": "CHUNK", "data": {"content": "说到一半"}}]
        notices: list[SessionNotice] = []
        live_session.subscribe(notices.append)

        await live_session.send("你好")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        errors = [n.error for n in notices if n.kind is NoticeKind.ERROR]
        assert len(errors) == 1
        assert isinstance(errors[0], StreamError)
        assert live_session.partial_content == ""
        assert [m.role for m in live_session.messages] == [Role.USER]

    async def test_malformed_lines_are_skipped(
        self,
        backend: StubBackend,
        live_session: SessionController,
    ) -> None:
        """Bad SSE lines do not interrupt the stream."""
        backend.records = [
            ": keep-alive",
            "data: {broken",
            "data: [1, 2]",
            {"event": "UNKNOWN", "data": {}},
            {"event": "CHUNK", "data": {"content": "好"}},
            {"event": "COMPLETE", "data": {"full_response": "好的"}},
        ]

        await live_session.send("你好")
        await wait_for(lambda: live_session.state is SessionState.IDLE)

        assert live_session.messages[-1].content == "好的"


class TestPositionSearch:
    """Job search results fetched through the search proxy."""

    async def test_params_search_and_load_more(
        self,
        backend: StubBackend,
        live_session: SessionController,
        make_position: Callable[..., dict],
    ) -> None:
        """Search parameters trigger a fetch; load_more requests the next page."""
        params = {"keyword": "会计", "pageNo": 1, "pageSize": 2}
        backend.records = [
            {"event": "SEARCH_START", "data": {"message": "正在搜索"}},
            {"event": "SEARCH_RESULT", "data": {"job_search_params": params}},
            {"event": "COMPLETE", "data": {"full_response": "为您找到以下会计岗位"}},
        ]
        backend.search_pages = [
            {"code": "200", "data": {"list": [make_position(1), make_position(2)], "count": 3}},
            {"code": 200, "data": {"list": [make_position(3)], "count": 3}},
        ]

        await live_session.send("南溪有会计岗位吗？")
        await wait_for(lambda: live_session.search_results is not None)

        check.equal([p.id for p in live_session.search_results.items], ["1", "2"])
        check.is_true(live_session.search_results.has_more)

        result_set = await live_session.load_more()

        check.equal([p.id for p in result_set.items], ["1", "2", "3"])
        check.is_false(result_set.has_more)
        check.equal(backend.search_calls, [params, {**params, "pageNo": 2}])

    async def test_non_object_search_body(
        self,
        backend: StubBackend,
        client: CareerAssistantClient,
    ) -> None:
        """A search response that is not an object is a transport error."""
        backend.search_pages = [[1, 2, 3]]

        with pytest.raises(TransportError):
            await client.fetch_positions({"keyword": "x"})


class TestTerminate:
    """Calls to the terminate endpoint."""

    async def test_cancel_posts_request_id(
        self,
        backend: StubBackend,
        client: CareerAssistantClient,
    ) -> None:
        """cancel sends the request id to the server."""
        await client.cancel("srv-1")

        assert backend.terminated == ["srv-1"]

    async def test_cancel_http_error(
        self,
        backend: StubBackend,
        client: CareerAssistantClient,
    ) -> None:
        """A rejected terminate call raises TransportError."""
        backend.terminate_status = 404

        with pytest.raises(TransportError, match="HTTP 404"):
            await client.cancel("srv-missing")
