"""Console entry point for the career assistant.

Runs one chat session in the terminal against the configured API.
Environment variables are loaded from .env file.

Commands:
    /stop   terminate the reply in progress
    /more   load more job positions
    /clear  clear chat history
    /quit   exit
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "WARNING").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

from career_assistant.config import get_session_config  # noqa: E402
from career_assistant.errors import InvalidInput, SendFailed  # noqa: E402
from career_assistant.models import Role  # noqa: E402
from career_assistant.session import NoticeKind, SessionController, SessionNotice  # noqa: E402
from career_assistant.storage import JsonHistoryStore  # noqa: E402
from career_assistant.transport import CareerAssistantClient  # noqa: E402

logger = logging.getLogger(__name__)


def render_notice(notice: SessionNotice) -> None:
    """Print session updates as they arrive."""
    if notice.kind is NoticeKind.PARTIAL_UPDATED:
        print(f"\r助手: {notice.partial}", end="", flush=True)
    elif notice.kind is NoticeKind.MESSAGE_COMMITTED and notice.message.role is Role.ASSISTANT:
        print(f"\r助手: {notice.message.content}\n", flush=True)
    elif notice.kind is NoticeKind.TERMINATED:
        print("\n[已终止] 助手回复已被终止", flush=True)
    elif notice.kind is NoticeKind.SEARCH_STARTED:
        print(f"\n[搜索] {notice.detail or '正在搜索职位...'}", flush=True)
    elif notice.kind is NoticeKind.SEARCH_UPDATED and notice.search is not None:
        result = notice.search
        print(f"\n[职位] {result.summary or f'搜索到 {result.total_count} 个职位'}")
        for position in result.items:
            print(
                f"  - {position.title} | {position.company or ''} | "
                f"{position.location or ''} | {position.salary_text}"
            )
        if result.has_more:
            print(f"  (已加载 {len(result.items)}/{result.total_count}，输入 /more 查看更多)")
    elif notice.kind is NoticeKind.ERROR:
        print(f"\n[错误] {notice.error}", flush=True)


async def run_session() -> None:
    """Read commands from stdin and drive one session until /quit."""
    config = get_session_config()
    store = JsonHistoryStore(config.storage_path, key=config.storage_key, limit=config.persist_limit)

    async with CareerAssistantClient(config) as client:
        session = SessionController(client, store=store, config=config)
        session.subscribe(render_notice)
        logger.info(f"Connected to {config.api_base_url}, history in {store.path}")

        try:
            while True:
                line = await asyncio.to_thread(input, "> ")
                command = line.strip()
                if command == "/quit":
                    break
                if command == "/stop":
                    session.terminate()
                elif command == "/more":
                    if session.is_loading_more:
                        print("[加载中] 正在加载更多职位")
                    else:
                        await session.load_more()
                elif command == "/clear":
                    try:
                        session.clear_history()
                        print("[已清除] 历史对话记录已清除")
                    except InvalidInput as e:
                        print(f"[无法清除] {e}")
                else:
                    try:
                        await session.send(line)
                    except InvalidInput as e:
                        print(f"[提示] {e}")
                    except SendFailed as e:
                        print(f"[错误] {e}")
        finally:
            await session.aclose()


def main() -> None:
    """Application entry point."""
    try:
        asyncio.run(run_session())
    except (KeyboardInterrupt, EOFError):
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
