"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 用记录型假发送器代替 Socket.IO，
使注册表、广播器和连接处理器可以脱离真实传输层测试。
"""
from __future__ import annotations

import os
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")

from roomchat.core.config import DEFAULT_USER_COLORS  # noqa: E402
from roomchat.services.chat_server import ChatServer  # noqa: E402
from roomchat.services.message_relay import MessageRelay  # noqa: E402
from roomchat.services.presence import PresenceBroadcaster  # noqa: E402
from roomchat.services.room_registry import RoomRegistry  # noqa: E402

PALETTE: list[str] = list(DEFAULT_USER_COLORS)
FALLBACK: str = "bg-gray-500"


class FakeEmitter:
    """模拟 ``socketio.AsyncServer.emit``，按连接记录收到的事件。"""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Any]] = []
        self.broken: set[str] = set()

    async def emit(self, event: str, data: Any = None, to: str | None = None) -> None:
        if to in self.broken:
            raise ConnectionError(f"channel {to} closed")
        self.sent.append((to, event, data))

    def events_for(self, sid: str, event: str | None = None) -> list[Any]:
        """某个连接收到的事件载荷（可按事件名过滤）。"""
        return [
            data for to, name, data in self.sent
            if to == sid and (event is None or name == event)
        ]

    def names_for(self, sid: str) -> list[str]:
        """某个连接收到的事件名序列。"""
        return [name for to, name, _ in self.sent if to == sid]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture()
def emitter() -> FakeEmitter:
    return FakeEmitter()


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry(PALETTE)


@pytest.fixture()
def broadcaster(registry: RoomRegistry, emitter: FakeEmitter) -> PresenceBroadcaster:
    return PresenceBroadcaster(registry, emitter)


@pytest.fixture()
def chat_server(registry: RoomRegistry, broadcaster: PresenceBroadcaster) -> ChatServer:
    relay = MessageRelay(registry, broadcaster, FALLBACK)
    return ChatServer(registry, broadcaster, relay)
