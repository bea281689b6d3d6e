"""
roomchat.services.chat_server
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

连接生命周期处理 —— 把单个连接的入站事件接到注册表、广播器和消息转发上。

每个连接的状态机::

    Unjoined ──join-room──▶ Joined ──disconnect──▶ Closed
        │                     │  ▲
        └──disconnect──▶ Closed   └── join-room（切换房间）

「修改注册表 → 推送在线列表 → 推送加入/离开通知」整个序列在同一把
``asyncio.Lock`` 内完成，同一房间的并发加入不会产生撕裂的在线列表，
通知顺序与变更顺序一致。
"""
from __future__ import annotations

import asyncio
import enum
from typing import Any, TypeVar

from pydantic import ValidationError

from roomchat.core.logging import get_logger
from roomchat.schemas.events import (
    ChatMessage,
    InboundPayload,
    JoinRoomPayload,
    MessagePayload,
    Occupant,
)
from roomchat.services.message_relay import MessageRelay
from roomchat.services.presence import PresenceBroadcaster
from roomchat.services.room_registry import RoomRegistry

logger = get_logger(__name__)

P = TypeVar("P", bound=InboundPayload)


class ConnectionState(str, enum.Enum):
    """单个连接的生命周期状态。"""

    UNJOINED = "unjoined"
    JOINED = "joined"
    CLOSED = "closed"


class ChatServer:
    """聊天服务的连接生命周期处理器。

    在应用启动时显式构造一次，随后通过 ``roomchat.api.socket.bind_handlers``
    绑定到 Socket.IO 服务器。

    Attributes:
        registry: 房间注册表。
        broadcaster: 在线状态广播器。
        relay: 消息转发器。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        broadcaster: PresenceBroadcaster,
        relay: MessageRelay,
    ) -> None:
        self.registry = registry
        self.broadcaster = broadcaster
        self.relay = relay
        self._states: dict[str, ConnectionState] = {}
        self._lock = asyncio.Lock()

    def state_of(self, connection_id: str) -> ConnectionState:
        """查询连接状态；未知或已移除的连接视为 ``CLOSED``。"""
        return self._states.get(connection_id, ConnectionState.CLOSED)

    async def on_connect(self, connection_id: str) -> None:
        """新连接建立，进入 ``UNJOINED``。"""
        self._states[connection_id] = ConnectionState.UNJOINED
        logger.info("连接建立 | sid=%s", connection_id)

    async def on_join(self, connection_id: str, data: Any) -> Occupant | None:
        """处理 ``join-room`` 事件。已加入时再次加入等同于切换房间。"""
        if not self._accepts(connection_id, "join-room"):
            return None
        payload = _parse(JoinRoomPayload, data, connection_id)
        if payload is None:
            return None

        async with self._lock:
            # 排队等锁期间连接可能已断开
            if not self._accepts(connection_id, "join-room"):
                return None
            previous = self.registry.occupant_of(connection_id)
            occupant = self.registry.join(connection_id, payload.room, payload.user)
            self._states[connection_id] = ConnectionState.JOINED

            # 切换房间时原房间也要收敛到最新在线列表
            if previous is not None and previous.room != occupant.room:
                await self.broadcaster.announce_roster(previous.room)
                await self.broadcaster.announce_leave(previous.room, previous.name)

            await self.broadcaster.announce_roster(occupant.room)
            await self.broadcaster.announce_join(occupant.room, occupant.name, connection_id)

        logger.info(
            "%s 加入房间 %s | color=%s | sid=%s",
            occupant.name, occupant.room, occupant.color, connection_id,
        )
        return occupant

    async def on_message(self, connection_id: str, data: Any) -> ChatMessage | None:
        """处理 ``message`` 事件。未加入房间的连接也允许发送，使用中性颜色。"""
        if not self._accepts(connection_id, "message"):
            return None
        payload = _parse(MessagePayload, data, connection_id)
        if payload is None:
            return None

        async with self._lock:
            if not self._accepts(connection_id, "message"):
                return None
            return await self.relay.relay(
                connection_id, payload.room, payload.user, payload.message,
            )

    async def on_disconnect(self, connection_id: str) -> Occupant | None:
        """连接断开，进入 ``CLOSED`` 并清理成员记录。"""
        self._states.pop(connection_id, None)
        async with self._lock:
            occupant = self.registry.leave(connection_id)
            if occupant is not None:
                await self.broadcaster.announce_roster(occupant.room)
                await self.broadcaster.announce_leave(occupant.room, occupant.name)

        if occupant is not None:
            logger.info("%s 离开房间 %s | sid=%s", occupant.name, occupant.room, connection_id)
        logger.info("连接断开 | sid=%s", connection_id)
        return occupant

    def shutdown(self) -> None:
        """服务关闭时丢弃全部连接状态和房间成员。"""
        self._states.clear()
        self.registry.clear()

    def _accepts(self, connection_id: str, event: str) -> bool:
        if self.state_of(connection_id) is ConnectionState.CLOSED:
            logger.warning("忽略已关闭连接的事件 | event=%s | sid=%s", event, connection_id)
            return False
        return True


def _parse(model: type[P], data: Any, connection_id: str) -> P | None:
    """宽松解析入站载荷；非字典按空载荷处理，仍无法解析时返回 ``None``。"""
    if not isinstance(data, dict):
        data = {}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "入站载荷无法解析，已忽略 | model=%s | sid=%s | %s",
            model.__name__, connection_id, e,
        )
        return None
