"""
roomchat.services.presence
~~~~~~~~~~~~~~~~~~~~~~~~~~

在线状态广播器 —— 成员变更后向房间推送完整在线列表和加入/离开通知。

广播对象始终取自 ``RoomRegistry`` 的当前成员快照，不依赖 Socket.IO 自带的 room 机制。
单个成员发送失败（连接已断开等）只记录警告，不影响其他成员。
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any, Protocol

from roomchat.core.logging import get_logger
from roomchat.schemas.events import UserNotice
from roomchat.services.room_registry import RoomRegistry

logger = get_logger(__name__)

USERS_UPDATE = "users-update"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"


class Emitter(Protocol):
    """能按连接 ID 发送命名事件的传输层（``socketio.AsyncServer`` 满足此协议）。"""

    async def emit(self, event: str, data: Any = None, to: str | None = None) -> None: ...


class PresenceBroadcaster:
    """房间在线状态广播器。

    Attributes:
        registry: 房间注册表（只读使用）。
        emitter: 出站事件发送器。
    """

    def __init__(self, registry: RoomRegistry, emitter: Emitter) -> None:
        self.registry = registry
        self.emitter = emitter

    async def announce_roster(self, room_id: str) -> None:
        """向房间全体成员推送 ``users-update``（完整在线列表）。"""
        roster = [o.model_dump() for o in self.registry.list_occupants(room_id)]
        await self.broadcast(room_id, USERS_UPDATE, roster)

    async def announce_join(self, room_id: str, display_name: str, joiner_id: str) -> None:
        """向除加入者外的房间成员推送 ``user-joined``。"""
        notice = UserNotice(user=display_name).model_dump()
        await self.broadcast(room_id, USER_JOINED, notice, skip_id=joiner_id)

    async def announce_leave(self, room_id: str, display_name: str) -> None:
        """向房间剩余成员推送 ``user-left``。"""
        notice = UserNotice(user=display_name).model_dump()
        await self.broadcast(room_id, USER_LEFT, notice)

    async def broadcast(
        self, room_id: str, event: str, data: Any, skip_id: str | None = None,
    ) -> None:
        """向房间当前成员（可排除一个连接）发送事件。"""
        targets = [sid for sid in self.registry.member_ids(room_id) if sid != skip_id]
        await self.send_to(targets, event, data)

    async def send_to(self, connection_ids: Iterable[str], event: str, data: Any) -> None:
        """并发发送，失败的投递直接丢弃。"""
        targets = list(connection_ids)
        tasks = [self.emitter.emit(event, data, to=sid) for sid in targets]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for sid, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning("投递失败，已丢弃 | event=%s | sid=%s | %s", event, sid, result)
