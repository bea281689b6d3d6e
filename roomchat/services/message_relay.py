"""
roomchat.services.message_relay
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

消息转发 —— 为聊天消息打上 ID、时间戳和发送者颜色后广播给整个房间（包括发送者本人）。
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from roomchat.core.logging import get_logger
from roomchat.schemas.events import ChatMessage
from roomchat.services.presence import PresenceBroadcaster
from roomchat.services.room_registry import RoomRegistry

logger = get_logger(__name__)

MESSAGE = "message"


class MessageRelay:
    """聊天消息转发器。

    Attributes:
        registry: 房间注册表，用于查询发送者颜色。
        broadcaster: 负责实际投递的广播器。
        fallback_color: 发送者未加入任何房间时使用的颜色。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        broadcaster: PresenceBroadcaster,
        fallback_color: str,
    ) -> None:
        self.registry = registry
        self.broadcaster = broadcaster
        self.fallback_color = fallback_color

    async def relay(
        self, connection_id: str, room_id: str, sender_name: str, body: str,
    ) -> ChatMessage:
        """构造消息并广播到 ``room_id``，返回已发送的消息。"""
        occupant = self.registry.occupant_of(connection_id)
        message = ChatMessage(
            id=uuid.uuid4().hex,
            user=sender_name,
            message=body,
            timestamp=datetime.now(timezone.utc),
            color=occupant.color if occupant else self.fallback_color,
        )
        await self.broadcaster.broadcast(room_id, MESSAGE, message.model_dump(mode="json"))
        logger.debug("消息已转发 | room=%s | user=%s | %s", room_id, sender_name, body)
        return message
