"""
roomchat.api.socket
~~~~~~~~~~~~~~~~~~~

Socket.IO 实时交互接口。

事件协议:
  - 入站 ``join-room`` ``{room, user}`` —— 加入/切换房间
  - 入站 ``message`` ``{room, user, message}`` —— 发送聊天消息
  - 出站 ``users-update`` —— 房间完整在线列表
  - 出站 ``user-joined`` / ``user-left`` ``{user}`` —— 成员进出通知
  - 出站 ``message`` —— 带 ID、时间戳、颜色的聊天消息
"""
from __future__ import annotations

from typing import Any

import socketio

from roomchat.core.config import Settings
from roomchat.services.chat_server import ChatServer


def create_socket_server(settings: Settings) -> socketio.AsyncServer:
    """创建 ASGI 模式的 Socket.IO 服务器。"""
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.cors_origins,
        ping_interval=settings.PING_INTERVAL,
        ping_timeout=settings.PING_TIMEOUT,
    )


def bind_handlers(sio: socketio.AsyncServer, chat_server: ChatServer) -> None:
    """把 Socket.IO 事件路由到 ``ChatServer``。"""

    async def connect(sid: str, environ: dict, auth: Any = None) -> None:
        await chat_server.on_connect(sid)

    async def join_room(sid: str, data: Any = None) -> None:
        await chat_server.on_join(sid, data)

    async def message(sid: str, data: Any = None) -> None:
        await chat_server.on_message(sid, data)

    async def disconnect(sid: str, *args: Any) -> None:
        await chat_server.on_disconnect(sid)

    sio.on("connect", connect)
    sio.on("join-room", join_room)
    sio.on("message", message)
    sio.on("disconnect", disconnect)
