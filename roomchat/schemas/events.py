"""
roomchat.schemas.events
~~~~~~~~~~~~~~~~~~~~~~~

Socket.IO 事件载荷的 Pydantic 模型。

入站事件（``join-room`` / ``message``）字段缺失或为 ``None`` 时一律按空字符串处理，
数字会被转换为字符串；出站记录（``users-update`` / ``message`` / ``user-joined`` /
``user-left``）的字段名与前端约定保持一致。
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InboundPayload(BaseModel):
    """入站事件载荷基类：宽松解析，不做内容校验。"""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class JoinRoomPayload(InboundPayload):
    """``join-room`` 事件载荷。"""

    room: str = Field(default="", description="房间号")
    user: str = Field(default="", description="显示名")


class MessagePayload(InboundPayload):
    """``message`` 事件载荷。"""

    room: str = Field(default="", description="目标房间号")
    user: str = Field(default="", description="发送者显示名")
    message: str = Field(default="", description="消息正文")


class Occupant(BaseModel):
    """房间成员，``users-update`` 列表中的单项。

    颜色在加入时确定，之后不再变化。
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="连接 ID")
    name: str = Field(..., description="显示名")
    room: str = Field(..., description="所在房间号")
    color: str = Field(..., description="显示颜色")


class ChatMessage(BaseModel):
    """广播给房间的聊天消息（不落库）。"""

    id: str = Field(..., description="消息唯一标识")
    user: str = Field(..., description="发送者显示名")
    message: str = Field(..., description="消息正文")
    timestamp: datetime = Field(..., description="服务端时间戳")
    color: str = Field(..., description="发送者颜色")


class UserNotice(BaseModel):
    """``user-joined`` / ``user-left`` 通知载荷。"""

    user: str = Field(..., description="显示名")
