"""
roomchat.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间注册表 —— 内存中维护「房间 → 成员连接」与「连接 → 成员信息」两张映射。

所有成员变更只能经由 ``RoomRegistry`` 完成。方法本身是同步的，
在单个事件循环内天然互斥；需要与广播组合成原子序列时，
由调用方持有 ``ChatServer`` 的锁（见 ``roomchat.services.chat_server``）。
"""
from __future__ import annotations

from collections.abc import Sequence

from roomchat.core.logging import get_logger
from roomchat.schemas.events import Occupant
from roomchat.services.colors import assign_color

logger = get_logger(__name__)


class RoomRegistry:
    """房间成员注册表。

    Attributes:
        palette: 成员颜色调色板。
    """

    def __init__(self, palette: Sequence[str]) -> None:
        if not palette:
            raise ValueError("palette 不能为空")
        self.palette: tuple[str, ...] = tuple(palette)
        self._occupants: dict[str, Occupant] = {}
        # dict 作为有序集合使用，保留加入顺序
        self._rooms: dict[str, dict[str, None]] = {}

    def join(self, connection_id: str, room_id: str, display_name: str) -> Occupant:
        """登记连接加入房间。

        重复加入（同一房间或切换房间）按「后写覆盖」处理：
        先从原房间移除，再以目标房间当前人数计算颜色后加入。
        """
        if connection_id in self._occupants:
            previous = self._remove(connection_id)
            logger.debug(
                "连接重复加入，覆盖旧成员记录 | sid=%s | 原房间=%s",
                connection_id, previous.room,
            )

        members = self._rooms.setdefault(room_id, {})
        occupant = Occupant(
            id=connection_id,
            name=display_name,
            room=room_id,
            color=assign_color(len(members), self.palette),
        )
        self._occupants[connection_id] = occupant
        members[connection_id] = None
        return occupant

    def leave(self, connection_id: str) -> Occupant | None:
        """移除连接的成员记录，返回被移除的成员；未加入过任何房间时返回 ``None``。"""
        return self._remove(connection_id)

    def list_occupants(self, room_id: str) -> list[Occupant]:
        """按加入顺序返回房间当前成员。"""
        members = self._rooms.get(room_id, {})
        return [self._occupants[cid] for cid in members]

    def occupant_of(self, connection_id: str) -> Occupant | None:
        """查询连接对应的成员记录。"""
        return self._occupants.get(connection_id)

    def member_ids(self, room_id: str) -> list[str]:
        """房间当前成员的连接 ID 快照。"""
        return list(self._rooms.get(room_id, {}))

    def list_rooms(self) -> list[str]:
        """所有非空房间的房间号。"""
        return list(self._rooms)

    def clear(self) -> None:
        """清空全部状态（服务关闭时调用）。"""
        self._occupants.clear()
        self._rooms.clear()

    @property
    def room_count(self) -> int:
        """非空房间数。"""
        return len(self._rooms)

    @property
    def online_count(self) -> int:
        """已加入房间的连接总数。"""
        return len(self._occupants)

    def _remove(self, connection_id: str) -> Occupant | None:
        occupant = self._occupants.pop(connection_id, None)
        if occupant is None:
            return None
        members = self._rooms.get(occupant.room)
        if members is not None:
            members.pop(connection_id, None)
            if not members:
                del self._rooms[occupant.room]
        return occupant
