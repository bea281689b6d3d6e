"""
roomchat.services.colors
~~~~~~~~~~~~~~~~~~~~~~~~

成员颜色分配 —— 按房间内已有人数在调色板中循环取色。
"""
from __future__ import annotations

from collections.abc import Sequence


def assign_color(occupant_count: int, palette: Sequence[str]) -> str:
    """为即将加入房间的新成员分配颜色。

    Args:
        occupant_count: 新成员加入 **之前** 房间内的人数（即从 0 开始的序号）。
        palette: 调色板，不能为空。

    Returns:
        ``palette[occupant_count % len(palette)]``。
    """
    return palette[occupant_count % len(palette)]
