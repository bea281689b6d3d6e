"""
tests.test_presence
~~~~~~~~~~~~~~~~~~~

PresenceBroadcaster 广播测试。
"""
from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from roomchat.core.config import DEFAULT_USER_COLORS as PALETTE
from roomchat.services.presence import PresenceBroadcaster
from roomchat.services.room_registry import RoomRegistry


class TestAnnounceRoster:
    """测试在线列表推送。"""

    @pytest.mark.asyncio
    async def test_roster_sent_to_every_member(
        self, registry: RoomRegistry, broadcaster: PresenceBroadcaster, emitter,
    ) -> None:
        registry.join("a", "R1", "Alice")
        registry.join("b", "R1", "Bob")

        await broadcaster.announce_roster("R1")

        expected = [
            {"id": "a", "name": "Alice", "room": "R1", "color": PALETTE[0]},
            {"id": "b", "name": "Bob", "room": "R1", "color": PALETTE[1]},
        ]
        assert emitter.events_for("a", "users-update") == [expected]
        assert emitter.events_for("b", "users-update") == [expected]

    @pytest.mark.asyncio
    async def test_roster_not_sent_to_other_rooms(
        self, registry: RoomRegistry, broadcaster: PresenceBroadcaster, emitter,
    ) -> None:
        registry.join("a", "R1", "Alice")
        registry.join("c", "R2", "Carol")

        await broadcaster.announce_roster("R1")

        assert emitter.events_for("c") == []

    @pytest.mark.asyncio
    async def test_empty_room_sends_nothing(
        self, broadcaster: PresenceBroadcaster, emitter,
    ) -> None:
        await broadcaster.announce_roster("nobody-here")

        assert emitter.sent == []


class TestNotices:
    """测试加入/离开通知。"""

    @pytest.mark.asyncio
    async def test_join_notice_skips_joiner(
        self, registry: RoomRegistry, broadcaster: PresenceBroadcaster, emitter,
    ) -> None:
        registry.join("a", "R1", "Alice")
        registry.join("b", "R1", "Bob")

        await broadcaster.announce_join("R1", "Bob", joiner_id="b")

        assert emitter.events_for("a", "user-joined") == [{"user": "Bob"}]
        assert emitter.events_for("b", "user-joined") == []

    @pytest.mark.asyncio
    async def test_leave_notice_to_remaining(
        self, registry: RoomRegistry, broadcaster: PresenceBroadcaster, emitter,
    ) -> None:
        registry.join("a", "R1", "Alice")
        registry.join("b", "R1", "Bob")
        registry.leave("b")

        await broadcaster.announce_leave("R1", "Bob")

        assert emitter.events_for("a", "user-left") == [{"user": "Bob"}]
        assert emitter.events_for("b") == []


class TestDeliveryFailure:
    """单个成员投递失败不应影响其他成员，也不应抛出异常。"""

    @pytest.mark.asyncio
    async def test_broken_channel_is_skipped(
        self, registry: RoomRegistry, broadcaster: PresenceBroadcaster, emitter,
    ) -> None:
        registry.join("a", "R1", "Alice")
        registry.join("b", "R1", "Bob")
        registry.join("c", "R1", "Carol")
        emitter.broken.add("b")

        await broadcaster.announce_roster("R1")

        assert len(emitter.events_for("a", "users-update")) == 1
        assert len(emitter.events_for("c", "users-update")) == 1
        assert emitter.events_for("b") == []

    @pytest.mark.asyncio
    async def test_cancelled_send_is_logged(
        self, registry: RoomRegistry, broadcaster: PresenceBroadcaster,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """发送被取消同样记为投递失败，不向外抛出。"""
        registry.join("a", "R1", "Alice")
        broadcaster.emitter = MagicMock()
        broadcaster.emitter.emit = AsyncMock(side_effect=asyncio.CancelledError())
        caplog.set_level(logging.WARNING, logger="roomchat.services.presence")

        await broadcaster.announce_roster("R1")

        assert "sid=a" in caplog.text
        assert "users-update" in caplog.text
