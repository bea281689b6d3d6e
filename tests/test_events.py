"""
tests.test_events
~~~~~~~~~~~~~~~~~

入站载荷宽松解析测试。
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from roomchat.schemas.events import JoinRoomPayload, MessagePayload, Occupant


class TestInboundPayloads:

    def test_none_fields_become_empty(self) -> None:
        payload = JoinRoomPayload.model_validate({"room": None, "user": None})

        assert payload.room == ""
        assert payload.user == ""

    def test_numbers_coerced_to_str(self) -> None:
        payload = MessagePayload.model_validate({"room": 1234, "user": "Bob", "message": 42})

        assert payload.room == "1234"
        assert payload.message == "42"

    def test_extra_fields_ignored(self) -> None:
        payload = JoinRoomPayload.model_validate({"room": "R", "user": "A", "token": "x"})

        assert payload.model_dump() == {"room": "R", "user": "A"}

    def test_nested_value_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MessagePayload.model_validate({"message": {"text": "hi"}})


class TestOccupant:

    def test_occupant_is_immutable(self) -> None:
        occupant = Occupant(id="a", name="Alice", room="R", color="bg-blue-500")

        with pytest.raises(ValidationError):
            occupant.color = "bg-red-500"
