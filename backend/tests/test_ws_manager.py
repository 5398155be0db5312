"""Unit tests for matchroom/ws_manager.py and the replaced-connection path of ws_handlers.py"""

import asyncio
import logging
from typing import Any

import pytest

from conftest import make_participant
from matchroom.constants import CLOSE_BACKLOG, CLOSE_REPLACED
from matchroom.coordinator import MatchCoordinator
from matchroom.ws_handlers import handle_ws_message
from matchroom.ws_manager import WebSocketChannel, WSManager


class FakeSocket:
    """Collects what the channel writes; `hold` makes send_json wait forever."""

    def __init__(self, hold: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.close_codes: list[int] = []
        self._hold = hold

    async def send_json(self, data: dict[str, Any]) -> None:
        if self._hold:
            await asyncio.Event().wait()
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.close_codes.append(code)

    def types(self) -> list[str]:
        return [msg["type"] for msg in self.sent]


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


# --- REPLACED CONNECTION ---
def test_message_on_replaced_connection_is_dropped(coordinator: MatchCoordinator) -> None:
    old_ws, new_ws = FakeSocket(), FakeSocket()

    async def scenario() -> None:
        manager = WSManager(coordinator)
        old = await manager.connect(old_ws, "p1")

        replacing = asyncio.create_task(manager.connect(new_ws, "p1"))
        await asyncio.sleep(0)
        # The old socket delivers a message while it is still being closed
        handle_ws_message('{"type": "join_queue", "name": "Ghost"}', old, coordinator)
        new = await replacing

        assert old.closed
        assert not manager.is_current(old)
        assert coordinator.queue_length == 0

        handle_ws_message('{"type": "join_queue", "name": "Alice"}', new, coordinator)
        assert coordinator.queued_ids == ["p1"]

        coordinator.admit(make_participant("p2"))
        await settle()
        assert coordinator.session_for("p1") is not None
        await new.close()

    asyncio.run(scenario())

    assert old_ws.close_codes == [CLOSE_REPLACED]
    assert "queue_joined" not in old_ws.types()
    assert new_ws.types()[:2] == ["queue_count", "queue_joined"]
    assert "match_found" in new_ws.types()


def test_disconnect_of_replaced_channel_keeps_the_new_one(coordinator: MatchCoordinator) -> None:
    async def scenario() -> None:
        manager = WSManager(coordinator)
        old = await manager.connect(FakeSocket(), "p1")
        new = await manager.connect(FakeSocket(), "p1")
        handle_ws_message('{"type": "join_queue"}', new, coordinator)

        await manager.disconnect(old)

        assert manager.get("p1") is new
        assert coordinator.queued_ids == ["p1"]
        await manager.disconnect(new)
        assert coordinator.queue_length == 0

    asyncio.run(scenario())


# --- OUTBOX ---
def test_full_outbox_closes_the_channel() -> None:
    ws = FakeSocket(hold=True)

    async def scenario() -> WebSocketChannel:
        channel = WebSocketChannel(ws, "p1", outbox_limit=2)
        channel.start()
        for i in range(4):
            channel.send("queue_count", {"count": i})
        await settle()
        await channel.close()
        return channel

    channel = asyncio.run(scenario())

    assert channel.closed
    assert ws.close_codes == [CLOSE_BACKLOG]
    assert ws.sent == []


def test_send_after_close_is_dropped() -> None:
    ws = FakeSocket()

    async def scenario() -> None:
        channel = WebSocketChannel(ws, "p1")
        channel.start()
        channel.send("queue_count", {"count": 1})
        await channel.close()
        channel.send("queue_count", {"count": 2})
        await settle()

    asyncio.run(scenario())

    assert ws.sent == [{"type": "queue_count", "count": 1}]
    assert ws.close_codes == []


def test_outbound_events_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="matchroom.ws_manager")

    async def scenario() -> None:
        channel = WebSocketChannel(FakeSocket(), "p1")
        channel.start()
        channel.send("queue_count", {"count": 3})
        await channel.close()

    asyncio.run(scenario())

    assert "WS: -> p1 queue_count {'count': 3}" in caplog.text
