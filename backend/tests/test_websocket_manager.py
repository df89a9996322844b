import logging

import pytest

from messenger.websocket_manager import ConnectionManager
from conftest import FakeWebSocket

pytestmark = pytest.mark.anyio


async def test_connect_accepts_socket():
    manager = ConnectionManager()
    ws = FakeWebSocket()

    connection = await manager.connect(ws)

    assert ws.accepted
    assert connection in manager.active_connections
    assert connection.rooms == set()


async def test_join_twice_is_single_membership():
    manager = ConnectionManager()
    connection = await manager.connect(FakeWebSocket())

    manager.join(connection, "r1")
    manager.join(connection, "r1")

    assert manager.members("r1") == {connection}
    assert connection.rooms == {"r1"}


async def test_broadcast_respects_exclude():
    manager = ConnectionManager()
    alice_ws, bob_ws = FakeWebSocket(), FakeWebSocket()
    alice = await manager.connect(alice_ws)
    bob = await manager.connect(bob_ws)
    manager.join(alice, "r1")
    manager.join(bob, "r1")

    await manager.broadcast("r1", "user_typing", {"chatId": "r1"}, exclude=alice)

    assert alice_ws.sent == []
    assert bob_ws.sent == [{"event": "user_typing", "data": {"chatId": "r1"}}]


async def test_broadcast_to_empty_room_sends_nothing():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    connection = await manager.connect(ws)
    manager.join(connection, "r1")

    await manager.broadcast("r2", "new_message", {})

    assert ws.sent == []


async def test_disconnect_leaves_every_room():
    manager = ConnectionManager()
    connection = await manager.connect(FakeWebSocket())
    manager.join(connection, "r1")
    manager.join(connection, "r2")

    manager.disconnect(connection)
    manager.disconnect(connection)

    assert manager.members("r1") == set()
    assert manager.members("r2") == set()
    assert manager.rooms == {}
    assert connection not in manager.active_connections


async def test_failed_send_drops_connection():
    manager = ConnectionManager()
    good_ws, dead_ws = FakeWebSocket(), FakeWebSocket(fail=True)
    good = await manager.connect(good_ws)
    dead = await manager.connect(dead_ws)
    manager.join(good, "r1")
    manager.join(dead, "r1")

    await manager.broadcast("r1", "chat_cleared", "r1")

    assert good_ws.sent == [{"event": "chat_cleared", "data": "r1"}]
    assert manager.members("r1") == {good}
    assert dead not in manager.active_connections


async def test_join_is_logged(caplog):
    manager = ConnectionManager()
    connection = await manager.connect(FakeWebSocket())

    with caplog.at_level(logging.INFO, logger="messenger.websocket_manager"):
        manager.join(connection, "r1")

    assert f"{connection.id} joined chat r1" in caplog.text
