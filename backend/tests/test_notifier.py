"""
实时推送测试
"""
import pytest

from qadashboard.main import app
from qadashboard.services.notifier import RESULTS_UPLOADED, ConnectionManager, make_event


class FakeSocket:
    def __init__(self, broken=False):
        self.broken = broken
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError("connection closed")
        self.sent.append(message)


def test_make_event():
    event = make_event(RESULTS_UPLOADED, {"project_id": "kanban"})

    assert event["type"] == "results:uploaded"
    assert event["data"] == {"project_id": "kanban"}
    assert "timestamp" in event


@pytest.mark.asyncio
async def test_broadcast_drops_stale_connections():
    manager = ConnectionManager()
    alive, dead = FakeSocket(), FakeSocket(broken=True)
    await manager.connect(alive)
    await manager.connect(dead)

    await manager.broadcast({"type": "ping"})
    await manager.broadcast({"type": "pong"})

    assert alive.accepted
    assert alive.sent == [{"type": "ping"}, {"type": "pong"}]
    assert manager.active_count == 1


@pytest.mark.asyncio
async def test_disconnect():
    manager = ConnectionManager()
    socket = FakeSocket()
    await manager.connect(socket)

    await manager.disconnect(socket)
    await manager.broadcast({"type": "ignored"})

    assert manager.active_count == 0
    assert socket.sent == []


def test_websocket_ping_pong(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"


def test_websocket_route_registered():
    assert "/ws" in {route.path for route in app.routes}
