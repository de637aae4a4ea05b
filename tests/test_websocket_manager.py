"""
Tests for the widget websocket manager, driving it with a scripted websocket.
"""

import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect

from app.models.connection import ConnectionManager, WidgetConnection
from app.websocket_manager import WebSocketManager

from fakes import FakeTransport, settle

LOCATOR = "https://dashboard.example.com/talk?targetId=agent-1&shareKey=share-key"


class ScriptedWebSocket:
    """Websocket stand-in: the test feeds incoming text and inspects what was sent."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.accepted = False
        self.closed = False

    async def accept(self):
        self.accepted = True

    async def receive_text(self):
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def send_text(self, text):
        self.sent.append(json.loads(text))

    async def close(self):
        self.closed = True

    def feed(self, message):
        self.incoming.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def disconnect(self):
        self.incoming.put_nowait(WebSocketDisconnect(code=1001))

    def of_type(self, message_type):
        return [message for message in self.sent if message["type"] == message_type]

    def last_state(self):
        states = self.of_type("session.state")
        return states[-1] if states else None


@pytest.fixture
def manager(transport):
    return WebSocketManager(transport=transport, default_credential="public-key")


async def _connect(manager):
    websocket = ScriptedWebSocket()
    task = asyncio.create_task(manager.handle_websocket(websocket))
    await settle()
    return websocket, task


async def _open_granted(websocket):
    websocket.feed({"type": "session.open", "locator": LOCATOR, "agentName": "Ava"})
    await settle()
    websocket.feed({"type": "permission.result", "granted": True})
    await settle(20)


def test_manager_initialization(manager):
    assert isinstance(manager.connection_manager, ConnectionManager)
    assert set(manager.handlers) == {
        "session.open",
        "session.start",
        "session.stop",
        "session.close",
        "permission.result",
    }


@pytest.mark.asyncio
async def test_full_call_flow(manager, transport):
    websocket, task = await _connect(manager)
    assert websocket.accepted is True
    assert len(manager.connection_manager.active_connections) == 1

    await _open_granted(websocket)
    assert websocket.of_type("permission.request") == [{"type": "permission.request"}]
    assert websocket.of_type("microphone.release") == [{"type": "microphone.release"}]
    ready = websocket.last_state()
    assert ready["state"] == "idle"
    assert ready["loading"] is False
    assert ready["agentName"] == "Ava"

    websocket.feed({"type": "session.start"})
    await settle(20)
    assert websocket.last_state()["state"] == "connecting"
    handle = transport.last
    assert handle.credential == "share-key"
    assert handle.started_with == ["agent-1"]

    handle.emit("call-start")
    await settle()
    assert websocket.last_state()["state"] == "connected"

    websocket.feed({"type": "session.stop"})
    await settle()
    assert websocket.last_state()["state"] == "idle"
    assert handle.stop_calls == 1

    websocket.disconnect()
    await task
    assert websocket.closed is True
    assert manager.connection_manager.active_connections == {}


@pytest.mark.asyncio
async def test_denied_permission_reports_error(manager, transport):
    websocket, task = await _connect(manager)

    websocket.feed({"type": "session.open", "locator": LOCATOR})
    await settle()
    websocket.feed({"type": "permission.result", "granted": False, "reason": "NotAllowedError"})
    await settle(20)

    state = websocket.last_state()
    assert state["state"] == "error"
    assert state["errorKind"] == "permission"
    assert state["loading"] is False
    assert transport.handles == []

    websocket.disconnect()
    await task


@pytest.mark.asyncio
async def test_disconnect_mid_call_stops_transport(manager, transport):
    websocket, task = await _connect(manager)
    await _open_granted(websocket)
    websocket.feed({"type": "session.start"})
    await settle(20)
    handle = transport.last
    handle.emit("call-start")

    websocket.disconnect()
    await task

    assert handle.stop_calls == 1
    assert manager.connection_manager.active_connections == {}


@pytest.mark.asyncio
async def test_disconnect_while_connecting_hangs_up_late_call():
    transport = FakeTransport(start_gate=asyncio.Event())
    manager = WebSocketManager(transport=transport, default_credential="public-key")
    websocket, task = await _connect(manager)
    await _open_granted(websocket)
    websocket.feed({"type": "session.start"})
    await settle(20)
    handle = transport.last

    websocket.disconnect()
    await task
    assert handle.stop_calls == 1

    handle.emit("call-start")
    assert handle.stop_calls == 2


@pytest.mark.asyncio
async def test_session_close_resets_state(manager, transport):
    websocket, task = await _connect(manager)
    await _open_granted(websocket)
    websocket.feed({"type": "session.start"})
    await settle(20)

    websocket.feed({"type": "session.close"})
    await settle()

    assert transport.last.stop_calls == 1
    state = websocket.last_state()
    assert state["state"] == "idle"
    assert state["errorMessage"] is None
    connection = next(iter(manager.connection_manager.active_connections.values()))
    assert connection.lifecycle.is_open is False

    websocket.disconnect()
    await task


@pytest.mark.asyncio
async def test_bad_messages_keep_connection_open(manager):
    websocket, task = await _connect(manager)

    websocket.feed("not json")
    websocket.feed("[1, 2]")
    websocket.feed({"type": "volume.set"})
    websocket.feed({"type": "permission.result"})
    await settle()

    assert len(websocket.of_type("session.state")) == 2
    assert task.done() is False

    websocket.disconnect()
    await task


@pytest.mark.asyncio
async def test_start_before_open_is_refused(manager, transport):
    websocket, task = await _connect(manager)

    websocket.feed({"type": "session.start"})
    await settle()

    assert transport.handles == []
    assert websocket.last_state()["state"] == "idle"

    websocket.disconnect()
    await task


@pytest.mark.asyncio
async def test_unexpected_error_still_cleans_up(manager):
    websocket, task = await _connect(manager)
    websocket.incoming.put_nowait(RuntimeError("socket exploded"))

    await task

    assert websocket.closed is True
    assert manager.connection_manager.active_connections == {}


@pytest.mark.asyncio
async def test_send_failure_stops_queueing(transport):
    class BrokenWebSocket(ScriptedWebSocket):
        async def send_text(self, text):
            raise RuntimeError("connection reset")

    connection = WidgetConnection("widget-1", BrokenWebSocket(), transport)
    connection.start_sender()

    connection.push_state()
    await settle()
    connection.push_state()
    connection.push_state()

    assert connection._sender.done() is True
    assert connection.outbox.empty() is True

    await connection.shutdown()
