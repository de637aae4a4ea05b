"""
Per-widget connection state.

A WidgetConnection ties one websocket (one mounted widget) to its voice
session lifecycle, its microphone probe and an ordered outbox of messages
for the widget. The ConnectionManager keeps a registry of the connections
that are currently attached.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

from fastapi import WebSocket

from app.config.constants import LOGGER_NAME
from app.models.message_schemas import OutgoingMessage, SessionStateMessage
from app.models.session import SessionView
from app.services.client_microphone import ClientMicrophoneProbe
from app.session.controller import Transport
from app.session.lifecycle import SessionLifecycle

logger = logging.getLogger(LOGGER_NAME)


class WidgetConnection:
    """
    Everything the service holds for one mounted widget.

    Args:
        connection_id: Identifier used in logs and the registry
        websocket: The widget's websocket
        transport: Factory for transport handles
        default_credential: Credential used when a locator has no shareKey
    """

    def __init__(
        self,
        connection_id: str,
        websocket: WebSocket,
        transport: Transport,
        default_credential: Optional[str] = None,
    ):
        self.connection_id = connection_id
        self.websocket = websocket
        self.agent_name: Optional[str] = None
        self.outbox: asyncio.Queue = asyncio.Queue()
        self.probe = ClientMicrophoneProbe(self.push)
        self.lifecycle = SessionLifecycle(transport, self.probe, default_credential)
        self.lifecycle.add_listener(self._on_view)
        self._tasks: Set[asyncio.Task] = set()
        self._sender: Optional[asyncio.Task] = None
        self._send_failed = False

    def push(self, message: OutgoingMessage) -> None:
        """Queue a message for the widget, preserving order."""
        if self._send_failed:
            logger.debug(f"Dropping {message.type} for connection {self.connection_id}, widget unreachable")
            return
        self.outbox.put_nowait(message)

    def push_state(self) -> None:
        self._on_view(self.lifecycle.view)

    def _on_view(self, view: SessionView) -> None:
        self.push(SessionStateMessage.from_view(view, self.agent_name))

    def start_sender(self) -> None:
        self._sender = asyncio.create_task(self._send_loop())

    async def _send_loop(self) -> None:
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send_text(message.model_dump_json())
            except Exception as e:
                logger.error(f"Error sending to widget {self.connection_id}: {e}", exc_info=True)
                self._send_failed = True
                while not self.outbox.empty():
                    self.outbox.get_nowait()
                return

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run an intent in the background so the receive loop stays responsive."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Session intent failed for connection {self.connection_id}: {task.exception()}",
                exc_info=task.exception(),
            )

    async def shutdown(self) -> None:
        """Tear the session down and stop background work. Never raises."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        try:
            await self.lifecycle.close()
        except Exception as e:
            logger.error(f"Error closing session for connection {self.connection_id}: {e}", exc_info=True)

        if self._sender is not None:
            self._sender.cancel()
            await asyncio.gather(self._sender, return_exceptions=True)
            self._sender = None


class ConnectionManager:
    """Registry of attached widget connections."""

    def __init__(self):
        self.active_connections: Dict[str, WidgetConnection] = {}

    def add_connection(self, connection: WidgetConnection) -> None:
        self.active_connections[connection.connection_id] = connection

    def remove_connection(self, connection_id: str) -> None:
        self.active_connections.pop(connection_id, None)

    def count_sessions(self) -> Dict[str, int]:
        """Number of attached widgets per session state."""
        counts: Dict[str, int] = {}
        for connection in self.active_connections.values():
            state = connection.lifecycle.view.state
            key = state.value if hasattr(state, "value") else str(state)
            counts[key] = counts.get(key, 0) + 1
        return counts
