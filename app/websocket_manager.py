"""
WebSocket connection manager for the voice session widget.

Each websocket is one mounted "talk to agent" widget. The manager accepts
the connection, routes the widget's messages to the session handlers and,
whichever way the connection ends, tears the voice session down so no
transport call or microphone is left behind.
"""

import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from app.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_PERMISSION_RESULT,
    MESSAGE_TYPE_SESSION_CLOSE,
    MESSAGE_TYPE_SESSION_OPEN,
    MESSAGE_TYPE_SESSION_START,
    MESSAGE_TYPE_SESSION_STOP,
)
from app.handlers.session_handlers import (
    handle_permission_result,
    handle_session_close,
    handle_session_open,
    handle_session_start,
    handle_session_stop,
)
from app.models.connection import ConnectionManager, WidgetConnection
from app.models.message_schemas import OutgoingMessage
from app.services.realtime_transport import RealtimeVoiceTransport
from app.session.controller import Transport

logger = logging.getLogger(LOGGER_NAME)

HandlerFunc = Callable[
    [Dict[str, Any], WidgetConnection],
    Awaitable[Optional[OutgoingMessage]],
]


class WebSocketManager:
    """Routes widget messages to session handlers and owns connection teardown.

    Args:
        transport: Factory for transport handles, defaults to the realtime websocket transport
        default_credential: Credential used when a locator has no shareKey
    """

    def __init__(self, transport: Optional[Transport] = None, default_credential: Optional[str] = None):
        self.connection_manager = ConnectionManager()
        self.transport = transport or RealtimeVoiceTransport()
        self.default_credential = default_credential

        self.handlers: Dict[str, HandlerFunc] = {
            MESSAGE_TYPE_SESSION_OPEN: handle_session_open,
            MESSAGE_TYPE_SESSION_START: handle_session_start,
            MESSAGE_TYPE_SESSION_STOP: handle_session_stop,
            MESSAGE_TYPE_SESSION_CLOSE: handle_session_close,
            MESSAGE_TYPE_PERMISSION_RESULT: handle_permission_result,
        }

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a widget websocket from accept to teardown.

        The session is closed in `finally`, so a disconnect, an unexpected
        error or a server shutdown all release the transport and microphone.
        """
        await websocket.accept()
        connection = WidgetConnection(
            connection_id=str(uuid.uuid4()),
            websocket=websocket,
            transport=self.transport,
            default_credential=self.default_credential,
        )
        self.connection_manager.add_connection(connection)
        connection.start_sender()
        logger.info(f"Widget connected: {connection.connection_id}")

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message_dict = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning(f"Ignoring non-JSON widget message: {data[:100]}")
                    continue
                if not isinstance(message_dict, dict):
                    logger.warning("Ignoring widget message that is not a JSON object")
                    continue

                message_type = message_dict.get("type")
                handler = self.handlers.get(message_type)
                if handler is None:
                    logger.warning(f"Unhandled message type received: {message_type}")
                    connection.push_state()
                    continue

                logger.debug(f"Received message type: {message_type}")
                response = await handler(message_dict, connection)
                if response is not None:
                    connection.push(response)

        except WebSocketDisconnect:
            logger.info(f"Widget disconnected: {connection.connection_id}")
        except Exception as e:
            logger.error(f"Error in widget connection: {e}", exc_info=True)
        finally:
            await connection.shutdown()
            self.connection_manager.remove_connection(connection.connection_id)
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Websocket already closed: {e}")
            logger.info(f"Widget connection cleaned up: {connection.connection_id}")
