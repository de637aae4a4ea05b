"""
Handlers for the widget's session messages.

Each handler validates its message, forwards the intent to the connection's
SessionLifecycle and returns an optional message to send back. Intents
that can wait on the browser or the transport (open, start) run as
background tasks so the receive loop can still deliver permission.result
and session.close while they are pending.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.config.constants import LOGGER_NAME
from app.models.connection import WidgetConnection
from app.models.message_schemas import (
    OutgoingMessage,
    PermissionResultMessage,
    SessionCloseMessage,
    SessionOpenMessage,
    SessionStartMessage,
    SessionStateMessage,
    SessionStopMessage,
)

logger = logging.getLogger(LOGGER_NAME)


def _current_state(connection: WidgetConnection) -> SessionStateMessage:
    return SessionStateMessage.from_view(connection.lifecycle.view, connection.agent_name)


async def handle_session_open(
    message: Dict[str, Any], connection: WidgetConnection
) -> Optional[OutgoingMessage]:
    """
    Handle session.open: the widget was opened for an agent.

    Permission is requested from the widget and the locator resolved in the
    background; progress reaches the widget as session.state messages.
    """
    try:
        open_message = SessionOpenMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid session.open message: {e}")
        return _current_state(connection)

    connection.agent_name = open_message.agentName
    logger.info(f"Opening session for agent: {open_message.agentName or 'unnamed'}")
    connection.spawn(connection.lifecycle.open(open_message.locator))
    return None


async def handle_session_start(
    message: Dict[str, Any], connection: WidgetConnection
) -> Optional[OutgoingMessage]:
    """Handle session.start: the user pressed the microphone button."""
    try:
        SessionStartMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid session.start message: {e}")
        return _current_state(connection)

    if not connection.lifecycle.is_open:
        logger.warning("session.start received before session.open")
        return _current_state(connection)

    connection.spawn(connection.lifecycle.request_start())
    return None


async def handle_session_stop(
    message: Dict[str, Any], connection: WidgetConnection
) -> Optional[OutgoingMessage]:
    """Handle session.stop: hang up but keep the widget open."""
    try:
        SessionStopMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid session.stop message: {e}")
        return _current_state(connection)

    connection.lifecycle.request_stop()
    return None


async def handle_session_close(
    message: Dict[str, Any], connection: WidgetConnection
) -> Optional[OutgoingMessage]:
    """Handle session.close: the widget was closed, tear everything down."""
    try:
        SessionCloseMessage(**message)
    except ValidationError as e:
        # Closing must happen regardless of the payload
        logger.warning(f"Invalid session.close message, closing anyway: {e}")

    await connection.lifecycle.request_close()
    return None


async def handle_permission_result(
    message: Dict[str, Any], connection: WidgetConnection
) -> Optional[OutgoingMessage]:
    """Handle permission.result: the browser's answer to permission.request."""
    try:
        result = PermissionResultMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid permission.result message: {e}")
        return _current_state(connection)

    logger.info(f"Widget microphone permission: {'granted' if result.granted else 'denied'}")
    connection.probe.resolve(result.granted, result.reason)
    return None
