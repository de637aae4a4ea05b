"""
Websocket implementation of the real-time voice transport.

A handle opens one websocket to the voice service, asks it to start a call
with the given target and turns the service's JSON control messages into
call-start / call-end / error / speech-start / speech-end callbacks, in
arrival order. Audio frames travel between the browser and the voice
service directly; binary frames seen here are ignored.
"""

import asyncio
import json
import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from app.config.constants import (
    DEFAULT_TRANSPORT_URL,
    EVENT_CALL_END,
    EVENT_ERROR,
    LOGGER_NAME,
    TRANSPORT_EVENTS,
)
from app.session.errors import TransportConnectError

logger = logging.getLogger(LOGGER_NAME)

VOICE_TRANSPORT_URL = os.getenv("VOICE_TRANSPORT_URL", DEFAULT_TRANSPORT_URL)

CONNECTION_TIMEOUT = 15  # seconds
WS_MAX_SIZE = 1 * 1024 * 1024  # control messages only
WS_PING_INTERVAL = 10  # seconds

Callback = Callable[..., None]


class RealtimeVoiceHandle:
    """
    One call on the real-time voice service.

    Args:
        credential: Bearer token for the voice service
        url: Websocket endpoint of the voice service
    """

    def __init__(self, credential: str, url: str = VOICE_TRANSPORT_URL):
        self.credential = credential
        self.url = url
        self.ws = None
        self._listeners: Dict[str, List[Callback]] = {kind: [] for kind in TRANSPORT_EVENTS}
        self._recv_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._closing = False
        self._ended = False

    def on(self, event: str, callback: Callback) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown transport event: {event}")
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Callback) -> None:
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def _emit(self, event: str, payload: Any = None) -> None:
        if event == EVENT_CALL_END:
            if self._ended:
                return
            self._ended = True
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Error in {event} listener: {e}", exc_info=True)

    async def start(self, target_id: str) -> None:
        """
        Connect to the voice service and request a call with the target.

        Raises:
            TransportConnectError: if the connection or the start request fails
        """
        if self.ws is not None or self._closing:
            raise TransportConnectError("Transport handle already used")

        headers = {"Authorization": f"Bearer {self.credential}"}
        try:
            logger.info(f"Connecting to voice transport at {self.url}")
            connection_start = time.time()
            ws = await asyncio.wait_for(
                websockets.connect(
                    self.url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=10,
                    compression=None,
                    additional_headers=headers,
                ),
                timeout=CONNECTION_TIMEOUT,
            )
            logger.debug(f"Transport websocket open in {time.time() - connection_start:.2f} seconds")
        except asyncio.TimeoutError as e:
            raise TransportConnectError(
                f"Timed out connecting to the voice service after {CONNECTION_TIMEOUT}s"
            ) from e
        except (OSError, websockets.exceptions.WebSocketException) as e:
            raise TransportConnectError(f"Could not reach the voice service: {e}") from e

        if self._closing:
            # stop() arrived while the connection was being opened
            logger.info("Transport stopped during connect, closing websocket")
            await ws.close()
            return

        self.ws = ws
        try:
            await ws.send(json.dumps({"type": "call.start", "targetId": target_id}))
        except ConnectionClosed as e:
            self.ws = None
            raise TransportConnectError(f"Voice service closed the connection: {e}") from e

        self._recv_task = asyncio.create_task(self._recv_loop())

    async def _recv_loop(self) -> None:
        ws = self.ws
        try:
            async for message in ws:
                if isinstance(message, bytes):
                    continue
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    logger.warning(f"Received invalid JSON from voice service: {message[:100]}...")
                    continue

                event = data.get("type")
                if event in TRANSPORT_EVENTS:
                    logger.debug(f"Transport event: {event}")
                    self._emit(event, data)
                else:
                    logger.debug(f"Ignoring voice service message of type: {event}")
        except ConnectionClosedOK:
            pass
        except ConnectionClosedError as e:
            if not self._closing:
                logger.warning(f"Voice service connection dropped: {e}")
                self._emit(EVENT_ERROR, {"type": EVENT_ERROR, "message": str(e)})
                return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._closing:
                logger.error(f"Error in transport receive loop: {e}", exc_info=True)
                self._emit(EVENT_ERROR, {"type": EVENT_ERROR, "message": str(e)})
                return

        if not self._closing:
            logger.info("Voice service closed the call")
            self._emit(EVENT_CALL_END, {"type": EVENT_CALL_END})

    def stop(self) -> None:
        """
        Hang up. Returns immediately; the socket is closed in the background.

        Raises:
            RuntimeError: if called outside a running event loop while connected
        """
        if self._closing:
            return
        self._closing = True

        if self._recv_task and not self._recv_task.done():
            self._recv_task.cancel()

        if self.ws is not None:
            loop = asyncio.get_running_loop()
            self._close_task = loop.create_task(self._close_socket(self.ws))

    async def _close_socket(self, ws: Any) -> None:
        try:
            await ws.send(json.dumps({"type": "call.stop"}))
        except ConnectionClosed:
            pass
        except Exception as e:
            logger.warning(f"Could not send hangup to voice service: {e}")
        try:
            await ws.close()
        except Exception as e:
            logger.warning(f"Error closing transport websocket: {e}")
        logger.info("Transport websocket closed")


class RealtimeVoiceTransport:
    """Creates RealtimeVoiceHandle instances for a voice service endpoint."""

    def __init__(self, url: str = VOICE_TRANSPORT_URL):
        self.url = url

    def construct(self, credential: str) -> RealtimeVoiceHandle:
        return RealtimeVoiceHandle(credential, self.url)
