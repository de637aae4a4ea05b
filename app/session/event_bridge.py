"""
Bridge between a transport handle's callbacks and the session controller.

Every event is tagged with the generation of the handle it came from so the
controller can drop events that belong to a session it already tore down.
"""

import logging
from typing import Any, Callable, Dict

from app.config.constants import EVENT_CALL_START, LOGGER_NAME, TRANSPORT_EVENTS
from app.models.session import TransportEvent

logger = logging.getLogger(LOGGER_NAME)

EventSink = Callable[[TransportEvent], bool]


class EventBridge:
    """
    Subscribes to one transport handle and forwards its events to a sink.

    Args:
        handle: The transport handle to listen on
        generation: Generation id of the handle
        sink: Callable that applies an event and returns False when it was discarded
    """

    def __init__(self, handle: Any, generation: int, sink: EventSink):
        self.handle = handle
        self.generation = generation
        self._sink = sink
        self._detached = False
        self._callbacks: Dict[str, Callable[..., None]] = {}

        for kind in TRANSPORT_EVENTS:
            callback = self._make_callback(kind)
            self._callbacks[kind] = callback
            handle.on(kind, callback)

    @property
    def detached(self) -> bool:
        return self._detached

    def _make_callback(self, kind: str) -> Callable[..., None]:
        def callback(payload: Any = None, *_args: Any) -> None:
            self._forward(kind, payload)

        return callback

    def _forward(self, kind: str, payload: Any) -> None:
        event = TransportEvent(kind=kind, generation=self.generation, payload=payload)

        if self._detached:
            accepted = False
        else:
            accepted = self._sink(event)

        if not accepted and kind == EVENT_CALL_START:
            # The call came up for a session that no longer wants it
            logger.warning(
                f"Late call-start from generation {self.generation}, hanging up"
            )
            self._hangup_quietly()

    def _hangup_quietly(self) -> None:
        try:
            self.handle.stop()
        except Exception as e:
            logger.error(f"Error hanging up stale transport handle: {e}", exc_info=True)

    def detach(self) -> None:
        """
        Stop forwarding events.

        Handlers are unregistered when the handle supports `off`, except the
        call-start one, which stays behind to hang up a call that connects late.
        """
        if self._detached:
            return
        self._detached = True

        off = getattr(self.handle, "off", None)
        if not callable(off):
            return
        for kind, callback in self._callbacks.items():
            if kind == EVENT_CALL_START:
                continue
            try:
                off(kind, callback)
            except Exception as e:
                logger.debug(f"Could not unregister {kind} handler: {e}")
