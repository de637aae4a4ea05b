"""
Session controller for a live voice call.

The controller owns the session state machine and the single transport
handle of the session:

    idle/error --start()--> connecting --call-start--> connected
    connecting --start rejected / error event--> error
    connected --error event--> error
    connected --call-end--> idle
    any --stop()--> idle

Every handle gets a fresh generation id. Events are applied only when they
carry the generation of the current handle, which keeps a slow event from
a torn-down call out of the next one.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol

from app.config.constants import (
    EVENT_CALL_END,
    EVENT_CALL_START,
    EVENT_ERROR,
    EVENT_SPEECH_END,
    EVENT_SPEECH_START,
    LOGGER_NAME,
    MESSAGE_CALL_FAILED,
    MESSAGE_CONNECT_FAILED,
    MESSAGE_INVALID_LOCATOR,
    MESSAGE_PERMISSION_REQUIRED,
)
from app.models.session import (
    ConnectionConfig,
    ErrorKind,
    PermissionResult,
    Session,
    SessionState,
    SessionView,
    TransportEvent,
)
from app.session.event_bridge import EventBridge

logger = logging.getLogger(LOGGER_NAME)

ViewListener = Callable[[SessionView], None]


class TransportHandle(Protocol):
    async def start(self, target_id: str) -> None: ...

    def stop(self) -> None: ...

    def on(self, event: str, callback: Callable[..., None]) -> None: ...


class Transport(Protocol):
    def construct(self, credential: str) -> TransportHandle: ...


class SessionController:
    """
    Drives one voice session against a transport.

    Args:
        transport: Factory for transport handles
    """

    def __init__(self, transport: Transport):
        self.transport = transport
        self.session = Session()
        self._generation = 0
        self._bridge: Optional[EventBridge] = None
        self._permission_granted = False
        self._listeners: List[ViewListener] = []

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def permission_granted(self) -> bool:
        return self._permission_granted

    @property
    def view(self) -> SessionView:
        return SessionView(
            state=self.session.state,
            loading=self.session.preparing or self.session.state == SessionState.CONNECTING,
            errorMessage=self.session.error_message,
            errorKind=self.session.error_kind,
        )

    def add_listener(self, listener: ViewListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ViewListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        view = self.view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.error(f"Session view listener failed: {e}", exc_info=True)

    def grant_permission(self, result: PermissionResult) -> None:
        self._permission_granted = result.granted

    def prepare(self) -> None:
        """Mark the session as loading while the host prepares it."""
        self.session.preparing = True
        self._notify()

    def ready(self) -> None:
        """Enter the ready-to-start posture."""
        self.session.preparing = False
        self.session.state = SessionState.IDLE
        self._clear_error()
        self._notify()

    def fail(self, kind: ErrorKind, message: str) -> None:
        """Move to the error state, dropping any live handle."""
        if self.session.handle is not None:
            self._release(hangup=True)
        self.session.preparing = False
        self.session.state = SessionState.ERROR
        self.session.error_kind = kind
        self.session.error_message = message
        logger.warning(f"Session failed ({kind.value}): {message}")
        self._notify()

    def _clear_error(self) -> None:
        self.session.error_kind = None
        self.session.error_message = None

    async def start(self, config: Optional[ConnectionConfig]) -> bool:
        """
        Open a call to the configured target.

        Returns:
            bool: True if the transport accepted the start request. Connected
            is only reached once the transport emits call-start.
        """
        if self.session.state in (SessionState.CONNECTING, SessionState.CONNECTED):
            logger.debug(f"start() ignored, session already {self.session.state.value}")
            return False

        if config is None:
            self.fail(ErrorKind.CONFIG, MESSAGE_INVALID_LOCATOR)
            return False

        if not self._permission_granted:
            self.fail(ErrorKind.PERMISSION, MESSAGE_PERMISSION_REQUIRED)
            return False

        self._generation += 1
        generation = self._generation

        try:
            handle = self.transport.construct(config.credential)
        except Exception as e:
            logger.error(f"Failed to construct transport handle: {e}", exc_info=True)
            self.fail(ErrorKind.CONNECT, str(e) or MESSAGE_CONNECT_FAILED)
            return False

        # Claim the session before the first suspension point
        self._bridge = EventBridge(handle, generation, self.dispatch)
        self.session.handle = handle
        self.session.generation = generation
        self.session.preparing = False
        self.session.state = SessionState.CONNECTING
        self._clear_error()
        self._notify()

        logger.info(f"Starting call to {config.targetId} (generation {generation})")
        try:
            await handle.start(config.targetId)
        except asyncio.CancelledError:
            if self.session.generation == generation:
                logger.info(f"Start of generation {generation} cancelled, stopping")
                self.stop()
            raise
        except Exception as e:
            if self.session.generation != generation:
                logger.info(f"Ignoring start failure of superseded generation {generation}: {e}")
                return False
            logger.error(f"Failed to start call: {e}")
            self._release(hangup=False)
            self.session.state = SessionState.ERROR
            self.session.error_kind = ErrorKind.CONNECT
            self.session.error_message = str(e) or MESSAGE_CONNECT_FAILED
            self._notify()
            return False

        if self.session.generation != generation:
            logger.info(f"Session stopped while generation {generation} was starting")
            return False
        return True

    def stop(self) -> None:
        """
        Hang up and return to idle.

        Hangup failures are logged and never raised; the handle is cleared and
        the state forced to idle without waiting for call-end.
        """
        if self.session.handle is None and self.session.state == SessionState.IDLE:
            logger.debug("stop() ignored, session idle")
            return

        if self.session.handle is not None:
            self._release(hangup=True)
        self.session.state = SessionState.IDLE
        self._clear_error()
        self._notify()
        logger.info("Session stopped")

    def dispatch(self, event: TransportEvent) -> bool:
        """
        Apply a transport event.

        Returns:
            bool: False when the event was discarded as stale or unknown
        """
        if self.session.generation is None or event.generation != self.session.generation:
            logger.debug(
                f"Discarding {event.kind} from generation {event.generation} "
                f"(current: {self.session.generation})"
            )
            return False

        if event.kind == EVENT_SPEECH_START:
            self.session.agent_speaking = True
            logger.debug("Agent speaking")
            return True

        if event.kind == EVENT_SPEECH_END:
            self.session.agent_speaking = False
            logger.debug("Agent finished speaking")
            return True

        if event.kind == EVENT_CALL_START:
            if self.session.state == SessionState.CONNECTING:
                self.session.state = SessionState.CONNECTED
                self._clear_error()
                logger.info(f"Call connected (generation {event.generation})")
                self._notify()
            return True

        if event.kind == EVENT_CALL_END:
            self._release(hangup=False)
            self.session.state = SessionState.IDLE
            logger.info(f"Call ended (generation {event.generation})")
            self._notify()
            return True

        if event.kind == EVENT_ERROR:
            logger.error(f"Transport error during call: {event.payload}")
            self._release(hangup=True)
            self.session.state = SessionState.ERROR
            self.session.error_kind = ErrorKind.RUNTIME
            self.session.error_message = MESSAGE_CALL_FAILED
            self._notify()
            return True

        logger.warning(f"Unknown transport event: {event.kind}")
        return False

    def _release(self, hangup: bool) -> None:
        handle = self.session.handle
        if self._bridge is not None:
            self._bridge.detach()
            self._bridge = None
        self.session.handle = None
        self.session.generation = None
        self.session.agent_speaking = False

        if hangup and handle is not None:
            _hangup_quietly(handle)

    def reset(self) -> None:
        """Clear every session field back to its initial value."""
        if self.session.handle is not None:
            self._release(hangup=True)
        self.session = Session()
        self._permission_granted = False
        self._notify()


def _hangup_quietly(handle: Any) -> None:
    try:
        handle.stop()
    except Exception as e:
        logger.error(f"Error stopping transport (ignored): {e}", exc_info=True)
