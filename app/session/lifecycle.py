"""
Binds a voice session to the host widget's open/close signals.

Opening asks for the microphone and resolves the locator. Closing always
runs the same teardown, whatever triggered it:

1. stop the call if a transport handle is alive
2. clear the session fields
3. forget the microphone permission so the next open asks again
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from app.config.constants import (
    LOGGER_NAME,
    MESSAGE_INVALID_LOCATOR,
    MESSAGE_PERMISSION_REQUIRED,
)
from app.models.session import ConnectionConfig, ErrorKind, SessionState, SessionView
from app.session.config_resolver import resolve
from app.session.controller import SessionController, Transport, ViewListener
from app.session.permission_gate import MicrophoneProbe, PermissionGate

logger = logging.getLogger(LOGGER_NAME)


class SessionLifecycle:
    """
    Owns one controller and one permission gate for a mounted widget.

    Args:
        transport: Factory for transport handles
        probe: Microphone probe used by the permission gate
        default_credential: Credential used when a locator has no shareKey
    """

    def __init__(
        self,
        transport: Transport,
        probe: MicrophoneProbe,
        default_credential: Optional[str] = None,
    ):
        self.controller = SessionController(transport)
        self.gate = PermissionGate(probe)
        self.default_credential = default_credential
        self.locator: Optional[str] = None
        self.config: Optional[ConnectionConfig] = None
        self._is_open = False
        # Bumped on every open/close so a suspended open can tell it was superseded
        self._epoch = 0

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def view(self) -> SessionView:
        return self.controller.view

    def add_listener(self, listener: ViewListener) -> None:
        self.controller.add_listener(listener)

    def remove_listener(self, listener: ViewListener) -> None:
        self.controller.remove_listener(listener)

    async def open(self, locator: Optional[str]) -> SessionView:
        """
        Prepare a session for the given locator.

        Returns:
            SessionView: idle when ready to start, error otherwise
        """
        if self._is_open:
            await self.close()

        self._epoch += 1
        epoch = self._epoch
        self._is_open = True
        self.locator = locator
        self.config = None
        logger.info("Opening voice session")
        self.controller.prepare()

        if not await self._acquire_permission(epoch):
            return self.view

        self.config = resolve(locator, self.default_credential)
        if self.config is None:
            self.controller.fail(ErrorKind.CONFIG, MESSAGE_INVALID_LOCATOR)
            return self.view

        if self.controller.state in (SessionState.CONNECTING, SessionState.CONNECTED):
            # A start that joined the permission request already took over
            return self.view

        self.controller.ready()
        logger.info(f"Voice session ready for target {self.config.targetId}")
        return self.view

    async def _acquire_permission(self, epoch: int) -> bool:
        result = await self.gate.request_microphone()
        if epoch != self._epoch:
            logger.info("Session closed while waiting for microphone permission")
            return False

        self.controller.grant_permission(result)
        if not result.granted:
            self.controller.fail(ErrorKind.PERMISSION, MESSAGE_PERMISSION_REQUIRED)
            return False
        return True

    async def request_start(self) -> bool:
        """Start the call, retrying whatever made the last attempt fail."""
        if not self._is_open:
            logger.warning("request_start() ignored, session is not open")
            return False

        if self.controller.state in (SessionState.CONNECTING, SessionState.CONNECTED):
            return False

        if not self.controller.permission_granted:
            # Only a settled denial is asked again; an in-flight request is joined
            result = self.gate.result
            if result is not None and not result.granted:
                self.gate.release()
            if not await self._acquire_permission(self._epoch):
                return False

        if self.config is None:
            self.config = resolve(self.locator, self.default_credential)

        return await self.controller.start(self.config)

    def request_stop(self) -> None:
        """Hang up the running call and stay open."""
        self.controller.stop()

    async def request_close(self) -> None:
        await self.close()

    async def close(self) -> None:
        """Tear the session down. Safe to call on every exit path, repeatedly."""
        self._epoch += 1
        if self.controller.session.active:
            self.controller.stop()
        self.controller.reset()
        self.gate.release()
        self.config = None
        self.locator = None
        if self._is_open:
            logger.info("Voice session closed")
        self._is_open = False

    @asynccontextmanager
    async def opened(self, locator: Optional[str]) -> AsyncIterator["SessionLifecycle"]:
        """Open a session for the duration of the block, closing it on any exit."""
        try:
            await self.open(locator)
            yield self
        finally:
            await self.close()
