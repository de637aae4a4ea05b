"""
Microphone probe backed by the browser widget.

The microphone belongs to the browser, so the permission check is a round
trip: the service sends permission.request, the widget calls getUserMedia
and answers with permission.result. Releasing the probe handle tells the
widget to stop the tracks it opened.
"""

import asyncio
import logging
import os
from typing import Callable, Optional

from app.config.constants import DEFAULT_PERMISSION_TIMEOUT, LOGGER_NAME
from app.models.message_schemas import (
    MicrophoneReleaseMessage,
    OutgoingMessage,
    PermissionRequestMessage,
)
from app.session.errors import MicrophonePermissionError

logger = logging.getLogger(LOGGER_NAME)

PERMISSION_TIMEOUT = float(os.getenv("PERMISSION_TIMEOUT", str(DEFAULT_PERMISSION_TIMEOUT)))

Push = Callable[[OutgoingMessage], None]


class ClientMicrophoneHandle:
    def __init__(self, push: Push):
        self._push = push
        self._released = False

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._push(MicrophoneReleaseMessage())


class ClientMicrophoneProbe:
    """
    Asks the widget for microphone access.

    Args:
        push: Queues a message for the widget
        timeout: Seconds to wait for permission.result
    """

    def __init__(self, push: Push, timeout: float = PERMISSION_TIMEOUT):
        self._push = push
        self.timeout = timeout
        self._waiter: Optional[asyncio.Future] = None

    @property
    def waiting(self) -> bool:
        return self._waiter is not None and not self._waiter.done()

    async def acquire(self) -> ClientMicrophoneHandle:
        """
        Raises:
            MicrophonePermissionError: if the widget denies access or never answers
        """
        self._waiter = asyncio.get_running_loop().create_future()
        self._push(PermissionRequestMessage())
        logger.debug("Asked widget for microphone permission")

        try:
            granted, reason = await asyncio.wait_for(self._waiter, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise MicrophonePermissionError(
                f"No microphone permission answer within {self.timeout:.0f}s"
            ) from e
        finally:
            self._waiter = None

        if not granted:
            raise MicrophonePermissionError(reason or "denied by user")
        return ClientMicrophoneHandle(self._push)

    def resolve(self, granted: bool, reason: Optional[str] = None) -> bool:
        """
        Deliver the widget's answer.

        A grant that arrives after the request timed out or was cancelled
        still opened the microphone in the browser, so it is released at once.

        Returns:
            bool: False if no permission request was waiting
        """
        if not self.waiting:
            logger.warning("Unsolicited permission.result ignored")
            if granted:
                self._push(MicrophoneReleaseMessage())
            return False
        self._waiter.set_result((granted, reason))
        return True
