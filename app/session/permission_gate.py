"""
Microphone permission gate.

The gate only checks whether the microphone can be opened: it acquires a
handle through a MicrophoneProbe and releases it straight away. Concurrent
requests during one open share a single probe run, and the outcome is kept
until the gate is released.
"""

import asyncio
import logging
from typing import Optional, Protocol

from app.config.constants import LOGGER_NAME
from app.models.session import PermissionResult
from app.session.errors import MicrophonePermissionError

logger = logging.getLogger(LOGGER_NAME)


class MicrophoneHandle(Protocol):
    async def release(self) -> None: ...


class MicrophoneProbe(Protocol):
    async def acquire(self) -> MicrophoneHandle: ...


class PermissionGate:
    """
    Requests microphone access at most once per session open.

    Args:
        probe: Source of microphone handles
    """

    def __init__(self, probe: MicrophoneProbe):
        self.probe = probe
        self._pending: Optional[asyncio.Task] = None
        self._result: Optional[PermissionResult] = None

    @property
    def granted(self) -> bool:
        return self._result is not None and self._result.granted

    @property
    def result(self) -> Optional[PermissionResult]:
        return self._result

    async def request_microphone(self) -> PermissionResult:
        """
        Ask for microphone access, coalescing concurrent callers.

        Returns:
            PermissionResult: granted=False on denial or probe failure
        """
        if self._result is not None:
            return self._result

        if self._pending is None or self._pending.done():
            self._pending = asyncio.create_task(self._probe())
        else:
            logger.debug("Microphone request already in flight, waiting for it")

        task = self._pending
        # A caller giving up must not cancel the shared request
        try:
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return PermissionResult(granted=False, reason="cancelled")
            raise
        if self._pending is task:
            self._result = result
            self._pending = None
        return result

    async def _probe(self) -> PermissionResult:
        try:
            handle = await self.probe.acquire()
        except MicrophonePermissionError as e:
            logger.warning(f"Microphone permission denied: {e}")
            return PermissionResult(granted=False, reason=str(e) or "denied")
        except Exception as e:
            logger.error(f"Microphone probe failed: {e}", exc_info=True)
            return PermissionResult(granted=False, reason=str(e) or type(e).__name__)

        try:
            await handle.release()
        except Exception as e:
            logger.warning(f"Error releasing microphone after permission check: {e}")

        logger.info("Microphone permission granted")
        return PermissionResult(granted=True)

    def release(self) -> None:
        """Forget the cached outcome so the next open prompts again."""
        if self._pending is not None and not self._pending.done():
            logger.debug("Cancelling in-flight microphone request")
            self._pending.cancel()
        self._pending = None
        self._result = None
