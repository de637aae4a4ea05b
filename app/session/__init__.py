"""
Voice session core: locator resolution, microphone permission, the session
state machine and its lifecycle.

Key components:
- config_resolver: Turns a bare agent id or share link into a ConnectionConfig.
- permission_gate: Coalesced, probe-and-release microphone permission check.
- event_bridge: Tags transport events with the generation of their handle.
- controller: The SessionController state machine that owns the transport handle.
- lifecycle: SessionLifecycle, which binds open/close of the host widget to
  the controller and guarantees teardown.

Usage examples:
```python
from app.session import SessionLifecycle
from app.services.realtime_transport import RealtimeVoiceTransport

lifecycle = SessionLifecycle(RealtimeVoiceTransport(), probe)
async with lifecycle.opened("https://host/talk?targetId=abc&shareKey=xyz"):
    await lifecycle.request_start()
    ...
```
"""

from app.session.config_resolver import resolve
from app.session.controller import SessionController
from app.session.event_bridge import EventBridge
from app.session.lifecycle import SessionLifecycle
from app.session.permission_gate import PermissionGate

__all__ = ["resolve", "SessionController", "EventBridge", "SessionLifecycle", "PermissionGate"]
