"""
Models module for the voice session service.

Key components:
- session: Session lifecycle states, the resolved ConnectionConfig, the mutable
  Session record, the read-only SessionView and tagged TransportEvents.
- message_schemas: Pydantic models for the widget websocket protocol.
- connection: Per-widget connection state and the connection registry.

Usage examples:
```python
from app.models.session import SessionState, ConnectionConfig

config = ConnectionConfig(targetId="agent-123", credential="public-key")

from app.models.message_schemas import SessionOpenMessage

message = SessionOpenMessage(type="session.open", locator="agent-123", agentName="Ava")
```
"""

from app.models.message_schemas import (
    BaseMessage,
    MicrophoneReleaseMessage,
    OutgoingMessage,
    PermissionRequestMessage,
    PermissionResultMessage,
    SessionCloseMessage,
    SessionOpenMessage,
    SessionStartMessage,
    SessionStateMessage,
    SessionStopMessage,
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
