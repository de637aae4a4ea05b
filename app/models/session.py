"""
Data model for a live voice session.

Defines the lifecycle states, the resolved call target, the mutable session
record owned by the controller and the read-only view handed to the
presentation layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionState(str, Enum):
    """Lifecycle phase of a voice session. Exactly one value at any instant."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Category of a surfaced session failure."""

    CONFIG = "config"
    PERMISSION = "permission"
    CONNECT = "connect"
    RUNTIME = "runtime"


class ConnectionConfig(BaseModel):
    """Resolved call target: which agent to reach and with which credential."""

    model_config = ConfigDict(frozen=True)

    targetId: str = Field(..., description="Identifier of the agent/conversation to call")
    credential: str = Field(..., description="Token used to open the transport session")

    @field_validator("targetId", "credential")
    def validate_not_blank(cls, v):
        """Both fields must carry a non-empty value."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v


class PermissionResult(BaseModel):
    """Outcome of a microphone permission request."""

    model_config = ConfigDict(frozen=True)

    granted: bool
    reason: Optional[str] = None


class SessionView(BaseModel):
    """Read-only projection of the session for the presentation layer."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    state: SessionState = SessionState.IDLE
    loading: bool = False
    errorMessage: Optional[str] = None
    errorKind: Optional[ErrorKind] = None


@dataclass(frozen=True)
class TransportEvent:
    """A transport event tagged with the generation of the handle that emitted it."""

    kind: str
    generation: int
    payload: Any = None


@dataclass
class Session:
    """
    Runtime record owned by a single SessionController.

    `handle` is set only while `state` is CONNECTING or CONNECTED.
    """

    state: SessionState = SessionState.IDLE
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    handle: Any = None
    generation: Optional[int] = None
    preparing: bool = False
    agent_speaking: bool = False

    @property
    def active(self) -> bool:
        return self.handle is not None
