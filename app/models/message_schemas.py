"""
Pydantic models for the widget <-> service websocket protocol.

The dashboard's "talk to agent" widget drives a voice session through these
messages; the service answers with session.state snapshots and, while a
session opens, a permission.request for the browser microphone.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.models.session import ErrorKind, SessionState, SessionView


class BaseMessage(BaseModel):
    """Base model for all widget messages."""

    type: str = Field(..., description="Message type identifier")


# Widget -> service
class SessionOpenMessage(BaseMessage):
    """The widget was opened for an agent."""

    type: Literal["session.open"]
    locator: Optional[str] = Field(None, description="Agent id or conversation share link")
    agentName: Optional[str] = Field(None, description="Display name of the agent")


class SessionStartMessage(BaseMessage):
    """The user asked to start talking."""

    type: Literal["session.start"]


class SessionStopMessage(BaseMessage):
    """The user hung up but kept the widget open."""

    type: Literal["session.stop"]


class SessionCloseMessage(BaseMessage):
    """The widget was closed."""

    type: Literal["session.close"]


class PermissionResultMessage(BaseMessage):
    """Outcome of the browser microphone prompt."""

    type: Literal["permission.result"]
    granted: bool = Field(..., description="Whether the microphone could be opened")
    reason: Optional[str] = Field(None, description="Browser error name when denied")

    @field_validator("reason")
    def validate_reason(cls, v):
        """Empty reasons are treated as absent."""
        if v is not None and not v.strip():
            return None
        return v


# Service -> widget
class SessionStateMessage(BaseMessage):
    """Snapshot of the session for rendering."""

    type: Literal["session.state"] = "session.state"
    state: SessionState
    loading: bool
    errorMessage: Optional[str] = None
    errorKind: Optional[ErrorKind] = None
    agentName: Optional[str] = None

    @classmethod
    def from_view(cls, view: SessionView, agent_name: Optional[str] = None) -> "SessionStateMessage":
        return cls(
            state=view.state,
            loading=view.loading,
            errorMessage=view.errorMessage,
            errorKind=view.errorKind,
            agentName=agent_name,
        )


class PermissionRequestMessage(BaseMessage):
    """Ask the widget to prompt for the microphone and report back."""

    type: Literal["permission.request"] = "permission.request"


class MicrophoneReleaseMessage(BaseMessage):
    """Tell the widget to stop the tracks it opened for the permission check."""

    type: Literal["microphone.release"] = "microphone.release"


OutgoingMessage = Union[
    SessionStateMessage,
    PermissionRequestMessage,
    MicrophoneReleaseMessage,
]
