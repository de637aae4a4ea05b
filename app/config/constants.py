"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_session"

# Default realtime voice transport endpoint
DEFAULT_TRANSPORT_URL = "wss://api.vapi.ai/call/web"

# Seconds to wait for the widget to answer a permission.request
DEFAULT_PERMISSION_TIMEOUT = 30.0

# Transport event names
EVENT_CALL_START = "call-start"
EVENT_CALL_END = "call-end"
EVENT_ERROR = "error"
EVENT_SPEECH_START = "speech-start"
EVENT_SPEECH_END = "speech-end"
TRANSPORT_EVENTS = (
    EVENT_CALL_START,
    EVENT_CALL_END,
    EVENT_ERROR,
    EVENT_SPEECH_START,
    EVENT_SPEECH_END,
)

# Locator query parameters
PARAM_TARGET_ID = "targetId"
PARAM_TARGET_ID_ALIAS = "assistantId"
PARAM_SHARE_KEY = "shareKey"

# Host message type constants (widget -> service)
MESSAGE_TYPE_SESSION_OPEN = "session.open"
MESSAGE_TYPE_SESSION_START = "session.start"
MESSAGE_TYPE_SESSION_STOP = "session.stop"
MESSAGE_TYPE_SESSION_CLOSE = "session.close"
MESSAGE_TYPE_PERMISSION_RESULT = "permission.result"

# Host message type constants (service -> widget)
MESSAGE_TYPE_SESSION_STATE = "session.state"
MESSAGE_TYPE_PERMISSION_REQUEST = "permission.request"
MESSAGE_TYPE_MICROPHONE_RELEASE = "microphone.release"

# User-facing error messages
MESSAGE_PERMISSION_REQUIRED = (
    "Microphone access is required. Please allow microphone permissions and try again."
)
MESSAGE_INVALID_LOCATOR = "Conversation link is missing or invalid."
MESSAGE_CONNECT_FAILED = "Failed to start the call. Please try again."
MESSAGE_CALL_FAILED = "An error occurred during the call. Please try again."
