"""Exceptions raised by microphone probes and voice transports."""


class VoiceSessionError(Exception):
    """Base class for failures scoped to a single voice session."""


class MicrophonePermissionError(VoiceSessionError):
    """The microphone is unavailable or the user refused access."""


class TransportConnectError(VoiceSessionError):
    """The transport could not open the call."""
