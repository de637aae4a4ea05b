"""
Handlers for the voice session widget's websocket messages.

Key components:
- session_handlers: session.open / session.start / session.stop /
  session.close and the permission.result answer to a microphone prompt.

Every handler takes the raw message dict and the WidgetConnection it arrived
on, and returns an optional message for the widget.
"""

# Handlers module initialization
