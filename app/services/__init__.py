"""
Services module for external integrations of the voice session service.

Key components:
- realtime_transport: Websocket client for the real-time voice service,
  exposing the construct/start/stop/on transport capability.
- client_microphone: Microphone probe that asks the browser widget for
  permission and tells it to release the device afterwards.

Usage examples:
```python
from app.services.realtime_transport import RealtimeVoiceTransport

transport = RealtimeVoiceTransport("wss://voice.example.com/call/web")
handle = transport.construct("public-key")
handle.on("call-start", lambda payload: print("connected"))
await handle.start("agent-123")
...
handle.stop()
```
"""

# Services module initialization
