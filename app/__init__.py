"""
Voice Session Service - real-time voice calls for the agent dashboard

This application backs the dashboard's "talk to agent" widget. It opens a
live voice conversation with an AI agent over an external real-time voice
transport, gates it on browser microphone permission and reports the
connection lifecycle back to the widget.

Architecture Overview:
- FastAPI server exposing a WebSocket endpoint for the widget
- Session state machine with generation-tagged transport events
- Scoped open/close lifecycle that always releases the transport and microphone

Key Components:
- session: Locator resolution, permission gate, event bridge, controller, lifecycle
- services: Realtime websocket transport and the browser-backed microphone probe
- handlers: Widget message handlers
- models: Session data model, widget message schemas and per-connection state
- config: Application-wide constants and logging setup
- websocket_manager: Routes widget messages and owns connection teardown

Getting Started:
1. Set up environment variables:
   - VOICE_PUBLIC_KEY: Default public credential for bare agent ids
   - VOICE_TRANSPORT_URL: Realtime voice service endpoint
   - PERMISSION_TIMEOUT: Seconds to wait for the browser microphone prompt (default 30)
   - PORT / HOST: Where to serve (default 0.0.0.0:8000)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```
"""
