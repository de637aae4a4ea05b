"""
FastAPI server for the real-time voice session widget.

This module initializes the FastAPI application behind the dashboard's
"talk to agent" widget. The widget connects to `/ws`, opens a session for an
agent and starts or ends the call; the service drives the real-time voice
transport and reports the session state back.
"""

import os
from pathlib import Path

import dotenv

# Load environment variables from .env before modules read them
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

from fastapi import FastAPI, WebSocket  # noqa: E402

from app.config.logging_config import configure_logging  # noqa: E402
from app.websocket_manager import WebSocketManager  # noqa: E402

logger = configure_logging()

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")

app = FastAPI(
    title="Voice Session Service",
    description="Real-time voice session controller for the agent conversation widget",
    version="1.0.0",
)

websocket_manager = WebSocketManager()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for the agent conversation widget.

    Handles session open/start/stop/close, the browser microphone permission
    round trip and session.state updates for the lifetime of the widget.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status, whether a default voice credential is configured and the
        attached widgets grouped by session state.
    """
    sessions = websocket_manager.connection_manager.count_sessions()
    return {
        "status": "healthy",
        "voice_public_key_configured": bool(os.getenv("VOICE_PUBLIC_KEY")),
        "active_connections": len(websocket_manager.connection_manager.active_connections),
        "sessions": sessions,
    }


@app.get("/")
async def root():
    """Basic information about the service."""
    return {
        "name": "Voice Session Service",
        "description": "Real-time voice session controller for the agent conversation widget",
        "version": "1.0.0",
        "endpoints": {
            "/ws": "WebSocket endpoint for the agent conversation widget",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT, websocket_ping_interval=20, websocket_ping_timeout=20)
