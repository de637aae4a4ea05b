"""
Run script for starting the voice session service.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os

import dotenv
import uvicorn

dotenv.load_dotenv()

from app.config.logging_config import configure_logging  # noqa: E402


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Start the voice session service")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main():
    """Start the server."""
    args = parse_args()
    logger = configure_logging(args.log_level)

    # Share links carry their own shareKey, so a missing default only limits bare ids
    if not os.getenv("VOICE_PUBLIC_KEY"):
        logger.warning("VOICE_PUBLIC_KEY not set; bare agent ids will not resolve")

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
