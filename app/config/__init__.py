"""
Configuration module for the voice session service.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based configuration.

Key components:
- constants: Defines application-wide constants used across modules, including
  transport event names, host message types and user-facing error messages.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.

Usage examples:
```python
# Import and use constants
from app.config.constants import LOGGER_NAME, EVENT_CALL_START

# Set up logging for your module
from app.config.logging_config import configure_logging
logger = configure_logging()
logger.info("Application started")
```
"""

# Config module initialization
