"""Centralized logging setup for the onboarding intake pipeline.

Provides a consistent log format across modules and a session-scoped
adapter so every line emitted on behalf of an onboarding attempt carries
its session id.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the root logger with a standard format.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a file that receives a copy of the output.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


class SessionLoggerAdapter(logging.LoggerAdapter):
    """Prefix log messages with the onboarding session id."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        session_id = (self.extra or {}).get("session_id", "-")
        return f"[session {session_id}] {msg}", kwargs


def get_session_logger(name: str, session_id: str) -> SessionLoggerAdapter:
    """Get a logger adapter bound to a single onboarding session.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.
        session_id: Identifier of the onboarding session.

    Returns:
        Adapter that tags each message with the session id.
    """
    return SessionLoggerAdapter(logging.getLogger(name), {"session_id": session_id})
