"""Logging configuration for hypr-panel."""

import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Global logging state
_logging_initialized = False
_logging_lock = threading.Lock()
_session_id = None
_logged_messages = set()  # Track messages logged once per process


class ContextFormatter(logging.Formatter):
    """Formatter that includes session_id, listener, and thread context."""

    def __init__(self):
        super().__init__(
            fmt=(
                "%(asctime)s.%(msecs)03d [%(session_id)s] [%(listener)s] "
                "[%(threadName)s] %(levelname)s - %(message)s"
            ),
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def formatTime(self, record, datefmt=None):
        """Format time in UTC."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat()

    def format(self, record):
        """Add context fields to log record."""
        if not hasattr(record, "session_id"):
            record.session_id = _session_id or "unknown"

        if not hasattr(record, "listener"):
            record.listener = listener_from_logger_name(record.name)

        return super().format(record)


def listener_from_logger_name(name: str) -> str:
    """Derive the listener label from a logger name.

    ``hpanel.listener.battery`` maps to ``battery``, ``hpanel.cli`` maps to
    ``cli`` and anything outside the package maps to ``system``.
    """
    parts = name.split(".")
    if len(parts) < 2 or parts[0] != "hpanel":
        return "system"
    if parts[1] == "listener" and len(parts) >= 3:
        return parts[2]
    return parts[1]


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    session_id: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console: bool = True,
) -> logging.Logger:
    """Set up centralized logging configuration.

    Args:
        console_level: Console log level (INFO by default)
        file_level: File log level (DEBUG by default)
        session_id: Session identifier for context
        log_dir: Directory for a per-run log file; no file is written if None
        console: Whether to enable console logging (stderr)

    Returns:
        Configured logger instance
    """
    global _logging_initialized, _session_id

    with _logging_lock:
        if _logging_initialized:
            return logging.getLogger("hpanel")

        _session_id = session_id or "unknown"

        logger = logging.getLogger("hpanel")
        logger.setLevel(logging.DEBUG)

        logger.handlers.clear()
        logger.propagate = False

        formatter = ContextFormatter()

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(getattr(logging, console_level.upper()))
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        log_file = None
        if log_dir is not None:
            log_dir = Path(log_dir).expanduser()
            log_dir.mkdir(parents=True, exist_ok=True)

            # Per-run log filename: YYYYMMDD_HHMMSS-PID.log
            now = datetime.now(timezone.utc)
            log_file = log_dir / f"{now.strftime('%Y%m%d_%H%M%S')}-{os.getpid()}.log"

            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(getattr(logging, file_level.upper()))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        if not logger.handlers:
            logger.addHandler(logging.NullHandler())

        _logging_initialized = True

        logger.debug(f"Logging initialized - session: {_session_id}, file: {log_file}")

        return logger


def reset_logging() -> None:
    """Drop all handlers so the next setup_logging() call reconfigures."""
    global _logging_initialized

    with _logging_lock:
        logger = logging.getLogger("hpanel")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        _logging_initialized = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance under the ``hpanel`` namespace.

    Args:
        name: Logger name (e.g., 'listener.battery', 'supervisor')

    Returns:
        Logger instance
    """
    if not _logging_initialized:
        setup_logging()

    return logging.getLogger(f"hpanel.{name}")


def set_session_id(session_id: Optional[str]) -> None:
    """Set the global session ID for logging context."""
    global _session_id
    _session_id = session_id


def get_session_id() -> Optional[str]:
    """Get the current session ID."""
    return _session_id


def log_once(
    logger: logging.Logger,
    level: int,
    message: str,
    *args,
    key: Optional[str] = None,
    **kwargs,
) -> None:
    """Log a message only once per process run.

    Args:
        logger: Logger instance to use
        level: Logging level (e.g., logging.INFO)
        message: Message to log (with format placeholders)
        *args: Message format arguments
        key: Optional custom key for deduplication
        **kwargs: Additional logging kwargs
    """
    if key:
        message_key = f"{logger.name}:{level}:{key}"
    else:
        formatted_msg = message % args if args else message
        message_key = f"{logger.name}:{level}:{formatted_msg}"

    with _logging_lock:
        if message_key in _logged_messages:
            return
        _logged_messages.add(message_key)

    logger.log(level, message, *args, **kwargs)
