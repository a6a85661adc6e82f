"""ID generation utilities for hypr-panel."""

import threading

import ulid

_lock = threading.Lock()


def new_id() -> str:
    """Generate a new monotonic, time-sortable ULID string."""
    with _lock:
        return str(ulid.monotonic.new())


def generate_session_id() -> str:
    """Generate an ID for one run of the panel backend."""
    return new_id()


def is_valid_id(id_str: str) -> bool:
    """Check if a string is a valid ULID."""
    try:
        if not isinstance(id_str, str):
            return False
        ulid.parse(id_str)
        return True
    except (ValueError, TypeError):
        return False
