"""Environment-variable-based configuration."""

import os
from pathlib import Path


def get_db_path() -> Path:
    """Return the default store file path from PERSISTKIT_DB_PATH."""
    raw = os.environ.get("PERSISTKIT_DB_PATH", "~/.local/share/persistkit/store.db")
    return Path(raw).expanduser()


def get_busy_timeout() -> float:
    """Return how long to wait on a locked database, in seconds, from PERSISTKIT_BUSY_TIMEOUT."""
    return float(os.environ.get("PERSISTKIT_BUSY_TIMEOUT", "5.0"))


def foreign_keys_enabled() -> bool:
    """Return False only if PERSISTKIT_FOREIGN_KEYS is set to FALSE."""
    return os.environ.get("PERSISTKIT_FOREIGN_KEYS", "TRUE").upper() != "FALSE"


def get_log_level() -> str:
    """Return the logging level from PERSISTKIT_LOG_LEVEL."""
    return os.environ.get("PERSISTKIT_LOG_LEVEL", "WARNING").upper()
