"""Configuration management for chatstore."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_env(key: str, default: str | None = None) -> str | None:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using %s", key, value, default)
        return default


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key, "").lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


# Storage root (XDG-style, defaults to ~/.chatstore)
CHATSTORE_DATA_DIR = Path(
    get_env("CHATSTORE_DATA_DIR", os.path.expanduser("~/.chatstore"))
    or os.path.expanduser("~/.chatstore")
)

# Debounce window for coalesced saves
SAVE_DELAY_MS = get_env_int("CHATSTORE_SAVE_DELAY_MS", 500)

# Logging
LOG_LEVEL = get_env("LOG_LEVEL", "INFO") or "INFO"

# Debug logging for the CLI without passing --debug
DEBUG = get_env_bool("CHATSTORE_DEBUG")


def setup_logging() -> logging.Logger:
    """Configure and return logger."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    )
    return logging.getLogger("chatstore")
