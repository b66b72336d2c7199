"""Storage root handle and logical path resolution.

Logical paths are ``/``-delimited strings rooted at the storage root, for
example ``chats/abc/chat.json``. Every path is resolved inside the root;
segments that would climb out of it are rejected.
"""

import logging
from pathlib import Path
from threading import Lock

from chatstore.core.config import CHATSTORE_DATA_DIR
from chatstore.storage.errors import InvalidPathError

logger = logging.getLogger(__name__)

_root: Path | None = None
_root_lock = Lock()


def get_root() -> Path:
    """Get the storage root directory, creating it on first access."""
    global _root
    if _root is None:
        with _root_lock:
            if _root is None:
                root = CHATSTORE_DATA_DIR.expanduser().resolve()
                root.mkdir(parents=True, exist_ok=True)
                logger.debug("Storage root: %s", root)
                _root = root
    return _root


def set_root(path: Path | str) -> Path:
    """Point the store at a different root directory."""
    global _root
    root = Path(path).expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    with _root_lock:
        _root = root
    return root


def reset_root() -> None:
    """Drop the cached root so the next access re-acquires it."""
    global _root
    with _root_lock:
        _root = None


def split_path(path: str) -> list[str]:
    """
    Split a logical path into its segments.

    Empty and ``.`` segments are dropped, so ``/chats//a/`` and ``chats/a``
    are the same path.

    Raises:
        InvalidPathError: If any segment is ``..``
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    if ".." in parts:
        raise InvalidPathError(f"Path escapes storage root: {path!r}")
    return parts


def ensure_segment(value: str, what: str = "name") -> str:
    """Check that an identifier is usable as a single path segment."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise InvalidPathError(f"Invalid {what}: {value!r}")
    return value


def parse_path(path: str) -> tuple[str, str]:
    """
    Split a file path into its parent directory and file name.

    Raises:
        InvalidPathError: If the path is empty
    """
    parts = split_path(path)
    if not parts:
        raise InvalidPathError("Invalid path: empty")
    name = parts.pop()
    return "/".join(parts), name


def resolve_path(path: str) -> Path:
    """Map a logical path to a filesystem path without creating anything."""
    return get_root().joinpath(*split_path(path))


def get_directory(path: str) -> Path:
    """
    Get the directory at a logical path, creating missing segments.

    Args:
        path: Logical directory path (empty for the root)

    Returns:
        Filesystem path of the directory
    """
    directory = resolve_path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory
