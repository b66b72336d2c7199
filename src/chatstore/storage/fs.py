"""Primitive file operations on logical paths.

All public functions are coroutines; the blocking filesystem work runs in a
worker thread. Reads of missing files return ``None`` and listings of missing
directories return ``[]``. Device errors (permissions, full disk) propagate.
"""

import asyncio
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any

from chatstore.core.types import Blob, StorageEntry, StorageUsage
from chatstore.storage.root import get_directory, get_root, parse_path, resolve_path

logger = logging.getLogger(__name__)


def _write_bytes_sync(path: str, data: bytes) -> None:
    dir_path, name = parse_path(path)
    target = get_directory(dir_path) / name
    with open(target, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


def _read_bytes_sync(path: str) -> bytes | None:
    parse_path(path)
    try:
        return resolve_path(path).read_bytes()
    except (FileNotFoundError, NotADirectoryError):
        return None


def _delete_file_sync(path: str) -> None:
    parse_path(path)
    try:
        resolve_path(path).unlink()
    except (FileNotFoundError, NotADirectoryError):
        pass


def _list_entries_sync(path: str, want_dirs: bool) -> list[str]:
    directory = resolve_path(path)
    try:
        children = list(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sorted(c.name for c in children if c.is_dir() == want_dirs)


def _remove_tree(target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        target.unlink()


def _delete_directory_sync(path: str) -> None:
    directory = resolve_path(path)
    if directory == get_root():
        # The root itself is never removed
        return
    try:
        _remove_tree(directory)
    except (FileNotFoundError, NotADirectoryError):
        pass


def _clear_all_sync() -> None:
    for child in get_root().iterdir():
        _remove_tree(child)


def _walk_files_sync(path: str) -> list[str]:
    base = resolve_path(path)
    if not base.is_dir():
        return []
    files = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        rel = Path(dirpath).relative_to(base)
        for name in sorted(filenames):
            files.append((rel / name).as_posix())
    return files


def _storage_usage_sync() -> StorageUsage:
    root = get_root()
    entries = []
    total = 0
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            full = Path(dirpath) / name
            size = full.stat().st_size
            entries.append(StorageEntry(full.relative_to(root).as_posix(), size))
            total += size
    return StorageUsage(total_size=total, entries=entries)


async def write_blob(path: str, blob: Blob | bytes) -> None:
    """
    Write binary data to a file, replacing any previous contents.

    The data is flushed and synced before returning.

    Args:
        path: Logical file path
        blob: Payload to write
    """
    data = blob.data if isinstance(blob, Blob) else bytes(blob)
    await asyncio.to_thread(_write_bytes_sync, path, data)


async def write_text(path: str, content: str) -> None:
    """Write UTF-8 text to a file."""
    await write_blob(path, content.encode("utf-8"))


async def write_json(path: str, data: Any) -> None:
    """Serialize data as JSON and write it to a file."""
    await write_text(path, json.dumps(data, ensure_ascii=False))


async def read_blob(path: str) -> Blob | None:
    """
    Read binary data from a file.

    Returns:
        Blob with the file contents, or None if the file doesn't exist
    """
    data = await asyncio.to_thread(_read_bytes_sync, path)
    if data is None:
        return None
    return Blob(data)


async def read_text(path: str) -> str | None:
    """Read a file as UTF-8 text. Returns None if the file doesn't exist."""
    blob = await read_blob(path)
    if blob is None:
        return None
    return blob.data.decode("utf-8", errors="replace")


async def read_json(path: str) -> Any | None:
    """
    Read and parse a JSON file.

    Malformed JSON is logged and treated like a missing file.

    Returns:
        Parsed JSON value, or None if missing or unparseable
    """
    text = await read_text(path)
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("Error parsing JSON from %s: %s", path, e)
        return None


async def delete_file(path: str) -> None:
    """Delete a file. Succeeds silently if it doesn't exist."""
    await asyncio.to_thread(_delete_file_sync, path)


async def file_exists(path: str) -> bool:
    """Check whether a regular file exists at the path."""
    return await asyncio.to_thread(lambda: resolve_path(path).is_file())


async def list_files(path: str) -> list[str]:
    """List file names (not paths) directly inside a directory."""
    return await asyncio.to_thread(_list_entries_sync, path, False)


async def list_directories(path: str) -> list[str]:
    """List subdirectory names directly inside a directory."""
    return await asyncio.to_thread(_list_entries_sync, path, True)


async def list_files_recursive(path: str) -> list[str]:
    """List every file below a directory as ``/``-joined relative paths."""
    return await asyncio.to_thread(_walk_files_sync, path)


async def ensure_directory(path: str) -> Path:
    """Create a directory and its parents if missing."""
    return await asyncio.to_thread(get_directory, path)


async def delete_directory(path: str) -> None:
    """Delete a directory and everything below it. Missing is fine."""
    await asyncio.to_thread(_delete_directory_sync, path)


async def clear_all() -> None:
    """Delete everything under the storage root."""
    await asyncio.to_thread(_clear_all_sync)


async def get_storage_usage() -> StorageUsage:
    """
    Walk the whole store and total up file sizes.

    Returns:
        StorageUsage with the byte total and one entry per file
    """
    return await asyncio.to_thread(_storage_usage_sync)
