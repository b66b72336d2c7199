"""Zip export and import of whole collections."""

import asyncio
import io
import logging
import os
import zipfile
from pathlib import Path

from chatstore.core.types import IndexEntry
from chatstore.storage.errors import ArchiveError, InvalidPathError
from chatstore.storage.fs import ensure_directory, write_blob
from chatstore.storage.index import rebuild_folder_index
from chatstore.storage.root import resolve_path, split_path

logger = logging.getLogger(__name__)


def _collection(path: str) -> str:
    parts = split_path(path)
    if not parts:
        raise InvalidPathError("Archive path must name a folder inside the store")
    return "/".join(parts)


def _export_sync(path: str) -> bytes:
    base = resolve_path(path)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        if not base.is_dir():
            logger.debug("Nothing to export at %s", path)
        else:
            for dirpath, dirnames, filenames in os.walk(base):
                dirnames.sort()
                current = Path(dirpath)
                for name in dirnames:
                    zf.writestr((current / name).relative_to(base).as_posix() + "/", b"")
                for name in sorted(filenames):
                    full = current / name
                    zf.write(full, arcname=full.relative_to(base).as_posix())
    return buffer.getvalue()


def _read_entries_sync(data: bytes) -> list[tuple[str, bytes | None]]:
    """Read archive members as ``(relative_path, bytes)``; directories carry None."""
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
            entries = []
            for info in zf.infolist():
                if info.is_dir():
                    entries.append((info.filename, None))
                else:
                    entries.append((info.filename, zf.read(info)))
            return entries
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Not a valid zip archive: {e}") from e


async def export_folder_as_zip(path: str) -> bytes:
    """
    Pack a folder and everything below it into a zip archive.

    A folder that doesn't exist yields an empty archive.

    Args:
        path: Logical folder path, usually a collection such as ``chats``

    Returns:
        The archive bytes
    """
    return await asyncio.to_thread(_export_sync, _collection(path))


async def export_folder_to_file(path: str, dest: Path | str) -> Path:
    """Export a folder as a zip archive written to a local file."""
    data = await export_folder_as_zip(path)
    target = Path(dest).expanduser()
    await asyncio.to_thread(target.write_bytes, data)
    logger.info("Exported %s to %s (%d bytes)", path, target, len(data))
    return target


async def import_folder_from_zip(path: str, data: bytes) -> list[IndexEntry]:
    """
    Unpack a zip archive into a folder, merging with what is already there.

    Entries that would land outside the folder are skipped. The folder's
    index is always rebuilt afterwards, whatever the archive contained.

    Args:
        path: Logical folder path to import into
        data: Archive bytes

    Returns:
        The rebuilt index entries

    Raises:
        ArchiveError: If the data is not a zip archive
    """
    collection = _collection(path)
    entries = await asyncio.to_thread(_read_entries_sync, data)

    written = 0
    for name, content in entries:
        try:
            parts = split_path(name)
        except InvalidPathError:
            logger.warning("Skipping archive entry outside %s: %s", collection, name)
            continue
        if not parts:
            continue
        target = "/".join([collection, *parts])
        if content is None:
            await ensure_directory(target)
        else:
            await write_blob(target, content)
            written += 1

    logger.info("Imported %d files into %s", written, collection)
    return await rebuild_folder_index(collection)
