"""Per-collection listing index.

Each collection keeps an ``index.json`` with one ``{id, title, updated}``
row per entity. The index is a cache: it is consulted for listing and
sorting, never for existence, and can always be rebuilt from the entity
folders. Updates are read-modify-write and assume a single writer.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from chatstore.core.types import IndexEntry
from chatstore.storage.fs import list_directories, list_files, read_json, write_json
from chatstore.storage.root import resolve_path

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"

# Metadata files probed, in order, when rebuilding a folder-per-entity index
METADATA_FILES = ("chat.json", "repository.json", "metadata.json")


def _index_path(collection: str) -> str:
    return f"{collection}/{INDEX_FILE}"


async def read_index(collection: str) -> list[IndexEntry]:
    """
    Read the index for a collection.

    Returns:
        Index entries in stored order; empty if the index is missing or corrupt
    """
    data = await read_json(_index_path(collection))
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("Index for %s is not a list, ignoring", collection)
        return []

    entries = []
    for item in data:
        try:
            entries.append(IndexEntry.model_validate(item))
        except ValidationError:
            logger.warning("Skipping malformed index entry in %s: %r", collection, item)
    return entries


async def write_index(collection: str, entries: list[IndexEntry]) -> None:
    """Overwrite the index for a collection."""
    await write_json(_index_path(collection), [e.to_json() for e in entries])


async def upsert_index_entry(collection: str, entry: IndexEntry) -> None:
    """Add an entry, or replace the existing entry with the same id."""
    index = await read_index(collection)
    for i, existing in enumerate(index):
        if existing.id == entry.id:
            index[i] = entry
            break
    else:
        index.append(entry)
    await write_index(collection, index)


async def remove_index_entry(collection: str, entry_id: str) -> None:
    """Remove the entry with the given id, if present."""
    index = await read_index(collection)
    await write_index(collection, [e for e in index if e.id != entry_id])


async def rebuild_index(
    collection: str,
    extract_meta: Callable[[Any], IndexEntry],
) -> list[IndexEntry]:
    """
    Rebuild an index for a collection of flat JSON files.

    Args:
        collection: Collection directory
        extract_meta: Maps a loaded JSON document to its index entry

    Returns:
        The new index entries
    """
    entries = []
    for name in await list_files(collection):
        if name == INDEX_FILE:
            continue
        data = await read_json(f"{collection}/{name}")
        if data:
            entries.append(extract_meta(data))

    await write_index(collection, entries)
    logger.info("Rebuilt %s index: %d entries", collection, len(entries))
    return entries


def _folder_mtime(collection: str, name: str) -> str:
    mtime = resolve_path(f"{collection}/{name}").stat().st_mtime
    return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()


async def _read_folder_entry(collection: str, name: str) -> IndexEntry:
    title = name
    updated = None

    for meta_file in METADATA_FILES:
        try:
            meta = await read_json(f"{collection}/{name}/{meta_file}")
        except OSError as e:
            logger.warning("Cannot read %s/%s/%s: %s", collection, name, meta_file, e)
            continue
        if not isinstance(meta, dict):
            continue
        title = str(meta.get("title") or meta.get("name") or title)
        found = meta.get("updated") or meta.get("updatedAt")
        updated = str(found) if found else None
        break

    if updated is None:
        updated = await asyncio.to_thread(_folder_mtime, collection, name)
    return IndexEntry(id=name, title=title, updated=updated)


async def rebuild_folder_index(collection: str) -> list[IndexEntry]:
    """
    Rebuild the index of a folder-per-entity collection by scanning it.

    Each subdirectory becomes one entry. Title and timestamp come from the
    first readable metadata file in the folder; folders without one fall back
    to the folder name and its modification time. Unreadable folders never
    abort the rebuild.

    Returns:
        The new index entries
    """
    entries = []
    for name in await list_directories(collection):
        try:
            entries.append(await _read_folder_entry(collection, name))
        except OSError as e:
            logger.warning("Skipping %s/%s during rebuild: %s", collection, name, e)

    await write_index(collection, entries)
    logger.info("Rebuilt %s folder index: %d entries", collection, len(entries))
    return entries
