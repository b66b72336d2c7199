"""Binary payload storage.

Blobs live next to the entity that owns them, at
``chats/{chatId}/blobs/{blobId}.bin``. The older central store under
``blobs/{id}.bin`` is still readable so chats written before co-location
keep loading; new blobs are never written there by the chat layer.
"""

import logging
from uuid import uuid4

from chatstore.core.types import Blob
from chatstore.storage.fs import delete_file, list_files, read_blob, write_blob
from chatstore.storage.root import ensure_segment

logger = logging.getLogger(__name__)

BLOB_SUFFIX = ".bin"
LEGACY_BLOB_DIR = "blobs"


def _chat_blob_path(chat_id: str, blob_id: str) -> str:
    ensure_segment(chat_id, "chat id")
    ensure_segment(blob_id, "blob id")
    return f"chats/{chat_id}/blobs/{blob_id}{BLOB_SUFFIX}"


def _legacy_blob_path(blob_id: str) -> str:
    ensure_segment(blob_id, "blob id")
    return f"{LEGACY_BLOB_DIR}/{blob_id}{BLOB_SUFFIX}"


def _strip_suffix(names: list[str]) -> list[str]:
    return [n[: -len(BLOB_SUFFIX)] for n in names if n.endswith(BLOB_SUFFIX)]


async def store_chat_blob(chat_id: str, blob: Blob | bytes) -> str:
    """
    Store a blob in a chat's blobs folder.

    Returns:
        The new blob id
    """
    blob_id = str(uuid4())
    await write_blob(_chat_blob_path(chat_id, blob_id), blob)
    return blob_id


async def get_chat_blob(chat_id: str, blob_id: str) -> Blob | None:
    """Get a blob from a chat's blobs folder. Returns None if missing."""
    return await read_blob(_chat_blob_path(chat_id, blob_id))


async def delete_chat_blob(chat_id: str, blob_id: str) -> None:
    """Delete a blob from a chat's blobs folder."""
    await delete_file(_chat_blob_path(chat_id, blob_id))


async def list_chat_blobs(chat_id: str) -> list[str]:
    """List the ids of all blobs stored for a chat."""
    ensure_segment(chat_id, "chat id")
    return _strip_suffix(await list_files(f"chats/{chat_id}/blobs"))


async def resolve_chat_blob(chat_id: str, blob_id: str) -> Blob | None:
    """
    Look a blob up for a chat, falling back to the central store.

    Returns:
        The blob, or None if neither location has it
    """
    blob = await get_chat_blob(chat_id, blob_id)
    if blob is None:
        blob = await get_blob(blob_id)
        if blob is not None:
            logger.debug("Blob %s served from central store", blob_id)
    return blob


# Central store, kept for data written before co-location


async def store_blob(blob: Blob | bytes) -> str:
    """Store a blob in the central store and return its id."""
    blob_id = str(uuid4())
    await write_blob(_legacy_blob_path(blob_id), blob)
    return blob_id


async def get_blob(blob_id: str) -> Blob | None:
    """Get a blob from the central store. Returns None if missing."""
    return await read_blob(_legacy_blob_path(blob_id))


async def delete_blob(blob_id: str) -> None:
    """Delete a blob from the central store."""
    await delete_file(_legacy_blob_path(blob_id))


async def list_blobs() -> list[str]:
    """List the ids of all blobs in the central store."""
    return _strip_suffix(await list_files(LEGACY_BLOB_DIR))
