"""Chat persistence with binary payloads kept out of the JSON.

On save, every image/audio/file part holding a data URL is decoded, written
to ``chats/{id}/blobs/`` and replaced by a ``blob:{id}`` reference. On load
the references are resolved back into data URLs. Tool results are walked
recursively since tools can return media of their own.

Layout::

    chats/index.json
    chats/{id}/chat.json
    chats/{id}/blobs/{blobId}.bin
    chats/{id}/artifacts/...
"""

import logging
import mimetypes

from pydantic import ValidationError

from chatstore.core.types import (
    AudioContent,
    Blob,
    Chat,
    Content,
    FileContent,
    ImageContent,
    IndexEntry,
    Message,
    StoredChat,
    StoredMessage,
    ToolResultContent,
    from_iso,
    to_iso,
    utc_now_iso,
)
from chatstore.storage.blobs import (
    delete_chat_blob,
    list_chat_blobs,
    resolve_chat_blob,
    store_chat_blob,
)
from chatstore.storage.dataurl import (
    DEFAULT_MIME_TYPE,
    blob_to_data_url,
    create_blob_ref,
    data_url_to_blob,
    is_data_url,
    parse_blob_ref,
)
from chatstore.storage.errors import InvalidPathError
from chatstore.storage.fs import delete_directory, read_json, write_json
from chatstore.storage.index import read_index, remove_index_entry, upsert_index_entry
from chatstore.storage.migration import migrate_chat
from chatstore.storage.root import ensure_segment

logger = logging.getLogger(__name__)

COLLECTION = "chats"
CHAT_FILE = "chat.json"

_BLOB_TYPES = (ImageContent, AudioContent, FileContent)


def _chat_file(chat_id: str) -> str:
    ensure_segment(chat_id, "chat id")
    return f"{COLLECTION}/{chat_id}/{CHAT_FILE}"


def _mime_type_for(content: ImageContent | AudioContent | FileContent) -> str:
    declared = (content.model_extra or {}).get("mimeType")
    if isinstance(declared, str) and declared:
        return declared
    if content.name:
        guessed, _ = mimetypes.guess_type(content.name)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


# --- Extraction ---


async def _extract_content(chat_id: str, content: Content) -> Content:
    if isinstance(content, _BLOB_TYPES):
        if not is_data_url(content.data):
            # Already a reference, or some other format
            return content
        try:
            blob = data_url_to_blob(content.data)
        except ValueError as e:
            logger.warning("Keeping undecodable data URL inline in chat %s: %s", chat_id, e)
            return content
        blob_id = await store_chat_blob(chat_id, blob)
        return content.model_copy(update={"data": create_blob_ref(blob_id)})

    if isinstance(content, ToolResultContent):
        result = [await _extract_content(chat_id, item) for item in content.result]
        return content.model_copy(update={"result": result})

    return content


async def extract_message_blobs(
    chat_id: str, message: Message | StoredMessage
) -> StoredMessage:
    """Move a message's inline payloads into the chat's blob folder."""
    content = [await _extract_content(chat_id, c) for c in message.content]
    return StoredMessage(role=message.role, content=content, error=message.error)


async def extract_chat_blobs(chat: Chat | StoredChat) -> StoredChat:
    """
    Convert a chat to its storable form.

    Blobs are written before this returns, so the result can be persisted
    without ever pointing at a blob that doesn't exist yet. Running it on an
    already extracted chat stores nothing new.

    Args:
        chat: Chat with inline data URLs

    Returns:
        StoredChat with blob references, ready for JSON serialization
    """
    messages = [await extract_message_blobs(chat.id, m) for m in chat.messages]
    return StoredChat(
        id=chat.id,
        title=chat.title,
        created=to_iso(chat.created),
        updated=to_iso(chat.updated),
        model=chat.model,
        messages=messages,
    )


# --- Rehydration ---


async def _rehydrate_content(chat_id: str, content: Content) -> Content:
    if isinstance(content, _BLOB_TYPES):
        blob_id = parse_blob_ref(content.data)
        if blob_id is None:
            return content
        try:
            blob = await resolve_chat_blob(chat_id, blob_id)
        except InvalidPathError:
            blob = None
        if blob is None:
            logger.warning("Blob not found: %s (chat %s)", blob_id, chat_id)
            return content.model_copy(update={"data": ""})
        data_url = blob_to_data_url(Blob(blob.data, _mime_type_for(content)))
        return content.model_copy(update={"data": data_url})

    if isinstance(content, ToolResultContent):
        result = [await _rehydrate_content(chat_id, item) for item in content.result]
        return content.model_copy(update={"result": result})

    return content


async def rehydrate_message_blobs(chat_id: str, message: StoredMessage) -> Message:
    """Resolve a stored message's blob references into data URLs."""
    content = [await _rehydrate_content(chat_id, c) for c in message.content]
    return Message(role=message.role, content=content, error=message.error)


async def rehydrate_chat_blobs(stored: StoredChat) -> Chat:
    """
    Convert a stored chat back into its in-memory form.

    A reference whose blob is missing comes back with empty data and a
    logged warning; the rest of the chat still loads.
    """
    messages = [await rehydrate_message_blobs(stored.id, m) for m in stored.messages]
    return Chat(
        id=stored.id,
        title=stored.title,
        created=from_iso(stored.created),
        updated=from_iso(stored.updated),
        model=stored.model,
        messages=messages,
    )


def _collect_ids(content: Content, ids: list[str]) -> None:
    if isinstance(content, _BLOB_TYPES):
        blob_id = parse_blob_ref(content.data)
        if blob_id:
            ids.append(blob_id)
    elif isinstance(content, ToolResultContent):
        for item in content.result:
            _collect_ids(item, ids)


def collect_chat_blob_ids(chat: StoredChat) -> list[str]:
    """List every blob id referenced by a stored chat, in document order."""
    ids: list[str] = []
    for message in chat.messages:
        for content in message.content:
            _collect_ids(content, ids)
    return ids


# --- Persistence ---


async def read_stored_chat(chat_id: str) -> StoredChat | None:
    """
    Read ``chat.json`` without touching blobs.

    Returns:
        The stored chat, or None if missing or malformed
    """
    data = await read_json(_chat_file(chat_id))
    if data is None:
        return None
    try:
        return StoredChat.model_validate(migrate_chat(data))
    except ValidationError as e:
        logger.error("Malformed chat %s: %s", chat_id, e)
        return None


async def save_chat(chat: Chat) -> StoredChat:
    """
    Persist a chat: blobs first, then ``chat.json``, then the index entry.

    Returns:
        The stored form that was written
    """
    stored = await extract_chat_blobs(chat)
    await write_json(_chat_file(chat.id), stored.model_dump(mode="json"))
    await upsert_index_entry(
        COLLECTION,
        IndexEntry(
            id=stored.id,
            title=stored.title,
            updated=stored.updated or stored.created or utc_now_iso(),
        ),
    )
    return stored


async def load_chat(chat_id: str) -> Chat | None:
    """Load and rehydrate a chat. Returns None if it doesn't exist."""
    stored = await read_stored_chat(chat_id)
    if stored is None:
        return None
    return await rehydrate_chat_blobs(stored)


async def delete_chat(chat_id: str) -> None:
    """Delete a chat's folder (messages, blobs, artifacts) and its index entry."""
    ensure_segment(chat_id, "chat id")
    await delete_directory(f"{COLLECTION}/{chat_id}")
    await remove_index_entry(COLLECTION, chat_id)


async def list_chats() -> list[IndexEntry]:
    """List chats from the index, most recently updated first."""
    entries = await read_index(COLLECTION)
    return sorted(entries, key=lambda e: e.updated, reverse=True)


async def find_orphaned_blobs(chat_id: str) -> list[str]:
    """
    Find blobs stored for a chat that its ``chat.json`` no longer references.

    Returns an empty list when the chat metadata can't be read, since nothing
    can be proven unreferenced in that case.
    """
    stored = await read_stored_chat(chat_id)
    if stored is None:
        logger.warning("Cannot analyze blobs for unreadable chat %s", chat_id)
        return []
    referenced = set(collect_chat_blob_ids(stored))
    return [b for b in await list_chat_blobs(chat_id) if b not in referenced]


async def clean_orphaned_blobs(chat_id: str) -> int:
    """
    Delete a chat's unreferenced blobs.

    Returns:
        Number of blobs deleted
    """
    orphans = await find_orphaned_blobs(chat_id)
    for blob_id in orphans:
        await delete_chat_blob(chat_id, blob_id)
    if orphans:
        logger.info("Removed %d orphaned blobs from chat %s", len(orphans), chat_id)
    return len(orphans)
