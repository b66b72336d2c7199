"""Artifact files produced inside a chat's workspace.

Artifacts are stored as real files under ``chats/{chatId}/artifacts/`` so
they keep normal path semantics. Paths given to this module are relative to
that folder; a leading ``/`` is optional on input and always present in
listings.
"""

import logging
from collections.abc import Mapping
from pathlib import PurePosixPath

from chatstore.core.types import ArtifactFile, Blob
from chatstore.storage.dataurl import blob_to_data_url, data_url_to_blob, is_data_url
from chatstore.storage.errors import InvalidPathError
from chatstore.storage.fs import (
    delete_directory,
    delete_file,
    list_files_recursive,
    read_blob,
    write_blob,
    write_text,
)
from chatstore.storage.root import ensure_segment, split_path

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".jsx": "text/javascript",
    ".ts": "text/typescript",
    ".tsx": "text/typescript",
    ".json": "application/json",
    ".md": "text/markdown",
    ".txt": "text/plain",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
    ".xml": "application/xml",
    ".yaml": "application/yaml",
    ".yml": "application/yaml",
    ".csv": "text/csv",
    ".py": "text/x-python",
    ".rb": "text/x-ruby",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".java": "text/x-java",
    ".c": "text/x-c",
    ".cpp": "text/x-c++",
    ".h": "text/x-c",
    ".hpp": "text/x-c++",
}

# Types whose bytes are not text; svg is XML and stays text
_TEXT_LIKE = {"image/svg+xml"}
_BINARY_PREFIXES = ("image/", "audio/", "video/")
_BINARY_TYPES = {"application/octet-stream", "application/pdf", "application/zip"}


def infer_content_type(path: str) -> str | None:
    """Infer a MIME type from a file extension. Returns None if unknown."""
    return CONTENT_TYPES.get(PurePosixPath(path).suffix.lower())


def is_binary_content_type(content_type: str | None) -> bool:
    """Check whether a MIME type denotes binary content."""
    if not content_type or content_type in _TEXT_LIKE:
        return False
    return content_type.startswith(_BINARY_PREFIXES) or content_type in _BINARY_TYPES


def _relative(path: str) -> str:
    parts = split_path(path)
    if not parts:
        raise InvalidPathError("Artifact path is empty")
    return "/".join(parts)


def _artifacts_root(chat_id: str) -> str:
    ensure_segment(chat_id, "chat id")
    return f"chats/{chat_id}/artifacts"


def _artifact_path(chat_id: str, path: str) -> str:
    return f"{_artifacts_root(chat_id)}/{_relative(path)}"


def _binary_content(data: bytes, content_type: str) -> str:
    # Files written before data URLs were decoded hold the data URL as text
    if data.startswith(b"data:"):
        text = data.decode("ascii", errors="replace")
        if is_data_url(text):
            return text
    return blob_to_data_url(Blob(data, content_type))


async def write_artifact(
    chat_id: str,
    path: str,
    content: str,
    content_type: str | None = None,
) -> None:
    """
    Write an artifact file.

    Binary content given as a data URL is decoded and written as raw bytes;
    everything else is written as text. Without an explicit content type the
    extension decides, the same way reading does.

    Args:
        chat_id: Owning chat
        path: Artifact path, leading slash optional
        content: Text, or a data URL for binary content
        content_type: Optional MIME type of the content
    """
    full_path = _artifact_path(chat_id, path)
    content_type = content_type or infer_content_type(path)
    if is_binary_content_type(content_type) and is_data_url(content):
        await write_blob(full_path, data_url_to_blob(content))
    else:
        await write_text(full_path, content)


async def read_artifact(chat_id: str, path: str) -> ArtifactFile | None:
    """
    Read an artifact file.

    The content type is inferred from the extension. Binary files come back
    as a data URL, text files as text.

    Returns:
        The artifact, or None if it doesn't exist
    """
    blob = await read_blob(_artifact_path(chat_id, path))
    if blob is None:
        return None

    content_type = infer_content_type(path)
    if is_binary_content_type(content_type):
        content = _binary_content(blob.data, content_type or "")
    else:
        content = blob.data.decode("utf-8", errors="replace")
    return ArtifactFile(path="/" + _relative(path), content=content, content_type=content_type)


async def delete_artifact(chat_id: str, path: str) -> None:
    """Delete an artifact file."""
    await delete_file(_artifact_path(chat_id, path))


async def delete_artifact_folder(chat_id: str, path: str) -> None:
    """Delete a folder of artifacts and everything below it."""
    await delete_directory(_artifact_path(chat_id, path))


async def rename_artifact(chat_id: str, old_path: str, new_path: str) -> bool:
    """
    Move an artifact to a new path, keeping its bytes untouched.

    Returns:
        True if moved, False if the source doesn't exist
    """
    source = _artifact_path(chat_id, old_path)
    target = _artifact_path(chat_id, new_path)
    if source == target:
        return True
    blob = await read_blob(source)
    if blob is None:
        return False
    await write_blob(target, blob)
    await delete_file(source)
    return True


async def list_artifacts(chat_id: str) -> list[str]:
    """List every artifact path for a chat, each starting with ``/``."""
    return ["/" + p for p in await list_files_recursive(_artifacts_root(chat_id))]


async def load_artifacts(chat_id: str) -> dict[str, ArtifactFile]:
    """Load all of a chat's artifacts keyed by path."""
    artifacts = {}
    for path in await list_artifacts(chat_id):
        artifact = await read_artifact(chat_id, path)
        if artifact is not None:
            artifacts[path] = artifact
    return artifacts


async def save_artifacts(chat_id: str, artifacts: Mapping[str, ArtifactFile]) -> None:
    """Write every artifact in a path-keyed mapping."""
    for path, artifact in artifacts.items():
        await write_artifact(chat_id, path, artifact.content, artifact.content_type)
