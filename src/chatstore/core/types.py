"""Shared types and data structures for chatstore."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

__all__ = [
    "ArtifactFile",
    "AudioContent",
    "Blob",
    "Chat",
    "Content",
    "FileContent",
    "Image",
    "ImageContent",
    "IndexEntry",
    "Message",
    "MessageError",
    "ModelRef",
    "ParsedSkill",
    "ReasoningContent",
    "Repository",
    "RepositoryFile",
    "Segment",
    "Skill",
    "SkillParseResult",
    "SkillValidationError",
    "StorageEntry",
    "StorageUsage",
    "StoredChat",
    "StoredFileMeta",
    "StoredImageMeta",
    "StoredMessage",
    "StoredRepositoryMeta",
    "TextContent",
    "ToolCallContent",
    "ToolResultContent",
    "from_iso",
    "to_iso",
    "utc_now_iso",
]


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def to_iso(value: datetime | str | None) -> str | None:
    """Serialize a timestamp, passing strings through unchanged."""
    if value is None or isinstance(value, str):
        return value or None
    return value.isoformat()


def from_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp, returning None for missing or bad input."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Unparseable timestamp: %r", value)
        return None


# --- Binary payloads ---


@dataclass(frozen=True)
class Blob:
    """Opaque binary payload with its MIME type."""

    data: bytes
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


# --- Message content ---


class _ContentPart(BaseModel):
    # Unknown fields written by other clients survive a load/save cycle.
    model_config = ConfigDict(extra="allow")


class TextContent(_ContentPart):
    """Plain text part."""

    type: Literal["text"] = "text"
    text: str = ""


class ReasoningContent(_ContentPart):
    """Model reasoning part."""

    type: Literal["reasoning"] = "reasoning"
    text: str = ""


class ToolCallContent(_ContentPart):
    """Tool invocation requested by the assistant."""

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: str = ""


class ImageContent(_ContentPart):
    """Image part. ``data`` is a data URL in memory and a blob ref on disk."""

    type: Literal["image"] = "image"
    name: str | None = None
    data: str = ""


class AudioContent(_ContentPart):
    """Audio part. ``data`` is a data URL in memory and a blob ref on disk."""

    type: Literal["audio"] = "audio"
    name: str | None = None
    data: str = ""


class FileContent(_ContentPart):
    """File part. ``data`` is a data URL in memory and a blob ref on disk."""

    type: Literal["file"] = "file"
    name: str | None = None
    data: str = ""


class ToolResultContent(_ContentPart):
    """Result of a tool call; may itself carry images and files."""

    type: Literal["tool_result"] = "tool_result"
    id: str
    name: str
    arguments: str = ""
    result: list[Content] = Field(default_factory=list)


Content = Annotated[
    Union[
        TextContent,
        ReasoningContent,
        ToolCallContent,
        ToolResultContent,
        ImageContent,
        AudioContent,
        FileContent,
    ],
    Field(discriminator="type"),
]

ToolResultContent.model_rebuild()

BlobContent = ImageContent | AudioContent | FileContent


# --- Chats ---


class MessageError(BaseModel):
    """Error attached to a failed message."""

    code: str
    message: str


class ModelRef(BaseModel):
    """Model a chat was held with."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""


class Message(BaseModel):
    """Chat message with inline data URLs."""

    role: Literal["user", "assistant"]
    content: list[Content] = Field(default_factory=list)
    error: MessageError | None = None


class StoredMessage(BaseModel):
    """Chat message as persisted, with blob references in place of data."""

    role: Literal["user", "assistant"]
    content: list[Content] = Field(default_factory=list)
    error: MessageError | None = None


class Chat(BaseModel):
    """In-memory chat."""

    id: str
    title: str | None = None
    created: datetime | None = None
    updated: datetime | None = None
    model: ModelRef | None = None
    messages: list[Message] = Field(default_factory=list)


class StoredChat(BaseModel):
    """Contents of ``chats/{id}/chat.json``."""

    id: str
    title: str | None = None
    created: str | None = None
    updated: str | None = None
    model: ModelRef | None = None
    messages: list[StoredMessage] = Field(default_factory=list)


# --- Collection index ---


class IndexEntry(BaseModel):
    """One row of a collection's ``index.json``."""

    id: str
    title: str | None = None
    updated: str

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class StorageEntry:
    """A stored file and its size in bytes."""

    path: str
    size: int


@dataclass(frozen=True)
class StorageUsage:
    """Result of a full-tree usage scan."""

    total_size: int
    entries: list[StorageEntry] = field(default_factory=list)


# --- Repositories ---

FileStatus = Literal["pending", "processing", "completed", "error"]


class Segment(BaseModel):
    """A chunk of extracted text and its embedding."""

    text: str
    vector: list[float]


class RepositoryFile(BaseModel):
    """A document in a repository."""

    id: str
    name: str
    status: FileStatus = "pending"
    progress: float = 0
    text: str | None = None
    segments: list[Segment] | None = None
    error: str | None = None
    uploaded_at: datetime


class Repository(BaseModel):
    """A document collection with embeddings."""

    id: str
    name: str
    embedder: str
    instructions: str | None = None
    created_at: datetime
    updated_at: datetime
    files: list[RepositoryFile] | None = None


class StoredRepositoryMeta(BaseModel):
    """Contents of ``repositories/{id}/repository.json``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    embedder: str
    instructions: str | None = None
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class StoredFileMeta(BaseModel):
    """Contents of ``repositories/{id}/files/{fileId}/metadata.json``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    status: FileStatus = "pending"
    progress: float = 0
    error: str | None = None
    uploaded_at: str = Field(alias="uploadedAt")
    has_text: bool = Field(default=False, alias="hasText")
    has_vectors: bool = Field(default=False, alias="hasVectors")
    segment_count: int = Field(default=0, alias="segmentCount")


# --- Images ---


class Image(BaseModel):
    """A generated image."""

    id: str
    title: str | None = None
    created: datetime | None = None
    updated: datetime | None = None
    model: str = ""
    prompt: str = ""
    data: str = ""


class StoredImageMeta(BaseModel):
    """Contents of ``images/{id}/metadata.json``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str | None = None
    created: str | None = None
    updated: str | None = None
    model: str = ""
    prompt: str = ""
    mime_type: str | None = Field(default=None, alias="mimeType")


# --- Skills ---


class Skill(BaseModel):
    """A named, enableable capability bundle."""

    id: str
    name: str
    description: str
    content: str = ""
    enabled: bool = True


@dataclass(frozen=True)
class ParsedSkill:
    """Fields read from a SKILL.md document."""

    name: str
    description: str
    content: str
    enabled: bool = True


@dataclass(frozen=True)
class SkillValidationError:
    """A single problem found while parsing a SKILL.md document."""

    field: str
    message: str


@dataclass(frozen=True)
class SkillParseResult:
    """Either a parsed skill or the errors that prevented parsing."""

    skill: ParsedSkill | None = None
    errors: list[SkillValidationError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.skill is not None and not self.errors


# --- Artifacts ---


@dataclass(frozen=True)
class ArtifactFile:
    """A file in a chat's artifact workspace."""

    path: str
    content: str
    content_type: str | None = None
