"""chatstore core - configuration, data model and save scheduling."""

from chatstore.core.scheduler import SaveScheduler
from chatstore.core.types import (
    Blob,
    Chat,
    Content,
    Image,
    IndexEntry,
    Message,
    Repository,
    RepositoryFile,
    Segment,
    Skill,
    StoredChat,
    StoredMessage,
)

__all__ = [
    "SaveScheduler",
    "Blob",
    "Chat",
    "Content",
    "Image",
    "IndexEntry",
    "Message",
    "Repository",
    "RepositoryFile",
    "Segment",
    "Skill",
    "StoredChat",
    "StoredMessage",
]
