"""Storage layer for chatstore - a sandboxed tree of JSON and binary files.

Everything lives under one root directory:
- ``chats/{id}/`` holds ``chat.json``, co-located ``blobs/`` and ``artifacts/``
- ``repositories/{id}/`` holds repository metadata and per-file embeddings
- ``skills/{name}/SKILL.md`` holds skill documents
- ``images/{id}/`` holds generated images
Each collection keeps an ``index.json`` for listing, rebuildable from disk.
"""

from chatstore.storage.archive import (
    export_folder_as_zip,
    export_folder_to_file,
    import_folder_from_zip,
)
from chatstore.storage.chats import (
    delete_chat,
    extract_chat_blobs,
    list_chats,
    load_chat,
    rehydrate_chat_blobs,
    save_chat,
)
from chatstore.storage.errors import (
    ArchiveError,
    InvalidPathError,
    InvalidSkillError,
    StorageError,
)
from chatstore.storage.images import list_images, load_image, remove_image, store_image
from chatstore.storage.index import (
    read_index,
    rebuild_folder_index,
    remove_index_entry,
    upsert_index_entry,
)
from chatstore.storage.repositories import (
    list_repositories,
    load_repository,
    remove_repository,
    store_repository,
)
from chatstore.storage.root import get_root, reset_root, set_root
from chatstore.storage.skills import delete_skill, load_all_skills, load_skill, save_skill

__all__ = [
    "export_folder_as_zip",
    "export_folder_to_file",
    "import_folder_from_zip",
    "delete_chat",
    "extract_chat_blobs",
    "list_chats",
    "load_chat",
    "rehydrate_chat_blobs",
    "save_chat",
    "ArchiveError",
    "InvalidPathError",
    "InvalidSkillError",
    "StorageError",
    "list_images",
    "load_image",
    "remove_image",
    "store_image",
    "read_index",
    "rebuild_folder_index",
    "remove_index_entry",
    "upsert_index_entry",
    "list_repositories",
    "load_repository",
    "remove_repository",
    "store_repository",
    "get_root",
    "reset_root",
    "set_root",
    "delete_skill",
    "load_all_skills",
    "load_skill",
    "save_skill",
]
