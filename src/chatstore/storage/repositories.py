"""Repository persistence: document collections with embeddings.

Layout::

    repositories/index.json
    repositories/{id}/repository.json
    repositories/{id}/files/{fileId}/metadata.json
    repositories/{id}/files/{fileId}/content.txt      (optional)
    repositories/{id}/files/{fileId}/segments.json    (optional)
    repositories/{id}/files/{fileId}/embeddings.bin   (optional)

``embeddings.bin`` is a little-endian float32 buffer: element 0 is the
vector dimension, followed by ``segmentCount * dim`` floats. Segment ``i``
occupies ``[1 + i*dim, 1 + (i+1)*dim)``.
"""

import logging
from collections.abc import Sequence

import numpy as np
from pydantic import ValidationError

from chatstore.core.types import (
    IndexEntry,
    Repository,
    RepositoryFile,
    Segment,
    StoredFileMeta,
    StoredRepositoryMeta,
    to_iso,
)
from chatstore.storage.fs import (
    delete_directory,
    delete_file,
    list_directories,
    read_blob,
    read_json,
    read_text,
    write_blob,
    write_json,
    write_text,
)
from chatstore.storage.index import read_index, remove_index_entry, upsert_index_entry
from chatstore.storage.root import ensure_segment

logger = logging.getLogger(__name__)

COLLECTION = "repositories"
REPOSITORY_FILE = "repository.json"

_FLOAT32 = np.dtype("<f4")


def pack_embeddings(vectors: Sequence[Sequence[float]] | np.ndarray) -> bytes:
    """
    Pack equal-length vectors into the ``[dim, vec0..., vec1..., ...]`` layout.

    Raises:
        ValueError: If the vectors are empty or of differing lengths
    """
    matrix = np.asarray(vectors, dtype=_FLOAT32)
    if matrix.ndim != 2 or matrix.shape[0] == 0 or matrix.shape[1] == 0:
        raise ValueError("Embeddings must be a non-empty list of equal-length vectors")
    header = np.array([matrix.shape[1]], dtype=_FLOAT32)
    return np.concatenate([header, matrix.ravel()]).tobytes()


def unpack_embeddings(data: bytes, count: int) -> np.ndarray:
    """
    Unpack ``count`` vectors from a packed embeddings buffer.

    A truncated buffer yields as many whole vectors as it holds. A buffer
    with an unusable dimension header yields none.

    Returns:
        Array of shape ``(n, dim)`` with ``n <= count``
    """
    usable = len(data) - len(data) % _FLOAT32.itemsize
    if usable != len(data):
        logger.warning("Embeddings buffer has %d trailing bytes", len(data) - usable)
    floats = np.frombuffer(data[:usable], dtype=_FLOAT32)
    if floats.size == 0:
        return np.empty((0, 0), dtype=_FLOAT32)

    dim = int(floats[0]) if np.isfinite(floats[0]) else 0
    if dim <= 0:
        logger.warning("Embeddings buffer has invalid dimension %s", floats[0])
        return np.empty((0, 0), dtype=_FLOAT32)

    available = (floats.size - 1) // dim
    if available < count:
        logger.warning("Embeddings buffer holds %d of %d vectors", available, count)
    n = min(count, available)
    return floats[1 : 1 + n * dim].reshape(n, dim)


def _repo_path(repo_id: str) -> str:
    ensure_segment(repo_id, "repository id")
    return f"{COLLECTION}/{repo_id}"


def _file_path(repo_id: str, file_id: str) -> str:
    ensure_segment(file_id, "file id")
    return f"{_repo_path(repo_id)}/files/{file_id}"


async def store_repository_file(repo_id: str, file: RepositoryFile) -> None:
    """
    Store one repository file.

    Text, segment texts and vectors are written before ``metadata.json`` so
    the metadata never advertises data that isn't on disk yet.
    """
    file_path = _file_path(repo_id, file.id)
    has_text = bool(file.text)
    has_vectors = bool(file.segments)

    if has_text:
        await write_text(f"{file_path}/content.txt", file.text or "")
    else:
        await delete_file(f"{file_path}/content.txt")

    if has_vectors and file.segments:
        await write_json(f"{file_path}/segments.json", [s.text for s in file.segments])
        await write_blob(
            f"{file_path}/embeddings.bin",
            pack_embeddings([s.vector for s in file.segments]),
        )
    else:
        await delete_file(f"{file_path}/segments.json")
        await delete_file(f"{file_path}/embeddings.bin")

    meta = StoredFileMeta(
        id=file.id,
        name=file.name,
        status=file.status,
        progress=file.progress,
        error=file.error,
        uploaded_at=to_iso(file.uploaded_at) or "",
        has_text=has_text,
        has_vectors=has_vectors,
        segment_count=len(file.segments or []),
    )
    await write_json(f"{file_path}/metadata.json", meta.model_dump(by_alias=True))


async def store_repository(repo: Repository) -> None:
    """Store a repository, all of its files, and its index entry."""
    for file in repo.files or []:
        await store_repository_file(repo.id, file)

    meta = StoredRepositoryMeta(
        id=repo.id,
        name=repo.name,
        embedder=repo.embedder,
        instructions=repo.instructions,
        created_at=to_iso(repo.created_at) or "",
        updated_at=to_iso(repo.updated_at) or "",
    )
    await write_json(
        f"{_repo_path(repo.id)}/{REPOSITORY_FILE}", meta.model_dump(by_alias=True)
    )
    await upsert_index_entry(
        COLLECTION, IndexEntry(id=repo.id, title=repo.name, updated=meta.updated_at)
    )


async def _load_segments(file_path: str, count: int) -> list[Segment] | None:
    texts = await read_json(f"{file_path}/segments.json")
    blob = await read_blob(f"{file_path}/embeddings.bin")
    if not isinstance(texts, list) or blob is None:
        logger.warning("Segments missing for %s", file_path)
        return None

    vectors = unpack_embeddings(blob.data, count)
    return [
        Segment(
            text=str(texts[i]) if i < len(texts) else "",
            vector=vectors[i].tolist(),
        )
        for i in range(len(vectors))
    ]


async def load_repository_file(repo_id: str, file_id: str) -> RepositoryFile | None:
    """Load one repository file with its text and segments."""
    file_path = _file_path(repo_id, file_id)
    raw = await read_json(f"{file_path}/metadata.json")
    if raw is None:
        return None
    try:
        meta = StoredFileMeta.model_validate(raw)
    except ValidationError as e:
        logger.error("Malformed file metadata %s: %s", file_path, e)
        return None

    text = await read_text(f"{file_path}/content.txt") if meta.has_text else None
    segments = None
    if meta.has_vectors and meta.segment_count > 0:
        segments = await _load_segments(file_path, meta.segment_count)

    try:
        return RepositoryFile(
            id=meta.id,
            name=meta.name,
            status=meta.status,
            progress=meta.progress,
            error=meta.error,
            uploaded_at=meta.uploaded_at,
            text=text,
            segments=segments,
        )
    except ValidationError as e:
        logger.error("Malformed file metadata %s: %s", file_path, e)
        return None


async def _load_legacy_repository(repo_id: str) -> Repository | None:
    raw = await read_json(f"{COLLECTION}/{repo_id}.json")
    if raw is None:
        return None
    try:
        data = {
            "id": raw["id"],
            "name": raw["name"],
            "embedder": raw["embedder"],
            "instructions": raw.get("instructions"),
            "created_at": raw["createdAt"],
            "updated_at": raw["updatedAt"],
            "files": [
                {**f, "uploaded_at": f.get("uploadedAt")} for f in raw.get("files") or []
            ]
            or None,
        }
        return Repository.model_validate(data)
    except (KeyError, TypeError, AttributeError, ValidationError) as e:
        logger.error("Malformed legacy repository %s: %s", repo_id, e)
        return None


async def load_repository(repo_id: str) -> Repository | None:
    """
    Load a repository and all of its files.

    Falls back to the older single-document ``repositories/{id}.json``
    format; such repositories move to the folder layout on their next save.
    """
    repo_path = _repo_path(repo_id)
    raw = await read_json(f"{repo_path}/{REPOSITORY_FILE}")
    if raw is None:
        return await _load_legacy_repository(repo_id)
    try:
        meta = StoredRepositoryMeta.model_validate(raw)
    except ValidationError as e:
        logger.error("Malformed repository %s: %s", repo_id, e)
        return None

    files = []
    for file_id in await list_directories(f"{repo_path}/files"):
        file = await load_repository_file(repo_id, file_id)
        if file:
            files.append(file)

    try:
        return Repository(
            id=meta.id,
            name=meta.name,
            embedder=meta.embedder,
            instructions=meta.instructions,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
            files=files or None,
        )
    except ValidationError as e:
        logger.error("Malformed repository %s: %s", repo_id, e)
        return None


async def remove_repository(repo_id: str) -> None:
    """Delete a repository folder, any legacy document, and its index entry."""
    await delete_directory(_repo_path(repo_id))
    await delete_file(f"{COLLECTION}/{repo_id}.json")
    await remove_index_entry(COLLECTION, repo_id)


async def remove_repository_file(repo_id: str, file_id: str) -> None:
    """Delete a single file from a repository."""
    await delete_directory(_file_path(repo_id, file_id))


async def list_repositories() -> list[IndexEntry]:
    """List repositories from the index, most recently updated first."""
    entries = await read_index(COLLECTION)
    return sorted(entries, key=lambda e: e.updated, reverse=True)
