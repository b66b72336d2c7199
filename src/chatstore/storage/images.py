"""Generated image persistence.

Layout::

    images/index.json
    images/{id}/metadata.json
    images/{id}/image.bin

Images saved before the folder layout live in ``images/{id}.json`` with a
``blob:{id}`` reference into the central blob store; they still load and are
cleaned up on removal.
"""

import logging

from pydantic import ValidationError

from chatstore.core.types import (
    Blob,
    Image,
    IndexEntry,
    StoredImageMeta,
    from_iso,
    to_iso,
    utc_now_iso,
)
from chatstore.storage.blobs import delete_blob, get_blob
from chatstore.storage.dataurl import (
    DEFAULT_MIME_TYPE,
    blob_to_data_url,
    data_url_to_blob,
    is_data_url,
    parse_blob_ref,
)
from chatstore.storage.fs import (
    delete_directory,
    delete_file,
    read_blob,
    read_json,
    write_blob,
    write_json,
)
from chatstore.storage.index import read_index, remove_index_entry, upsert_index_entry
from chatstore.storage.root import ensure_segment

logger = logging.getLogger(__name__)

COLLECTION = "images"
METADATA_FILE = "metadata.json"
IMAGE_FILE = "image.bin"


def _image_path(image_id: str) -> str:
    ensure_segment(image_id, "image id")
    return f"{COLLECTION}/{image_id}"


def _legacy_path(image_id: str) -> str:
    ensure_segment(image_id, "image id")
    return f"{COLLECTION}/{image_id}.json"


async def store_image(image: Image) -> None:
    """
    Store an image's bytes, metadata and index entry.

    Data URLs are decoded to raw bytes; any other payload is stored as-is.
    The bytes go down before the metadata that describes them.
    """
    image_path = _image_path(image.id)
    if is_data_url(image.data):
        blob = data_url_to_blob(image.data)
    else:
        blob = Blob(image.data.encode("utf-8"))

    await write_blob(f"{image_path}/{IMAGE_FILE}", blob)

    meta = StoredImageMeta(
        id=image.id,
        title=image.title,
        created=to_iso(image.created),
        updated=to_iso(image.updated),
        model=image.model,
        prompt=image.prompt,
        mime_type=blob.mime_type,
    )
    await write_json(f"{image_path}/{METADATA_FILE}", meta.model_dump(by_alias=True))
    await upsert_index_entry(
        COLLECTION,
        IndexEntry(
            id=image.id,
            title=image.title,
            updated=meta.updated or meta.created or utc_now_iso(),
        ),
    )


async def _load_legacy_image(image_id: str) -> Image | None:
    legacy = await read_json(_legacy_path(image_id))
    if not isinstance(legacy, dict):
        return None

    data = legacy.get("data") or ""
    blob_id = parse_blob_ref(data) if isinstance(data, str) else None
    if blob_id:
        blob = await get_blob(blob_id)
        if blob is not None:
            data = blob_to_data_url(Blob(blob.data, DEFAULT_MIME_TYPE))
        else:
            logger.warning("Blob not found: %s (image %s)", blob_id, image_id)

    try:
        return Image(
            id=legacy["id"],
            title=legacy.get("title"),
            created=from_iso(legacy.get("created")),
            updated=from_iso(legacy.get("updated")),
            model=legacy.get("model") or "",
            prompt=legacy.get("prompt") or "",
            data=data,
        )
    except (KeyError, ValidationError) as e:
        logger.error("Malformed legacy image %s: %s", image_id, e)
        return None


async def load_image(image_id: str) -> Image | None:
    """
    Load an image with its bytes as a data URL.

    Returns:
        The image, or None if neither layout has it
    """
    image_path = _image_path(image_id)
    raw = await read_json(f"{image_path}/{METADATA_FILE}")
    if raw is None:
        return await _load_legacy_image(image_id)
    try:
        meta = StoredImageMeta.model_validate(raw)
    except ValidationError as e:
        logger.error("Malformed image metadata %s: %s", image_id, e)
        return None

    blob = await read_blob(f"{image_path}/{IMAGE_FILE}")
    data = ""
    if blob is not None:
        data = blob_to_data_url(Blob(blob.data, meta.mime_type or DEFAULT_MIME_TYPE))

    return Image(
        id=meta.id,
        title=meta.title,
        created=from_iso(meta.created),
        updated=from_iso(meta.updated),
        model=meta.model,
        prompt=meta.prompt,
        data=data,
    )


async def remove_image(image_id: str) -> None:
    """Delete an image folder, any legacy document and blob, and its index entry."""
    await delete_directory(_image_path(image_id))

    legacy = await read_json(_legacy_path(image_id))
    if isinstance(legacy, dict):
        data = legacy.get("data")
        blob_id = parse_blob_ref(data) if isinstance(data, str) else None
        if blob_id:
            await delete_blob(blob_id)
        await delete_file(_legacy_path(image_id))

    await remove_index_entry(COLLECTION, image_id)


async def list_images() -> list[IndexEntry]:
    """List images from the index, most recently updated first."""
    entries = await read_index(COLLECTION)
    return sorted(entries, key=lambda e: e.updated, reverse=True)
