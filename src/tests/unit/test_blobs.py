"""Tests for co-located and central blob storage."""

from pathlib import Path

import pytest

from chatstore.core.types import Blob
from chatstore.storage.blobs import (
    delete_blob,
    delete_chat_blob,
    get_blob,
    get_chat_blob,
    list_blobs,
    list_chat_blobs,
    resolve_chat_blob,
    store_blob,
    store_chat_blob,
)
from chatstore.storage.errors import InvalidPathError


class TestChatBlobs:
    """Tests for blobs stored inside a chat folder."""

    @pytest.mark.asyncio
    async def test_store_and_get(self, store_root: Path):
        """Stored blobs land in the chat's blobs folder."""
        blob_id = await store_chat_blob("c1", Blob(b"image-bytes", "image/png"))

        assert (store_root / "chats" / "c1" / "blobs" / f"{blob_id}.bin").exists()
        blob = await get_chat_blob("c1", blob_id)
        assert blob is not None
        assert blob.data == b"image-bytes"

    @pytest.mark.asyncio
    async def test_ids_are_unique(self):
        """Every store gets a fresh id."""
        first = await store_chat_blob("c1", b"same")
        second = await store_chat_blob("c1", b"same")

        assert first != second

    @pytest.mark.asyncio
    async def test_missing_blob_is_none(self):
        """Unknown blobs return None."""
        assert await get_chat_blob("c1", "nope") is None

    @pytest.mark.asyncio
    async def test_list_and_delete(self):
        """Listing returns ids without suffix; delete removes one."""
        a = await store_chat_blob("c1", b"a")
        b = await store_chat_blob("c1", b"b")

        assert sorted(await list_chat_blobs("c1")) == sorted([a, b])

        await delete_chat_blob("c1", a)

        assert await list_chat_blobs("c1") == [b]

    @pytest.mark.asyncio
    async def test_list_for_unknown_chat(self):
        """A chat without blobs lists nothing."""
        assert await list_chat_blobs("empty") == []

    @pytest.mark.asyncio
    async def test_invalid_ids_rejected(self):
        """Ids that would escape the chat folder are rejected."""
        with pytest.raises(InvalidPathError):
            await get_chat_blob("..", "x")
        with pytest.raises(InvalidPathError):
            await get_chat_blob("c1", "../../secret")


class TestCentralBlobs:
    """Tests for the central blob store."""

    @pytest.mark.asyncio
    async def test_store_get_delete(self, store_root: Path):
        """Central blobs live under blobs/."""
        blob_id = await store_blob(b"legacy")

        assert (store_root / "blobs" / f"{blob_id}.bin").exists()
        assert (await get_blob(blob_id)).data == b"legacy"
        assert await list_blobs() == [blob_id]

        await delete_blob(blob_id)

        assert await get_blob(blob_id) is None


class TestResolveChatBlob:
    """Tests for the dual-location lookup."""

    @pytest.mark.asyncio
    async def test_prefers_co_located(self):
        """The chat's own copy wins."""
        blob_id = await store_chat_blob("c1", b"local")

        assert (await resolve_chat_blob("c1", blob_id)).data == b"local"

    @pytest.mark.asyncio
    async def test_falls_back_to_central(self):
        """Blobs only in the central store are still found."""
        blob_id = await store_blob(b"central")

        assert (await resolve_chat_blob("c1", blob_id)).data == b"central"

    @pytest.mark.asyncio
    async def test_missing_everywhere(self):
        """A blob in neither place is None."""
        assert await resolve_chat_blob("c1", "ghost") is None
