"""Tests for chat artifact files."""

import base64
from pathlib import Path

import pytest

from chatstore.core.types import ArtifactFile
from chatstore.storage.artifacts import (
    delete_artifact,
    delete_artifact_folder,
    infer_content_type,
    is_binary_content_type,
    list_artifacts,
    load_artifacts,
    read_artifact,
    rename_artifact,
    save_artifacts,
    write_artifact,
)
from chatstore.storage.errors import InvalidPathError


class TestContentTypes:
    """Tests for content type helpers."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/index.html", "text/html"),
            ("src/App.TSX", "text/typescript"),
            ("logo.svg", "image/svg+xml"),
            ("photo.jpeg", "image/jpeg"),
            ("README", None),
            ("archive.unknown", None),
        ],
    )
    def test_infer_content_type(self, path, expected):
        """Content types are inferred from the extension."""
        assert infer_content_type(path) == expected

    @pytest.mark.parametrize(
        "content_type,expected",
        [
            ("image/png", True),
            ("audio/mpeg", True),
            ("application/pdf", True),
            ("image/svg+xml", False),
            ("text/html", False),
            (None, False),
        ],
    )
    def test_is_binary_content_type(self, content_type, expected):
        """Images, audio, video and known binary types are binary; svg is text."""
        assert is_binary_content_type(content_type) is expected


class TestReadWrite:
    """Tests for writing and reading artifacts."""

    @pytest.mark.asyncio
    async def test_text_round_trip(self, store_root: Path):
        """Text artifacts are stored as real files."""
        await write_artifact("c1", "/src/app.js", "console.log(1)")

        assert (store_root / "chats" / "c1" / "artifacts" / "src" / "app.js").read_text() == (
            "console.log(1)"
        )
        artifact = await read_artifact("c1", "src/app.js")
        assert artifact == ArtifactFile(
            path="/src/app.js", content="console.log(1)", content_type="text/javascript"
        )

    @pytest.mark.asyncio
    async def test_binary_data_url_written_as_bytes(
        self, store_root: Path, png_bytes: bytes, png_data_url: str
    ):
        """Binary data URLs are decoded before writing and re-encoded on read."""
        await write_artifact("c1", "/img/logo.png", png_data_url, "image/png")

        on_disk = store_root / "chats" / "c1" / "artifacts" / "img" / "logo.png"
        assert on_disk.read_bytes() == png_bytes

        artifact = await read_artifact("c1", "/img/logo.png")
        assert artifact is not None
        assert artifact.content.startswith("data:image/png;base64,")
        assert base64.b64decode(artifact.content.split(",", 1)[1]) == png_bytes

    @pytest.mark.asyncio
    async def test_binary_extension_decoded_without_content_type(
        self, store_root: Path, png_bytes: bytes, png_data_url: str
    ):
        """Without a content type the extension decides, so the bytes land on disk."""
        await write_artifact("c1", "logo.png", png_data_url)

        on_disk = store_root / "chats" / "c1" / "artifacts" / "logo.png"
        assert on_disk.read_bytes() == png_bytes
        assert (await read_artifact("c1", "logo.png")).content == png_data_url

    @pytest.mark.asyncio
    async def test_data_url_text_on_disk_returned_unchanged(self, store_root: Path):
        """A binary file holding data URL text is not encoded a second time."""
        data_url = "data:image/png;base64,iVBOR2FiYw=="
        folder = store_root / "chats" / "c1" / "artifacts"
        folder.mkdir(parents=True)
        (folder / "old.png").write_text(data_url)

        assert (await read_artifact("c1", "old.png")).content == data_url

    @pytest.mark.asyncio
    async def test_plain_text_with_binary_type_read_as_bytes(self):
        """Content that is not a data URL is stored verbatim and read back encoded."""
        await write_artifact("c1", "raw.png", "not encoded", "image/png")

        artifact = await read_artifact("c1", "raw.png")
        assert base64.b64decode(artifact.content.split(",", 1)[1]) == b"not encoded"

    @pytest.mark.asyncio
    async def test_read_missing(self):
        """Missing artifacts read as None."""
        assert await read_artifact("c1", "/nope.txt") is None

    @pytest.mark.asyncio
    async def test_escaping_path_rejected(self):
        """Artifact paths cannot leave the artifacts folder."""
        with pytest.raises(InvalidPathError):
            await write_artifact("c1", "../chat.json", "{}")
        with pytest.raises(InvalidPathError):
            await write_artifact("c1", "/", "x")


class TestManagement:
    """Tests for listing, renaming and deleting artifacts."""

    @pytest.mark.asyncio
    async def test_list_with_leading_slash(self):
        """Listings are relative to the artifacts folder with a leading slash."""
        await write_artifact("c1", "index.html", "<html>")
        await write_artifact("c1", "css/site.css", "body{}")

        assert await list_artifacts("c1") == ["/index.html", "/css/site.css"]

    @pytest.mark.asyncio
    async def test_list_empty(self):
        """A chat without artifacts lists nothing."""
        assert await list_artifacts("c1") == []

    @pytest.mark.asyncio
    async def test_rename(self):
        """Renaming moves the bytes and removes the old path."""
        await write_artifact("c1", "old.md", "# Title")

        assert await rename_artifact("c1", "old.md", "docs/new.md") is True

        assert await read_artifact("c1", "old.md") is None
        assert (await read_artifact("c1", "docs/new.md")).content == "# Title"

    @pytest.mark.asyncio
    async def test_rename_missing(self):
        """Renaming a missing artifact reports False."""
        assert await rename_artifact("c1", "ghost.md", "new.md") is False

    @pytest.mark.asyncio
    async def test_delete_file_and_folder(self):
        """Files and whole folders can be deleted."""
        await write_artifact("c1", "a.txt", "a")
        await write_artifact("c1", "lib/b.txt", "b")
        await write_artifact("c1", "lib/deep/c.txt", "c")

        await delete_artifact("c1", "/a.txt")
        await delete_artifact_folder("c1", "/lib")

        assert await list_artifacts("c1") == []

    @pytest.mark.asyncio
    async def test_save_and_load_mapping(self):
        """A path-keyed mapping is written and loaded back."""
        artifacts = {
            "/index.html": ArtifactFile("/index.html", "<p>hi</p>", "text/html"),
            "/data.json": ArtifactFile("/data.json", '{"a": 1}', "application/json"),
        }

        await save_artifacts("c1", artifacts)
        loaded = await load_artifacts("c1")

        assert loaded == artifacts

    @pytest.mark.asyncio
    async def test_save_and_load_binary_without_content_type(self, png_data_url: str):
        """A binary artifact saved without a content type loads back unchanged."""
        await save_artifacts(
            "c1", {"/pic.png": ArtifactFile(path="/pic.png", content=png_data_url)}
        )

        loaded = await load_artifacts("c1")

        assert loaded["/pic.png"].content == png_data_url
        assert loaded["/pic.png"].content_type == "image/png"
