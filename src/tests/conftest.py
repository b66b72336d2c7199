"""Shared test fixtures and configuration."""

from __future__ import annotations

import base64
import struct
import zlib
from datetime import datetime, timezone

import pytest

from chatstore.core.types import (
    Chat,
    ImageContent,
    Message,
    TextContent,
    ToolResultContent,
)
from chatstore.storage.root import reset_root, set_root


@pytest.fixture(autouse=True)
def store_root(tmp_path):
    """Point the store at a fresh temporary root for every test."""
    root = set_root(tmp_path / "store")
    yield root
    reset_root()


def make_png(width: int = 256, height: int = 256) -> bytes:
    """Build a valid RGB PNG with a simple gradient."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        body = kind + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))

    rows = b"".join(
        b"\x00" + b"".join(bytes((x % 256, y % 256, (x + y) % 256)) for x in range(width))
        for y in range(height)
    )
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(rows))
        + chunk(b"IEND", b"")
    )


def _to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    """Encode bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


@pytest.fixture
def png_bytes() -> bytes:
    """A 256x256 PNG image."""
    return make_png()


@pytest.fixture
def png_data_url(png_bytes) -> str:
    """The PNG fixture as a data URL."""
    return _to_data_url(png_bytes)


@pytest.fixture
def sample_chat(png_bytes) -> Chat:
    """Chat with a text part, an image, and a tool result carrying an image."""
    return Chat(
        id="chat-1",
        title="Holiday plans",
        created=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc),
        updated=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        messages=[
            Message(
                role="user",
                content=[
                    TextContent(text="What is in this picture?"),
                    ImageContent(name="photo.png", data=_to_data_url(png_bytes)),
                ],
            ),
            Message(
                role="assistant",
                content=[
                    ToolResultContent(
                        id="call-1",
                        name="render",
                        result=[
                            TextContent(text="rendered"),
                            ImageContent(
                                name="chart.png",
                                data=_to_data_url(b"\x89PNG-chart"),
                            ),
                        ],
                    ),
                ],
            ),
        ],
    )
