"""Tests for data URL and blob reference helpers."""

import pytest

from chatstore.core.types import Blob
from chatstore.storage.dataurl import (
    blob_to_data_url,
    create_blob_ref,
    data_url_to_blob,
    is_blob_ref,
    is_data_url,
    parse_blob_ref,
)


class TestPredicates:
    """Tests for is_data_url and is_blob_ref."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("data:image/png;base64,AAAA", True),
            ("blob:abc", False),
            ("https://example.com/x.png", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_data_url(self, value, expected):
        """Only data: strings are data URLs."""
        assert is_data_url(value) is expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("blob:3f2a-11ee_b", True),
            ("blob:", False),
            ("blob:http://localhost/abc", False),
            ("data:text/plain,hi", False),
            (42, False),
        ],
    )
    def test_is_blob_ref(self, value, expected):
        """Only blob: followed by a plain id is a reference."""
        assert is_blob_ref(value) is expected


class TestBlobRefs:
    """Tests for creating and parsing blob references."""

    def test_create_and_parse(self):
        """A created reference parses back to its id."""
        ref = create_blob_ref("abc-123")

        assert ref == "blob:abc-123"
        assert parse_blob_ref(ref) == "abc-123"

    def test_parse_non_ref(self):
        """Strings that aren't references parse to None."""
        assert parse_blob_ref("hello") is None


class TestDataUrlConversion:
    """Tests for data_url_to_blob and blob_to_data_url."""

    def test_decode_base64(self):
        """Base64 payloads decode with their MIME type."""
        blob = data_url_to_blob("data:image/png;base64,iVBORw0KGgo=")

        assert blob.mime_type == "image/png"
        assert blob.data == b"\x89PNG\r\n\x1a\n"

    def test_decode_missing_padding(self):
        """Unpadded base64 is accepted."""
        assert data_url_to_blob("data:text/plain;base64,aGk").data == b"hi"

    def test_decode_percent_encoded(self):
        """Non-base64 payloads are percent-decoded."""
        blob = data_url_to_blob("data:text/plain,hello%20world")

        assert blob.data == b"hello world"
        assert blob.mime_type == "text/plain"

    def test_default_mime_type(self):
        """A data URL without a MIME type gets the octet-stream default."""
        blob = data_url_to_blob("data:;base64,AAEC")

        assert blob.mime_type == "application/octet-stream"
        assert blob.data == b"\x00\x01\x02"

    @pytest.mark.parametrize(
        "value",
        ["not a data url", "data:image/png;base64", "data:image/png;base64,@@@@"],
    )
    def test_invalid_raises(self, value):
        """Undecodable input raises ValueError."""
        with pytest.raises(ValueError):
            data_url_to_blob(value)

    def test_encode(self):
        """Blobs encode as base64 data URLs."""
        url = blob_to_data_url(Blob(b"hi", "text/plain"))

        assert url == "data:text/plain;base64,aGk="

    def test_binary_survives_conversion(self):
        """Arbitrary bytes survive encoding and decoding."""
        payload = bytes(range(256))

        blob = data_url_to_blob(blob_to_data_url(Blob(payload, "audio/wav")))

        assert blob.data == payload
        assert blob.mime_type == "audio/wav"
