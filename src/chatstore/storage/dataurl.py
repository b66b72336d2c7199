"""Conversions between data URLs, blob references and blobs."""

import base64
import binascii
import re
from urllib.parse import unquote_to_bytes

from chatstore.core.types import Blob

DATA_URL_PREFIX = "data:"
BLOB_REF_PREFIX = "blob:"
DEFAULT_MIME_TYPE = "application/octet-stream"

_BLOB_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def is_data_url(value: object) -> bool:
    """Check if a value is a data URL."""
    return isinstance(value, str) and value.startswith(DATA_URL_PREFIX)


def is_blob_ref(value: object) -> bool:
    """Check if a value is a reference to a stored blob."""
    return isinstance(value, str) and parse_blob_ref(value) is not None


def create_blob_ref(blob_id: str) -> str:
    """Create a ``blob:{id}`` reference string."""
    return f"{BLOB_REF_PREFIX}{blob_id}"


def parse_blob_ref(ref: str) -> str | None:
    """
    Extract the blob id from a reference.

    Strings that merely start with ``blob:`` but carry something other than
    a plain identifier (browser object URLs, for instance) are not refs.

    Returns:
        The blob id, or None if ref is not a blob reference
    """
    if not ref.startswith(BLOB_REF_PREFIX):
        return None
    blob_id = ref[len(BLOB_REF_PREFIX) :]
    if not _BLOB_ID_RE.match(blob_id):
        return None
    return blob_id


def data_url_to_blob(data_url: str) -> Blob:
    """
    Decode a data URL into a blob.

    Raises:
        ValueError: If the string is not a decodable data URL
    """
    if not is_data_url(data_url):
        raise ValueError("Not a data URL")
    header, sep, payload = data_url.partition(",")
    if not sep:
        raise ValueError("Data URL has no payload separator")

    params = header[len(DATA_URL_PREFIX) :].split(";")
    mime_type = params[0].strip() or DEFAULT_MIME_TYPE

    if "base64" in (p.strip().lower() for p in params[1:]):
        payload = "".join(payload.split())
        payload += "=" * (-len(payload) % 4)
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
    else:
        data = unquote_to_bytes(payload)
    return Blob(data=data, mime_type=mime_type)


def blob_to_data_url(blob: Blob) -> str:
    """Encode a blob as a base64 data URL."""
    encoded = base64.b64encode(blob.data).decode("ascii")
    return f"data:{blob.mime_type or DEFAULT_MIME_TYPE};base64,{encoded}"
