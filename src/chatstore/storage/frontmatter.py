"""YAML front matter parsing and writing for Markdown documents."""

import logging
import re
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _parse_lines(block: str) -> dict[str, Any]:
    """Lenient ``key: value`` parsing for blocks that aren't valid YAML."""
    fields: dict[str, Any] = {}
    for line in block.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip():
            fields[key.strip()] = _strip_quotes(value.strip())
    return fields


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """
    Split a document into its raw front matter block and the rest.

    Returns:
        (block, body) - block is None when there is no front matter
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end() :]


def parse_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """
    Parse YAML front matter from document content.

    Hand-written documents often contain unquoted colons in values; when the
    block is not valid YAML it is read as plain ``key: value`` lines instead.

    Args:
        content: Full document including front matter

    Returns:
        (frontmatter, body) - frontmatter is None if the document has none
    """
    block, body = split_frontmatter(content)
    if block is None:
        return None, content

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        logger.debug("Front matter is not valid YAML, reading as key/value lines: %s", e)
        data = _parse_lines(block)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        logger.warning("Front matter must be a mapping, got %s", type(data).__name__)
        return None, content
    return data, body


def write_frontmatter(fields: dict[str, Any]) -> str:
    """
    Write fields as a front matter block.

    Returns:
        YAML front matter string with --- delimiters and a trailing newline
    """
    dumped = yaml.safe_dump(
        fields,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=10_000,
    )
    return f"---\n{dumped}---\n"


def update_frontmatter(content: str, updates: dict[str, Any]) -> str:
    """
    Update front matter fields, leaving the body byte-for-byte unchanged.

    Raises:
        ValueError: If the document has no front matter
    """
    fields, _ = parse_frontmatter(content)
    if fields is None:
        raise ValueError("Document has no front matter")
    _, body = split_frontmatter(content)
    return write_frontmatter({**fields, **updates}) + body
