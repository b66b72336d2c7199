"""Upgrade of chats written in older message formats.

Older chats stored media as separate ``mimeType`` + base64 ``data`` fields,
kept attachments in an ``attachments`` list, put tool traffic in
``toolCalls``/``toolResult`` and used a ``tool`` role. These helpers rewrite
raw chat JSON into the current content-list shape. Already current data
passes through unchanged.
"""

from typing import Any

from chatstore.storage.dataurl import is_blob_ref, is_data_url

_MEDIA_TYPES = ("image", "audio", "file")
_ATTACHMENT_TYPES = {
    "image_data": "image",
    "image": "image",
    "file_data": "file",
    "file": "file",
}


def _to_data_url(mime_type: str, data: str) -> str:
    if is_data_url(data) or is_blob_ref(data):
        return data
    return f"data:{mime_type};base64,{data}"


def migrate_content_part(part: Any) -> Any:
    """Migrate a single content part, recursing into tool results."""
    if not isinstance(part, dict):
        return part

    part_type = part.get("type")
    if part_type in _MEDIA_TYPES and part.get("mimeType"):
        data = part.get("data", "")
        if is_blob_ref(data):
            # Stored reference: keep mimeType, it tells rehydration the type
            return part
        return {
            "type": part_type,
            "name": part.get("name"),
            "data": _to_data_url(part["mimeType"], data),
        }
    if part_type == "tool_result" and isinstance(part.get("result"), list):
        return {**part, "result": [migrate_content_part(r) for r in part["result"]]}
    return part


def _role(msg: dict[str, Any]) -> Any:
    return "user" if msg.get("role") == "tool" else msg.get("role")


def migrate_message(msg: Any) -> Any:
    """Migrate one message to the content-list format."""
    if not isinstance(msg, dict):
        return msg

    content = msg.get("content")
    if isinstance(content, list) and not msg.get("attachments"):
        return {
            **msg,
            "role": _role(msg),
            "content": [migrate_content_part(p) for p in content],
        }

    parts: list[Any] = []
    if isinstance(content, str) and content:
        parts.append({"type": "text", "text": content})
    elif isinstance(content, list):
        parts.extend(migrate_content_part(p) for p in content)

    for att in msg.get("attachments") or []:
        kind = _ATTACHMENT_TYPES.get(att.get("type"))
        if kind:
            parts.append({"type": kind, "name": att.get("name"), "data": att.get("data", "")})
        elif att.get("type") == "text":
            parts.append({"type": "text", "text": f"// {att.get('name')}\n{att.get('data', '')}"})

    for tc in msg.get("toolCalls") or []:
        parts.append(
            {
                "type": "tool_call",
                "id": tc.get("id"),
                "name": tc.get("name"),
                "arguments": tc.get("arguments", ""),
            }
        )

    tool_result = msg.get("toolResult")
    if tool_result:
        data = tool_result.get("data")
        if isinstance(data, str):
            result = [{"type": "text", "text": data}]
        elif isinstance(data, list):
            result = [migrate_content_part(r) for r in data]
        else:
            result = []
        parts.append(
            {
                "type": "tool_result",
                "id": tool_result.get("id"),
                "name": tool_result.get("name"),
                "arguments": tool_result.get("arguments", ""),
                "result": result,
            }
        )

    return {"role": _role(msg), "content": parts, "error": msg.get("error")}


def migrate_chat(chat: Any) -> Any:
    """Migrate every message of a raw chat document."""
    if not isinstance(chat, dict):
        return chat
    messages = chat.get("messages")
    return {
        **chat,
        "messages": [migrate_message(m) for m in messages]
        if isinstance(messages, list)
        else [],
    }
