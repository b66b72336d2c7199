"""Tests for legacy chat format migration."""

from chatstore.core.types import StoredChat
from chatstore.storage.migration import migrate_chat, migrate_content_part, migrate_message


class TestMigrateContentPart:
    """Tests for migrate_content_part."""

    def test_mime_type_and_data_become_data_url(self):
        """Separate mimeType and base64 data merge into a data URL."""
        part = {"type": "image", "name": "a.png", "mimeType": "image/png", "data": "AAAA"}

        assert migrate_content_part(part) == {
            "type": "image",
            "name": "a.png",
            "data": "data:image/png;base64,AAAA",
        }

    def test_blob_reference_kept_with_mime_type(self):
        """Stored references keep their mimeType for rehydration."""
        part = {"type": "file", "mimeType": "application/pdf", "data": "blob:abc"}

        assert migrate_content_part(part) == part

    def test_current_part_unchanged(self):
        """Parts already in the current shape pass through."""
        part = {"type": "image", "name": "a.png", "data": "data:image/png;base64,AAAA"}

        assert migrate_content_part(part) == part

    def test_recurses_into_tool_results(self):
        """Media inside tool results is migrated too."""
        part = {
            "type": "tool_result",
            "id": "t1",
            "name": "shot",
            "result": [{"type": "image", "mimeType": "image/jpeg", "data": "BBBB"}],
        }

        migrated = migrate_content_part(part)

        assert migrated["result"][0]["data"] == "data:image/jpeg;base64,BBBB"


class TestMigrateMessage:
    """Tests for migrate_message."""

    def test_string_content_becomes_text_part(self):
        """Plain string content becomes a single text part."""
        migrated = migrate_message({"role": "user", "content": "hello"})

        assert migrated["content"] == [{"type": "text", "text": "hello"}]

    def test_attachments_become_parts(self):
        """Attachments turn into image, file and text parts."""
        migrated = migrate_message(
            {
                "role": "user",
                "content": "see attached",
                "attachments": [
                    {"type": "image_data", "name": "p.png", "data": "data:image/png;base64,AA"},
                    {"type": "file_data", "name": "d.pdf", "data": "data:;base64,BB"},
                    {"type": "text", "name": "notes.txt", "data": "line"},
                ],
            }
        )

        assert [p["type"] for p in migrated["content"]] == ["text", "image", "file", "text"]
        assert migrated["content"][3]["text"] == "// notes.txt\nline"

    def test_tool_calls_and_result(self):
        """toolCalls and toolResult become tool_call and tool_result parts."""
        migrated = migrate_message(
            {
                "role": "tool",
                "content": "",
                "toolCalls": [{"id": "c1", "name": "search", "arguments": "{}"}],
                "toolResult": {"id": "c1", "name": "search", "data": "found it"},
            }
        )

        assert migrated["role"] == "user"
        assert migrated["content"][0] == {
            "type": "tool_call",
            "id": "c1",
            "name": "search",
            "arguments": "{}",
        }
        assert migrated["content"][1]["type"] == "tool_result"
        assert migrated["content"][1]["result"] == [{"type": "text", "text": "found it"}]

    def test_is_idempotent(self):
        """Migrating twice equals migrating once."""
        legacy = {
            "role": "assistant",
            "content": "hi",
            "attachments": [{"type": "image", "name": "x.png", "data": "data:image/png;base64,AA"}],
        }

        once = migrate_message(legacy)

        assert migrate_message(once) == once


class TestMigrateChat:
    """Tests for migrate_chat."""

    def test_migrated_chat_validates(self):
        """A legacy chat validates as a StoredChat after migration."""
        legacy = {
            "id": "c1",
            "title": "Old",
            "created": "2023-01-01T00:00:00+00:00",
            "updated": "2023-01-02T00:00:00+00:00",
            "messages": [
                {"role": "user", "content": "hi"},
                {
                    "role": "assistant",
                    "content": [{"type": "image", "mimeType": "image/png", "data": "AAAA"}],
                },
            ],
        }

        chat = StoredChat.model_validate(migrate_chat(legacy))

        assert len(chat.messages) == 2
        assert chat.messages[1].content[0].data == "data:image/png;base64,AAAA"

    def test_missing_messages(self):
        """A chat without a message list gets an empty one."""
        assert migrate_chat({"id": "c1"})["messages"] == []
