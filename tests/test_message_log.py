"""
Тесты журнала сообщений.
"""

import asyncio
import json

import pytest

from chatdesk.storage import Message, MessageLog, Role


def make_message(client_id: str, timestamp: int, role: Role = Role.USER, content: str = "test") -> Message:
    return Message(timestamp=timestamp, clientId=client_id, role=role, content=content)


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_assigns_unique_ids(self, message_log):
        first = await message_log.append(make_message("client-1", 1000))
        second = await message_log.append(make_message("client-1", 1001))

        assert first.id and second.id
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_record_omits_empty_optional_fields(self, message_log, store):
        await message_log.append(make_message("client-1", 1000))

        record = json.loads(store.paths.messages.read_text(encoding="utf-8").strip())

        assert record["role"] == "user"
        assert "confidence" not in record
        assert "tokensUsed" not in record

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_all_kept(self, message_log):
        await asyncio.gather(*(message_log.append(make_message(f"client-{i % 3}", 1000 + i)) for i in range(30)))

        assert await message_log.count() == 30


class TestQueries:
    @pytest.mark.asyncio
    async def test_by_client_sorted_and_filtered(self, message_log):
        await message_log.append(make_message("client-1", 3000, content="third"))
        await message_log.append(make_message("client-2", 2000, content="other"))
        await message_log.append(make_message("client-1", 1000, content="first"))
        await message_log.append(make_message("client-1", 2000, content="second"))

        history = await message_log.by_client("client-1")

        assert [m.content for m in history] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_equal_timestamps_keep_append_order(self, message_log):
        await message_log.append(make_message("client-1", 1000, Role.USER, "question"))
        await message_log.append(make_message("client-1", 1000, Role.CHATBOT, "answer"))

        history = await message_log.by_client("client-1")

        assert [m.role for m in history] == [Role.USER, Role.CHATBOT]

    @pytest.mark.asyncio
    async def test_after_is_strictly_newer(self, message_log):
        for ts in (1000, 2000, 3000):
            await message_log.append(make_message("client-1", ts))

        newer = await message_log.after("client-1", 2000)

        assert [m.timestamp for m in newer] == [3000]
        assert await message_log.after("client-1", 3000) == []

    @pytest.mark.asyncio
    async def test_unknown_client_has_empty_history(self, message_log):
        assert await message_log.by_client("nobody-here") == []

    @pytest.mark.asyncio
    async def test_active_conversations(self, message_log):
        await message_log.append(make_message("old-client", 1000))
        await message_log.append(make_message("client-a", 5000))
        await message_log.append(make_message("client-b", 6000))
        await message_log.append(make_message("client-a", 7000, Role.CHATBOT, "latest"))

        active = await message_log.active_conversations(since_timestamp=2000)

        assert [s.clientId for s in active] == ["client-a", "client-b"]
        assert active[0].messageCount == 2
        assert active[0].lastActivity == 7000
        assert active[0].lastMessage.content == "latest"


class TestCorruption:
    @pytest.mark.asyncio
    async def test_corrupted_and_invalid_lines_are_skipped(self, message_log, store):
        valid = make_message("client-1", 1000).model_copy(update={"id": "m1"}).to_record()
        lines = [
            json.dumps(valid),
            "{broken",
            json.dumps({"timestamp": "soon", "clientId": "client-1"}),
        ]
        store.paths.messages.write_text("\n".join(lines) + "\n", encoding="utf-8")

        history = await message_log.by_client("client-1")

        assert [m.id for m in history] == ["m1"]

    @pytest.mark.asyncio
    async def test_clear(self, message_log):
        await message_log.append(make_message("client-1", 1000))

        await message_log.clear()

        assert await message_log.count() == 0


def test_message_log_uses_store_paths(store):
    assert MessageLog(store)._path == store.paths.messages
