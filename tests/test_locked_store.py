"""
Тесты файлового хранилища с блокировками.
"""

import asyncio
import json

import pytest

from chatdesk.storage.locked_store import LockedFileStore, StorageError, StoragePaths


class TestStoragePaths:
    """Вычисление путей из DATABASE_PATH."""

    def test_prefix_with_extension(self, tmp_path):
        paths = StoragePaths.from_prefix(tmp_path / "hayday-chat.db")

        assert paths.directory == tmp_path.resolve()
        assert paths.messages.name == "hayday-chat-messages.jsonl"
        assert paths.analytics.name == "hayday-chat-analytics.json"
        assert paths.sessions.name == "hayday-chat-sessions.json"

    def test_prefix_is_directory(self, tmp_path):
        paths = StoragePaths.from_prefix(tmp_path / "runtime")

        assert paths.directory == (tmp_path / "runtime").resolve()
        assert paths.messages.name == "chatdesk-messages.jsonl"

    def test_ensure_initialized_creates_files(self, tmp_path):
        store = LockedFileStore(tmp_path / "nested" / "data.db")
        store.ensure_initialized()

        assert store.paths.messages.read_text(encoding="utf-8") == ""
        assert json.loads(store.paths.analytics.read_text(encoding="utf-8")) == {}
        assert json.loads(store.paths.sessions.read_text(encoding="utf-8")) == {}


class TestJsonPersistence:
    """Чтение и атомарная запись JSON."""

    @pytest.mark.asyncio
    async def test_read_missing_file_initializes_default(self, store):
        path = store.paths.directory / "missing.json"

        value = await store.read_json(path, {"a": 1})

        assert value == {"a": 1}
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1}

    @pytest.mark.asyncio
    async def test_read_empty_file_returns_default(self, store):
        path = store.paths.directory / "empty.json"
        path.write_text("", encoding="utf-8")

        assert await store.read_json(path, {}) == {}

    @pytest.mark.asyncio
    async def test_malformed_json_is_fatal_and_kept(self, store):
        path = store.paths.analytics
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await store.read_json(path, {})

        assert path.read_text(encoding="utf-8") == "{not json"

    @pytest.mark.asyncio
    async def test_write_json_replaces_atomically(self, store):
        path = store.paths.sessions

        await store.write_json(path, {"ключ": "значение"})
        await store.write_json(path, {"second": 2})

        assert json.loads(path.read_text(encoding="utf-8")) == {"second": 2}
        leftovers = [p.name for p in store.paths.directory.iterdir() if ".tmp-" in p.name]
        assert leftovers == []

    @pytest.mark.asyncio
    async def test_unserializable_value_leaves_previous_version(self, store):
        path = store.paths.sessions
        await store.write_json(path, {"kept": True})

        with pytest.raises(StorageError):
            await store.write_json(path, {"bad": object()})

        assert json.loads(path.read_text(encoding="utf-8")) == {"kept": True}


class TestLineFiles:
    """Построчный журнал."""

    @pytest.mark.asyncio
    async def test_append_and_read_lines(self, store):
        path = store.paths.messages
        await store.append_line(path, {"n": 1})
        await store.append_line(path, {"n": 2, "text": "Merhaba dünya"})

        records = await store.read_lines(path)

        assert records == [{"n": 1}, {"n": 2, "text": "Merhaba dünya"}]

    @pytest.mark.asyncio
    async def test_corrupted_lines_are_skipped(self, store):
        path = store.paths.messages
        path.write_text('{"n": 1}\n{"n": 2\n[1, 2]\n\n{"n": 3}\n', encoding="utf-8")

        records = await store.read_lines(path)

        assert records == [{"n": 1}, {"n": 3}]

    @pytest.mark.asyncio
    async def test_read_missing_line_file_recreates_it(self, store):
        store.paths.messages.unlink()

        assert await store.read_lines(store.paths.messages) == []
        assert store.paths.messages.exists()


class TestWithLock:
    """Очередь операций на ресурс."""

    @pytest.mark.asyncio
    async def test_operations_on_same_resource_do_not_interleave(self, store):
        events = []

        def make_operation(name):
            async def operation():
                events.append(f"{name}:start")
                await asyncio.sleep(0.01)
                events.append(f"{name}:end")
                return name

            return operation

        results = await asyncio.gather(*(store.with_lock("messages", make_operation(n)) for n in "abc"))

        assert results == ["a", "b", "c"]
        assert events == ["a:start", "a:end", "b:start", "b:end", "c:start", "c:end"]

    @pytest.mark.asyncio
    async def test_different_resources_run_independently(self, store):
        events = []

        async def slow():
            events.append("slow:start")
            await asyncio.sleep(0.05)
            events.append("slow:end")

        async def fast():
            events.append("fast")

        await asyncio.gather(store.with_lock("messages", slow), store.with_lock("analytics", fast))

        assert events.index("fast") < events.index("slow:end")

    @pytest.mark.asyncio
    async def test_failure_propagates_and_releases_lock(self, store):
        async def failing():
            raise ValueError("boom")

        async def succeeding():
            return "ok"

        with pytest.raises(ValueError):
            await store.with_lock("sessions", failing)

        assert await store.with_lock("sessions", succeeding) == "ok"
        assert store.active_locks() == []

    @pytest.mark.asyncio
    async def test_read_modify_write_is_not_lost(self, store):
        path = store.paths.analytics

        async def increment():
            data = await store.read_json(path, {})
            await asyncio.sleep(0)
            data["count"] = data.get("count", 0) + 1
            await store.write_json(path, data)

        await asyncio.gather(*(store.with_lock("analytics", increment) for _ in range(20)))

        assert json.loads(path.read_text(encoding="utf-8")) == {"count": 20}
