"""Дневные счетчики сообщений."""

from typing import Dict

from chatdesk.logger import root_logger

from .locked_store import LockedFileStore, StorageError
from .models import TRACKED_ROLES, AnalyticsEntry, Role

log = root_logger.debug

ANALYTICS_RESOURCE = "analytics"


class AnalyticsCounters:
    """Счетчики по датам YYYY-MM-DD, хранятся одним JSON-объектом."""

    def __init__(self, store: LockedFileStore) -> None:
        self._store = store
        self._path = store.paths.analytics

    async def _read(self) -> Dict[str, dict]:
        data = await self._store.read_json(self._path, {})
        if not isinstance(data, dict):
            raise StorageError(f"Analytics file {self._path} must contain a JSON object")
        return data

    async def increment(self, date: str, role: Role | str) -> AnalyticsEntry:
        """
        Учитывает одно обработанное сообщение.

        total растет всегда; chatbot/ai/admin - по своей роли,
        остальные роли попадают в other.
        """
        role = Role(role)

        async def _increment() -> AnalyticsEntry:
            analytics = await self._read()
            entry = AnalyticsEntry.model_validate({**analytics.get(date, {}), "date": date})
            entry.total += 1
            if role in TRACKED_ROLES:
                setattr(entry, role.value, getattr(entry, role.value) + 1)
            else:
                entry.other += 1
            analytics[date] = entry.model_dump(exclude={"date"})
            await self._store.write_json(self._path, analytics)
            return entry

        return await self._store.with_lock(ANALYTICS_RESOURCE, _increment)

    async def for_date(self, date: str) -> AnalyticsEntry:
        """Счетчики за дату, для отсутствующей даты - нулевые (без записи в файл)."""

        async def _get() -> AnalyticsEntry:
            analytics = await self._read()
            return AnalyticsEntry.model_validate({**analytics.get(date, {}), "date": date})

        return await self._store.with_lock(ANALYTICS_RESOURCE, _get)

    async def weekly_total(self, start_date: str, end_date: str) -> int:
        """Сумма total по датам в диапазоне [start_date, end_date] включительно."""

        async def _sum() -> int:
            analytics = await self._read()
            return sum(
                int(entry.get("total", 0))
                for day, entry in analytics.items()
                if start_date <= day <= end_date
            )

        return await self._store.with_lock(ANALYTICS_RESOURCE, _sum)

    async def clear(self) -> None:
        """Удаляет всю аналитику. Только для сброса данных и тестов."""

        async def _clear() -> None:
            await self._store.write_json(self._path, {})

        await self._store.with_lock(ANALYTICS_RESOURCE, _clear)
        log("🧹 Аналитика очищена")
