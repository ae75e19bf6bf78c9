import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Текущее время в миллисекундах с эпохи."""
    return int(time.time() * 1000)


def date_key(timestamp_ms: int) -> str:
    """Ключ дня YYYY-MM-DD в UTC, по тем же часам, что и timestamp сообщений."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
