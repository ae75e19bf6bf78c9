import logging
import os
from pathlib import Path

import colorlog
from colorlog.escape_codes import escape_codes

_lib_path = Path(__file__).parents[1]
_leng_path = len(_lib_path.as_posix())

_LEVEL_EMOJI = {
    logging.WARNING: "👷‍♂️",
    logging.ERROR: "❌",
    logging.CRITICAL: "🧨",
}


def basic_filter(record: logging.LogRecord) -> bool:
    """🔍 Добавляет к записи относительный путь модуля и эмодзи уровня"""
    record.package = record.pathname[_leng_path + 1 :].replace(".py", "").replace("/", ".")
    record.emoji = _LEVEL_EMOJI.get(record.levelno, "")
    return True


color_scheme = {
    "DEBUG": "light_black",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

secondary_colors = {
    "asctime": {"DEBUG": "cyan"},
    "funcName": {"DEBUG": "light_white,bg_blue"},
}

fmt_string = "%(emoji)s%(log_color)s%(package)s.%(funcName)s%(reset)s %(white)s%(message)s"

fmt_config = {
    "log_colors": color_scheme,
    "secondary_log_colors": secondary_colors,
    "style": "%",
    "reset": True,
}


class MultilineColoredFormatter(colorlog.ColoredFormatter):
    """Раскрашивает только первую строку многострочных сообщений (трейсбеки остаются читаемыми)."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "emoji"):
            record.emoji = "📝"
        if not hasattr(record, "package"):
            record.package = getattr(record, "name", "unknown")

        formatted = super().format(record)
        first_line, _, rest = formatted.partition("\n")
        if not rest:
            return formatted
        # сброс цвета после первой строки, трейсбек печатается без раскраски
        return f"{first_line}{escape_codes['reset']}\n{rest}"


formatter = MultilineColoredFormatter(fmt_string, **fmt_config)


def get_colorful_logger(name: str = "chatdesk", level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "DEBUG").upper())

    # Повторный импорт (reload в uvicorn) не должен дублировать вывод
    if not any(getattr(handler, "_chatdesk", False) for handler in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        stream._chatdesk = True  # type: ignore[attr-defined]
        logger.addHandler(stream)
        logger.addFilter(basic_filter)
    logger.propagate = False

    return logger


root_logger = get_colorful_logger()
