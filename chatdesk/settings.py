"""Настройки приложения"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_PLACEHOLDERS = {"your-openai-api-key-here", "your-telegram-bot-token-here", "your-admin-telegram-id"}


def _secret(name: str) -> str | None:
    """Читает секрет из окружения, шаблонные значения из .env.example считаются пустыми."""
    value = (os.getenv(name) or "").strip()
    if not value or value in _PLACEHOLDERS:
        return None
    return value


# Корневая директория пакета
ROOT_DIR = Path(__file__).parent.absolute()
PORT = int(os.getenv("PORT") or 3000)
ENVIRONMENT = os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV") or "development"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Хранилище: путь с расширением задает префикс файлов, без расширения - директорию
DATABASE_PATH = os.getenv("DATABASE_PATH") or str(ROOT_DIR.parent / "data" / "chatdesk.db")
KNOWLEDGE_BASE_PATH = os.getenv("KNOWLEDGE_BASE_PATH") or str(ROOT_DIR.parent / "knowledge-base.json")

# OpenAI
OPENAI_API_KEY = _secret("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "10"))
OPENAI_MAX_RETRIES = int(os.getenv("OPENAI_MAX_RETRIES", "2"))
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "150"))
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))

# Telegram
TELEGRAM_BOT_TOKEN = _secret("TELEGRAM_BOT_TOKEN")
ADMIN_TELEGRAM_ID = _secret("ADMIN_TELEGRAM_ID")
# Публичный адрес сервиса, если задан - при старте регистрируется webhook
PUBLIC_URL = os.getenv("PUBLIC_URL") or os.getenv("RENDER_EXTERNAL_URL")
WEBHOOK_PATH = "/webhook/telegram"

# Чат
CONFIDENCE_THRESHOLD = float(os.getenv("CONFIDENCE_THRESHOLD", "0.7"))
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "30"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# Админка
SESSION_TTL_HOURS = float(os.getenv("SESSION_TTL_HOURS", "24"))
AUTH_CODE_TTL_MINUTES = float(os.getenv("AUTH_CODE_TTL_MINUTES", "5"))
AUTH_CODE_MAX_ATTEMPTS = int(os.getenv("AUTH_CODE_MAX_ATTEMPTS", "5"))
ACTIVE_CONVERSATION_MINUTES = float(os.getenv("ACTIVE_CONVERSATION_MINUTES", "30"))
