"""
LLM completion client - OpenAI chat completions for escalated messages.

Таймаут и ретраи задаются в клиенте OpenAI, наружу отдается только
результат или LLMError.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from chatdesk.logger import root_logger
from chatdesk.settings import (
    OPENAI_API_KEY,
    OPENAI_MAX_RETRIES,
    OPENAI_MAX_TOKENS,
    OPENAI_MODEL,
    OPENAI_TEMPERATURE,
    OPENAI_TIMEOUT,
)

log = root_logger.info

SYSTEM_PROMPT = """Sen HayDay oyununun uzmanı ve HayDay Malzemeleri sitesinin müşteri destek asistanısın.

🎯 Görevin:
- HayDay oyunu ile ilgili soruları yanıtlamak
- Müşterileri doğru sayfalara yönlendirmek
- Türkçe, kibar ve kısa yanıtlar vermek

📚 Site sayfaları:
- Altın/para konuları: "Sorular & İletişim" sayfası
- Ürün fiyatları: "Ürün Listenizi Oluşturun" sayfası
- Depolama hesaplama: "Depolama Hesaplayıcısı" sayfası
- Makine bilgileri: "Makineler" sayfası

🚫 HayDay dışı konularda yardım etme, kibarca reddet."""


# --- LLM Exceptions ---
class LLMError(Exception):
    """Base exception for LLM errors"""

    pass


class LLMTemporaryError(LLMError):
    """Temporary error, can be retried"""

    pass


class LLMPermanentError(LLMError):
    """Permanent error, retry is useless"""

    pass


@dataclass
class CompletionResult:
    """Ответ модели и количество потраченных токенов."""

    text: str
    tokens_used: int


class CompletionProvider(Protocol):
    """Внешний провайдер ответов: успех с текстом или LLMError."""

    async def complete(self, system_prompt: str, user_text: str) -> CompletionResult: ...

    async def close(self) -> None: ...


class OpenAICompletionProvider:
    """Провайдер поверх AsyncOpenAI."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = OPENAI_MODEL,
        timeout: float = OPENAI_TIMEOUT,
        max_retries: int = OPENAI_MAX_RETRIES,
        max_tokens: int = OPENAI_MAX_TOKENS,
        temperature: float = OPENAI_TEMPERATURE,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)

    async def complete(self, system_prompt: str, user_text: str) -> CompletionResult:
        """
        Запрашивает ответ модели.

        Args:
            system_prompt: Системный промпт
            user_text: Сообщение пользователя

        Returns:
            CompletionResult с текстом и usage.total_tokens

        Raises:
            LLMTemporaryError: Таймаут, сеть, 429/5xx, пустой ответ
            LLMPermanentError: Авторизация и прочие 4xx
        """
        preview = user_text.strip().replace("\n", " ")
        if len(preview) > 200:
            preview = preview[:200] + "…"
        log(f"📝 LLM request model={self.model} preview='{preview}'")

        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.AuthenticationError as e:
            raise LLMPermanentError(f"Authorization error: {e}") from e
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise LLMTemporaryError(f"Network error: {e}") from e
        except openai.RateLimitError as e:
            raise LLMTemporaryError(f"Rate limited: {e}") from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                raise LLMTemporaryError(f"Server error: HTTP {e.status_code}") from e
            raise LLMPermanentError(f"HTTP error {e.status_code}: {e}") from e
        except openai.OpenAIError as e:
            raise LLMTemporaryError(f"Unexpected error: {e}") from e

        if not completion.choices:
            raise LLMTemporaryError("Empty response: no choices returned")

        reply = (completion.choices[0].message.content or "").strip()
        if not reply:
            raise LLMTemporaryError("Got empty response from model")

        tokens_used = completion.usage.total_tokens if completion.usage else 0
        log(f"✅ reply successfully generated ({len(reply)} characters, {tokens_used} tokens)")
        return CompletionResult(text=reply, tokens_used=tokens_used)

    async def close(self) -> None:
        """Закрывает HTTP-клиент OpenAI. Вызывается при shutdown приложения."""
        await self._client.close()


def create_completion_provider(api_key: Optional[str] = OPENAI_API_KEY) -> Optional[OpenAICompletionProvider]:
    """
    Создает провайдер, если задан ключ.

    Returns:
        OpenAICompletionProvider или None (эскалация к AI отключена)
    """
    if not api_key:
        root_logger.warning("OpenAI API key not provided, AI fallback disabled")
        return None
    log("🤖 OpenAI initialized successfully")
    return OpenAICompletionProvider(api_key)
