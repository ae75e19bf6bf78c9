"""
Обработка входящего сообщения: база знаний -> LLM -> ответ по умолчанию.

Каждое сообщение пользователя дает ровно один ответ в журнале и одно
увеличение дневной аналитики по роли ответа.
"""

from typing import Optional, Protocol

from chatdesk.llm import SYSTEM_PROMPT, CompletionProvider, LLMError
from chatdesk.logger import root_logger
from chatdesk.storage.analytics import AnalyticsCounters
from chatdesk.storage.clock import Clock, date_key, now_ms
from chatdesk.storage.messages import MessageLog
from chatdesk.storage.models import Message, Role

from .matcher import KnowledgeBaseMatcher
from .models import ChatReply

log = root_logger.debug

AI_CONFIDENCE = 0.85
AI_FAILURE_CONFIDENCE = 0.3

AI_FAILURE_REPLY = "Üzgünüm, şu anda teknik bir sorun yaşıyorum. Lütfen biraz sonra tekrar deneyin."
DEFAULT_REPLY = "Size yardımcı olmaya çalışıyorum. Sorular & İletişim sayfamızdan bize ulaşabilirsiniz."
ERROR_REPLY = "Üzgünüm, bir hata oluştu. Lütfen Sorular & İletişim sayfamızdan bize ulaşın."


class Notifier(Protocol):
    """Уведомление администратора о новом сообщении (без гарантий доставки)."""

    async def notify_new_message(self, user_text: str, reply: str, role: Role) -> bool: ...


class EscalationRouter:
    """Конвейер обработки сообщения чата."""

    def __init__(
        self,
        messages: MessageLog,
        analytics: AnalyticsCounters,
        matcher: KnowledgeBaseMatcher,
        completion: Optional[CompletionProvider] = None,
        notifier: Optional[Notifier] = None,
        clock: Clock = now_ms,
    ) -> None:
        self.messages = messages
        self.analytics = analytics
        self.matcher = matcher
        self.completion = completion
        self.notifier = notifier
        self._clock = clock

    @property
    def ai_available(self) -> bool:
        return self.completion is not None

    async def process(self, client_id: str, text: str) -> ChatReply:
        """
        Обрабатывает сообщение пользователя.

        Args:
            client_id: Идентификатор диалога
            text: Нормализованный текст сообщения

        Returns:
            ChatReply с ответом, ролью и уверенностью

        Raises:
            StorageError: Если не удалось записать журнал или аналитику
        """

        async def _turn() -> ChatReply:
            # вопрос и ответ одного диалога идут в журнал подряд
            await self.messages.append(
                Message(timestamp=self._clock(), clientId=client_id, role=Role.USER, content=text)
            )

            reply = await self._answer(text)

            stored = await self.messages.append(
                Message(
                    timestamp=self._clock(),
                    clientId=client_id,
                    role=reply.role,
                    content=reply.reply,
                    confidence=reply.confidence,
                    tokensUsed=reply.tokensUsed,
                )
            )
            reply.timestamp = stored.timestamp

            await self.analytics.increment(date_key(stored.timestamp), reply.role)
            return reply

        reply = await self.messages.in_conversation(client_id, _turn)
        await self._notify(text, reply)

        log(f"💬 {client_id}: ответ role={reply.role.value} confidence={reply.confidence:.2f}")
        return reply

    async def _answer(self, text: str) -> ChatReply:
        analysis = self.matcher.analyze(text)

        if not analysis.shouldEscalate and analysis.match is not None:
            self.matcher.record_usage(analysis.match)
            return ChatReply(
                reply=analysis.match.response,
                role=Role.CHATBOT,
                confidence=analysis.confidence,
                timestamp=0,
            )

        if self.completion is not None:
            return await self._ask_ai(self.completion, text)

        return ChatReply(reply=DEFAULT_REPLY, role=Role.CHATBOT, confidence=analysis.confidence, timestamp=0)

    async def _ask_ai(self, completion: CompletionProvider, text: str) -> ChatReply:
        try:
            result = await completion.complete(SYSTEM_PROMPT, text)
        except LLMError as e:
            root_logger.error(f"OpenAI Error: {e}")
            return self._ai_failure()
        except Exception as e:
            root_logger.error(f"Unexpected completion provider error: {e}")
            return self._ai_failure()

        return ChatReply(
            reply=result.text,
            role=Role.AI,
            confidence=AI_CONFIDENCE,
            timestamp=0,
            tokensUsed=result.tokens_used,
        )

    @staticmethod
    def _ai_failure() -> ChatReply:
        return ChatReply(
            reply=AI_FAILURE_REPLY,
            role=Role.AI,
            confidence=AI_FAILURE_CONFIDENCE,
            timestamp=0,
            tokensUsed=0,
        )

    async def _notify(self, text: str, reply: ChatReply) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify_new_message(text, reply.reply, reply.role)
        except Exception as e:
            # уведомление не должно ломать ответ пользователю
            root_logger.warning(f"Telegram notification error: {e}")
