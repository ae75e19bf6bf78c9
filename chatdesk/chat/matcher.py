"""Keyword knowledge base: decides whether a canned reply is confident enough."""

import json
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator

from chatdesk.logger import root_logger

log = root_logger.debug

DEFAULT_CONFIDENCE_THRESHOLD = 0.7


class KnowledgePattern(BaseModel):
    """Шаблон базы знаний: ключевые слова и готовый ответ."""

    keywords: List[str] = Field(..., min_length=1, description="Lowercase trigger words")
    response: str = Field(..., min_length=1, description="Canned reply text")
    confidence: float = Field(..., gt=0.0, le=1.0, description="Author-assigned trust in this pattern")
    usage: int = Field(0, ge=0, description="How many times the pattern answered (informational)")

    @field_validator("keywords")
    @classmethod
    def _lowercase_keywords(cls, keywords: List[str]) -> List[str]:
        cleaned = [keyword.strip().lower() for keyword in keywords if keyword.strip()]
        if not cleaned:
            raise ValueError("keywords must contain at least one non-empty word")
        return cleaned


class MatchResult(BaseModel):
    """Результат анализа сообщения."""

    match: Optional[KnowledgePattern] = None
    confidence: float = 0.0
    shouldEscalate: bool = True


GREETING_RESPONSE = "Merhaba! HayDay Malzemeleri destek ekibine hoş geldiniz. Size nasıl yardımcı olabilirim?"

DEFAULT_KNOWLEDGE_BASE: List[dict] = [
    # приветствия по одному слову: иначе одно "merhaba" дает 1/4 от confidence
    *(
        {"keywords": [greeting], "response": GREETING_RESPONSE, "confidence": 0.9}
        for greeting in ("merhaba", "selam", "hey")
    ),
    {
        "keywords": ["altın", "para", "transfer"],
        "response": 'Altın transferi hakkında detaylı bilgi için "Sorular & İletişim" sayfamızı ziyaret edebilirsiniz.',
        "confidence": 0.8,
    },
    {
        "keywords": ["fiyat", "ücret", "ne kadar"],
        "response": 'Ürün fiyatları için "Ürün Listenizi Oluşturun" sayfasını inceleyebilirsiniz.',
        "confidence": 0.8,
    },
    {
        "keywords": ["depolama", "ağıl", "ambar"],
        "response": 'Depolama hesaplamaları için "Depolama Hesaplayıcısı" sayfamızı kullanabilirsiniz.',
        "confidence": 0.8,
    },
    {
        "keywords": ["makine", "üretim", "seviye"],
        "response": 'Makine bilgileri için "Makineler" sayfamızdan detaylı bilgi alabilirsiniz.',
        "confidence": 0.8,
    },
]


def default_patterns() -> List[KnowledgePattern]:
    return [KnowledgePattern.model_validate(item) for item in DEFAULT_KNOWLEDGE_BASE]


def load_knowledge_base(path: str | Path | None) -> List[KnowledgePattern]:
    """
    Загружает шаблоны из JSON-файла (список объектов).

    Отсутствующий, пустой или некорректный файл заменяется встроенной
    базой знаний с предупреждением в логе.
    """
    if path is None:
        return default_patterns()

    path = Path(path)
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(parsed, list) and parsed:
            patterns = [KnowledgePattern.model_validate(item) for item in parsed]
            log(f"📚 Загружено {len(patterns)} шаблонов из {path}")
            return patterns
        root_logger.warning(f"Knowledge base file {path} is empty or invalid, using defaults")
    except FileNotFoundError:
        root_logger.warning(f"Knowledge base file {path} not found, using defaults")
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        root_logger.warning(f"Knowledge base could not be loaded from {path}, using defaults: {e}")

    return default_patterns()


class KnowledgeBaseMatcher:
    """
    Оценка совпадения сообщения с шаблонами по ключевым словам.

    score = (совпавшие ключевые слова / все ключевые слова шаблона) * confidence шаблона.
    Ключевое слово совпадает, если входит в сообщение как подстрока.
    При равных score побеждает шаблон, объявленный раньше.
    """

    def __init__(
        self,
        patterns: Sequence[KnowledgePattern],
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self.patterns = list(patterns)
        self.threshold = threshold

    @staticmethod
    def score(pattern: KnowledgePattern, lowered_message: str) -> float:
        matched = sum(1 for keyword in pattern.keywords if keyword in lowered_message)
        return (matched / len(pattern.keywords)) * pattern.confidence

    def analyze(self, message: str) -> MatchResult:
        """
        Находит лучший шаблон для сообщения.

        Args:
            message: Текст пользователя

        Returns:
            MatchResult; shouldEscalate=True, если лучший score ниже порога
        """
        lowered = message.lower()
        best: Optional[KnowledgePattern] = None
        highest = 0.0

        for pattern in self.patterns:
            score = self.score(pattern, lowered)
            # строгое сравнение: при равенстве остается первый
            if score > highest:
                highest = score
                best = pattern

        return MatchResult(match=best, confidence=highest, shouldEscalate=highest < self.threshold)

    def record_usage(self, pattern: KnowledgePattern) -> None:
        """Учитывает, что шаблон дал ответ (только в памяти процесса)."""
        pattern.usage += 1
