"""
Тесты базы знаний и оценки совпадений.
"""

import json

import pytest
from pydantic import ValidationError

from chatdesk.chat.matcher import (
    GREETING_RESPONSE,
    KnowledgeBaseMatcher,
    KnowledgePattern,
    default_patterns,
    load_knowledge_base,
)


def pattern(keywords, response="ok", confidence=0.8):
    return KnowledgePattern(keywords=keywords, response=response, confidence=confidence)


class TestScoring:
    def test_partial_match_below_threshold(self):
        matcher = KnowledgeBaseMatcher([pattern(["fiyat", "ücret"], confidence=0.8)], threshold=0.7)

        result = matcher.analyze("Fiyat nedir?")

        assert result.confidence == pytest.approx(0.4)
        assert result.match is not None
        assert result.shouldEscalate is True

    def test_full_match_answers(self):
        matcher = KnowledgeBaseMatcher([pattern(["fiyat", "ücret"], confidence=0.8)], threshold=0.7)

        result = matcher.analyze("fiyat ve ücret bilgisi")

        assert result.confidence == pytest.approx(0.8)
        assert result.shouldEscalate is False

    def test_no_match(self):
        matcher = KnowledgeBaseMatcher([pattern(["depolama"])])

        result = matcher.analyze("tamamen alakasız")

        assert result.match is None
        assert result.confidence == 0.0
        assert result.shouldEscalate is True

    def test_substring_matching(self):
        matcher = KnowledgeBaseMatcher([pattern(["ne kadar"], confidence=0.9)])

        assert matcher.analyze("Bu NE KADAR tutar?").confidence == pytest.approx(0.9)

    def test_tie_keeps_first_declared(self):
        first = pattern(["altın"], response="first")
        second = pattern(["altın"], response="second")

        result = KnowledgeBaseMatcher([first, second]).analyze("altın lazım")

        assert result.match.response == "first"

    def test_threshold_is_inclusive_for_answer(self):
        matcher = KnowledgeBaseMatcher([pattern(["selam"], confidence=0.7)], threshold=0.7)

        assert matcher.analyze("selam").shouldEscalate is False

    def test_record_usage(self):
        p = pattern(["selam"])
        matcher = KnowledgeBaseMatcher([p])

        matcher.record_usage(p)
        matcher.record_usage(p)

        assert p.usage == 2


class TestKnowledgePattern:
    def test_keywords_are_lowercased(self):
        assert pattern(["  Fiyat ", "ÜCRET"]).keywords == ["fiyat", "ücret"]

    def test_empty_keywords_rejected(self):
        with pytest.raises(ValidationError):
            pattern([])
        with pytest.raises(ValidationError):
            pattern(["  "])

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            pattern(["a"], confidence=0.0)
        with pytest.raises(ValidationError):
            pattern(["a"], confidence=1.5)


class TestDefaultKnowledgeBase:
    def test_greeting_answers_from_knowledge_base(self):
        result = KnowledgeBaseMatcher(default_patterns()).analyze("Merhaba")

        assert result.shouldEscalate is False
        assert result.match.response == GREETING_RESPONSE
        assert result.confidence == pytest.approx(0.9)

    def test_service_word_is_not_a_greeting(self):
        result = KnowledgeBaseMatcher(default_patterns()).analyze("hizmet")

        assert result.match is None


class TestLoadKnowledgeBase:
    def test_load_from_file(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text(
            json.dumps([{"keywords": ["Test"], "response": "Yanıt", "confidence": 0.5}], ensure_ascii=False),
            encoding="utf-8",
        )

        patterns = load_knowledge_base(path)

        assert len(patterns) == 1
        assert patterns[0].keywords == ["test"]

    @pytest.mark.parametrize("content", [None, "", "[]", "{not json", '[{"keywords": []}]'])
    def test_fallback_to_defaults(self, tmp_path, content):
        path = tmp_path / "kb.json"
        if content is not None:
            path.write_text(content, encoding="utf-8")

        patterns = load_knowledge_base(path)

        assert len(patterns) == len(default_patterns())

    def test_none_path_uses_defaults(self):
        assert len(load_knowledge_base(None)) == len(default_patterns())
