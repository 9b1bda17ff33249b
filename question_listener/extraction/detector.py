"""Structural question detector operating on whole transcripts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from ..models import TranscriptionResult
from .lexicon import Lexicon

_SENTENCE = re.compile(r"[^\n!！?？。]*[!！?？。]+|[^\n!！?？。]+")
_QUESTION_MARK_END = re.compile(r"[?？]\s*$")


@dataclass(frozen=True)
class QuestionSpan:
    """Narrowest transcript region covering every question-bearing sentence."""

    text: str
    timestamp: float
    confidence: float
    explicit: bool


class QuestionDetector:
    """Locate question-bearing sentences and validate question structure."""

    def __init__(self, lexicon: Lexicon, min_length: int = 2, implicit_confidence: float = 0.8) -> None:
        self.lexicon = lexicon
        self.min_length = min_length
        self.implicit_confidence = implicit_confidence

    def detect(self, result: TranscriptionResult) -> Optional[QuestionSpan]:
        text = result.text.strip()
        if not text:
            return None

        flagged: List[re.Match] = [
            match for match in _SENTENCE.finditer(text) if self._is_question_sentence(match.group())
        ]
        if not flagged:
            return None

        span = text[flagged[0].start() : flagged[-1].end()].strip()
        explicit = any(_QUESTION_MARK_END.search(match.group()) for match in flagged)
        confidence = result.confidence if explicit else result.confidence * self.implicit_confidence
        return QuestionSpan(
            text=span,
            timestamp=result.timestamp,
            confidence=confidence,
            explicit=explicit,
        )

    def is_valid_question(self, text: str) -> bool:
        stripped = text.strip()
        if len(stripped) < self.min_length:
            return False
        return bool(
            _QUESTION_MARK_END.search(stripped) or self.lexicon.question_ending.search(stripped)
        )

    def _is_question_sentence(self, sentence: str) -> bool:
        sentence = sentence.strip()
        if self.is_valid_question(sentence):
            return True
        return any(shape.search(sentence) for shape in self.lexicon.question_shapes)
