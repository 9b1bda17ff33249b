"""Turn a raw transcript into clean, ordered question strings."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..config import ExtractionConfig
from ..models import DetectedQuestion, QuestionCandidate, TranscriptionResult, new_id
from .detector import QuestionDetector
from .lexicon import Lexicon, japanese_lexicon

_STRONG_TERMINATORS = re.compile(r"[^\n!！。]*[!！。]+|[^\n!！。]+")
_QUESTION_TERMINATORS = re.compile(r"[^?？]*[?？]+|[^?？]+")
_EDGE_SEPARATORS = "、, \t\r\n"
_QUESTION_MARK_END = re.compile(r"[?？]$")
_TRAILING_PUNCTUATION = re.compile(r"[、。！？!?,.\s]+$")
_NON_WORD = re.compile(r"[\W_]+")
_CJK = re.compile(r"[぀-ヿ㐀-鿿]")


def count_words(text: str) -> int:
    """Rough word count: space-delimited words plus two CJK characters per word."""

    if not text:
        return 0
    cjk = len(_CJK.findall(text))
    latin = len(re.findall(r"[A-Za-z0-9']+", text))
    return latin + (cjk + 1) // 2


class QuestionExtractionPipeline:
    """Split, trim, filter, validate and refine question candidates."""

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        lexicon: Optional[Lexicon] = None,
        detector: Optional[QuestionDetector] = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.lexicon = lexicon or japanese_lexicon()
        self.detector = detector or QuestionDetector(
            self.lexicon, min_length=self.config.min_candidate_chars
        )
        self._fillers_longest_first = sorted(self.lexicon.filler_words, key=len, reverse=True)

    def extract(self, result: TranscriptionResult) -> List[DetectedQuestion]:
        text = result.text or ""
        if len(text.strip()) < self.config.min_transcript_chars:
            logging.debug("Skipping question detection; transcript too short: %r", text)
            return []

        span = self.detector.detect(result)
        base_text = span.text if span else text
        timestamp = span.timestamp if span else result.timestamp
        confidence = span.confidence if span else result.confidence

        questions: List[DetectedQuestion] = []
        for candidate in self.candidates(base_text):
            if not self.validate(candidate.text):
                continue
            refined = self.refine(candidate.text)
            logging.debug("Question candidate %d: %r -> %r", candidate.index, candidate.text, refined)
            questions.append(
                DetectedQuestion(
                    id=new_id(),
                    raw_text=candidate.text,
                    refined_text=refined,
                    timestamp=timestamp,
                    confidence=confidence,
                    source_transcription_id=result.id,
                )
            )
        return questions

    def candidates(self, text: str) -> List[QuestionCandidate]:
        """Return question-shaped segments of ``text`` in left-to-right order."""

        found: List[QuestionCandidate] = []
        for index, segment in enumerate(self.split_segments(text)):
            core = self.trim_preface(segment)
            if self.is_candidate(core):
                found.append(QuestionCandidate(text=core, index=index))
        return found

    def split_segments(self, text: str) -> List[str]:
        """Split on strong terminators, then question marks, then spoken connectors.

        Terminators stay attached to the segment they close.
        """

        if not text:
            return []

        coarse = [part for part in _STRONG_TERMINATORS.findall(text) if part.strip()]
        by_question: List[str] = []
        for part in coarse:
            by_question.extend(p for p in _QUESTION_TERMINATORS.findall(part) if p.strip())

        segments: List[str] = []
        for part in by_question:
            segments.extend(self._split_connectors(part))
        return segments

    def _split_connectors(self, part: str) -> List[str]:
        """Separate connector-joined questions; keep ``part`` whole unless every piece is a candidate."""

        whole = part.strip(_EDGE_SEPARATORS)
        pieces = [p.strip(_EDGE_SEPARATORS) for p in self.lexicon.connectors.split(part)]
        pieces = [p for p in pieces if p]
        if not pieces or not all(self.is_candidate(self.trim_preface(p)) for p in pieces):
            return [whole] if whole else []
        return pieces

    def trim_preface(self, text: str) -> str:
        """Strip stacked leading fillers unless the segment opens with a topic clause."""

        trimmed = text.strip()
        if not trimmed or self.lexicon.topic_question.search(trimmed):
            return trimmed

        result = trimmed
        for _ in range(self.config.preface_max_iterations):
            stripped = self.lexicon.preface.sub("", result, count=1).strip()
            if stripped == result:
                break
            result = stripped

        # A segment made only of fillers keeps its original text.
        if len(_NON_WORD.sub("", result)) < 2:
            return trimmed
        return result

    def is_candidate(self, text: str) -> bool:
        stripped = text.strip()
        if len(stripped) < self.config.min_candidate_chars:
            return False
        return bool(
            _QUESTION_MARK_END.search(stripped)
            or self.lexicon.polite_request.search(stripped)
            or self.lexicon.question_ending.search(stripped)
            or self.looks_like_question(stripped)
        )

    def validate(self, text: str) -> bool:
        # Either validator is enough.
        return self.detector.is_valid_question(text) or self.looks_like_question(text.strip())

    def looks_like_question(self, text: str) -> bool:
        return any(shape.search(text) for shape in self.lexicon.question_shapes)

    def refine(self, text: str) -> str:
        """Normalize a validated candidate; falls back to ``text`` if nothing meaningful is left."""

        lexicon = self.lexicon
        asked = bool(_QUESTION_MARK_END.search(text.strip()))
        refined = text.lower().strip()

        words = [self._collapse_repeats(word) for word in lexicon.token_separators.split(refined) if word]
        deduplicated: List[str] = []
        for word in words:
            if deduplicated and word == deduplicated[-1] and word in lexicon.filler_words:
                continue
            deduplicated.append(word)
        kept = [word for word in deduplicated if word not in lexicon.filler_words]

        refined = re.sub(r"\s+", " ", " ".join(kept)).strip()
        refined = _TRAILING_PUNCTUATION.sub("", refined)
        refined = lexicon.trailing_particles.sub("", refined)

        if not _QUESTION_MARK_END.search(refined):
            if asked or lexicon.interrogatives.search(refined) or self.looks_like_question(refined):
                refined += lexicon.question_mark

        if refined and refined[0].isascii() and refined[0].isalpha():
            refined = refined[0].upper() + refined[1:]

        if len(refined) < 3 or len(_NON_WORD.sub("", refined)) < 2:
            logging.debug("Refinement of %r too aggressive; keeping original.", text)
            return text
        return refined

    def _collapse_repeats(self, word: str) -> str:
        """Reduce a stuttered filler run such as "あのあの" to a single filler."""

        for filler in self._fillers_longest_first:
            size = len(filler)
            if len(word) > size and len(word) % size == 0 and word == filler * (len(word) // size):
                return filler
        return word
