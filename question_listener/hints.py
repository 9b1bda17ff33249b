"""Early "question is forming" signals derived from recent transcript text."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional

from .config import StreamingHintConfig
from .extraction.lexicon import Lexicon


class StreamingHintTracker:
    """Track recent text and assert a short-lived question hint.

    Two structures are kept: a ring of recent transcripts scanned for quick
    interrogative substrings, and a character-capped streaming buffer scanned
    with regular expressions at most once per debounce interval.
    """

    def __init__(
        self,
        config: StreamingHintConfig,
        lexicon: Lexicon,
        hint_window_seconds: float = 3.0,
    ) -> None:
        self.config = config
        self.lexicon = lexicon
        self.hint_window_seconds = hint_window_seconds
        self._recent: Deque[str] = deque(maxlen=config.recent_transcripts)
        self._streaming_buffer = ""
        self._last_scan: Optional[float] = None
        self._last_hint: Optional[float] = None

    @property
    def recent_text(self) -> str:
        return " ".join(self._recent)

    @property
    def streaming_buffer(self) -> str:
        return self._streaming_buffer

    def question_likely(self, now: float) -> bool:
        if self._last_hint is None:
            return False
        return now - self._last_hint < self.hint_window_seconds

    def record_transcript(self, text: str, now: float) -> bool:
        """Push ``text`` into the ring; returns whether the ring now hints a question."""

        if not text or not text.strip():
            return False
        self._recent.append(text.lower())
        recent = self.recent_text
        if any(pattern in recent for pattern in self.lexicon.hint_substrings):
            self._last_hint = now
            logging.debug("Question hint in recent text: %s", recent[:50])
            return True
        return False

    def observe_fragment(self, text: str, now: float) -> bool:
        """Feed streaming text; returns True when a question pattern was found."""

        self._streaming_buffer = f"{self._streaming_buffer} {text}"
        limit = self.config.streaming_buffer_chars
        if len(self._streaming_buffer) > limit:
            self._streaming_buffer = self._streaming_buffer[-limit:]

        if self._last_scan is not None and now - self._last_scan < self.config.debounce_seconds:
            return False
        self._last_scan = now

        streaming_text = self._streaming_buffer.lower().strip()
        if not any(pattern.search(streaming_text) for pattern in self.lexicon.streaming_patterns):
            return False

        logging.info("Streaming question pattern detected: %s", streaming_text[:100])
        self._streaming_buffer = ""
        self._last_hint = now
        return True

    def reset(self) -> None:
        self._recent.clear()
        self._streaming_buffer = ""
        self._last_scan = None
        self._last_hint = None
