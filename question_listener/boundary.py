"""Decide when accumulated audio should be cut into a chunk."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import ChunkingConfig
from .models import BoundaryReason


@dataclass(frozen=True)
class BoundarySignals:
    duration_ms: float
    time_since_boundary_ms: float
    estimated_word_count: int
    question_likely: bool


class ChunkBoundaryPolicy:
    """Pure OR of four cut predicates; the first true one is reported."""

    def __init__(self, config: ChunkingConfig) -> None:
        self.max_duration_ms = config.max_chunk_duration_seconds * 1000.0
        self.max_idle_ms = config.max_idle_seconds * 1000.0
        self.max_words = config.max_words

    def decide(self, signals: BoundarySignals) -> Optional[BoundaryReason]:
        if signals.duration_ms >= self.max_duration_ms:
            return BoundaryReason.DURATION
        if signals.time_since_boundary_ms >= self.max_idle_ms:
            return BoundaryReason.IDLE
        if signals.estimated_word_count >= self.max_words:
            return BoundaryReason.WORD_COUNT
        if signals.question_likely:
            return BoundaryReason.QUESTION_HINT
        return None
