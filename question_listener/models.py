"""Value types shared across the question extraction pipeline."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np


def new_id() -> str:
    return str(uuid.uuid4())


class BoundaryReason(str, enum.Enum):
    """Why a chunk boundary was cut."""

    DURATION = "duration"
    IDLE = "idle"
    WORD_COUNT = "word_count"
    QUESTION_HINT = "question_hint"
    QUESTION_STREAM = "question_stream"
    MANUAL = "manual"


@dataclass
class AudioSampleBatch:
    """Normalized float samples received in one submission."""

    samples: np.ndarray
    received_at: float

    def __len__(self) -> int:
        return int(self.samples.size)


@dataclass(frozen=True)
class AudioChunk:
    """Immutable slice of accumulated audio dispatched as one transcription unit."""

    id: str
    samples: np.ndarray
    timestamp: float
    duration_ms: float
    estimated_word_count: int
    sequence: int
    trigger: BoundaryReason

    @property
    def sample_count(self) -> int:
        return int(self.samples.size)

    def info(self) -> "ChunkInfo":
        return ChunkInfo(
            id=self.id,
            timestamp=self.timestamp,
            duration_ms=self.duration_ms,
            estimated_word_count=self.estimated_word_count,
            sample_count=self.sample_count,
            sequence=self.sequence,
            trigger=self.trigger,
        )


@dataclass(frozen=True)
class ChunkInfo:
    """Chunk metadata published to observers (no sample data)."""

    id: str
    timestamp: float
    duration_ms: float
    estimated_word_count: int
    sample_count: int
    sequence: int
    trigger: BoundaryReason


@dataclass(frozen=True)
class TranscriptionResult:
    id: str
    text: str
    timestamp: float
    confidence: float
    source_chunk_id: str


@dataclass(frozen=True)
class QuestionCandidate:
    """Transcript substring suspected of being a question."""

    text: str
    index: int


@dataclass(frozen=True)
class DetectedQuestion:
    id: str
    raw_text: str
    refined_text: str
    timestamp: float
    confidence: float
    source_transcription_id: Optional[str] = None


@dataclass
class StreamState:
    """Per-session state tracked by the orchestrator."""

    listening: bool = False
    processing: bool = False
    last_activity_time: float = 0.0
    question_log: List[DetectedQuestion] = field(default_factory=list)

    def snapshot(self) -> "StateSnapshot":
        return StateSnapshot(
            listening=self.listening,
            processing=self.processing,
            last_activity_time=self.last_activity_time,
            question_log=tuple(self.question_log),
        )


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only copy of :class:`StreamState` handed to observers."""

    listening: bool
    processing: bool
    last_activity_time: float
    question_log: Tuple[DetectedQuestion, ...] = ()
