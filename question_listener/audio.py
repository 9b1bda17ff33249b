"""Raw sample accumulation between chunk boundaries."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .models import AudioSampleBatch


def decode_pcm16(data: bytes) -> np.ndarray:
    """Convert little-endian int16 PCM bytes to normalized float32 samples."""

    audio_int16 = np.frombuffer(data, dtype="<i2")
    return audio_int16.astype(np.float32) / 32768.0


@dataclass(frozen=True)
class DrainedAudio:
    """Everything accumulated since the previous boundary."""

    samples: np.ndarray
    duration_ms: float
    estimated_word_count: int


class SampleAccumulator:
    """Own unsent audio and the counters the boundary policy reads.

    ``ingest``, ``drain`` and ``discard`` run under one lock, so concurrent
    triggers never hand the same sample to two chunks and never lose one.
    """

    def __init__(
        self,
        sample_rate: int,
        words_per_second: float = 2.5,
        rate_smoothing: float = 0.3,
    ) -> None:
        self.sample_rate = sample_rate
        self._lock = threading.Lock()
        self._batches: List[np.ndarray] = []
        self._sample_count = 0
        self._boundary_time: Optional[float] = None
        self._words_per_second = words_per_second
        self._rate_smoothing = rate_smoothing

    @property
    def sample_count(self) -> int:
        return self._sample_count

    @property
    def has_audio(self) -> bool:
        return self._sample_count > 0

    @property
    def duration_ms(self) -> float:
        return self._sample_count / self.sample_rate * 1000.0

    @property
    def words_per_second(self) -> float:
        return self._words_per_second

    @property
    def estimated_word_count(self) -> int:
        return int(self.duration_ms / 1000.0 * self._words_per_second)

    def time_since_boundary_ms(self, now: float) -> float:
        if self._boundary_time is None:
            return 0.0
        return max(0.0, (now - self._boundary_time) * 1000.0)

    def ingest(self, batch: AudioSampleBatch) -> None:
        if batch.samples.size == 0:
            return
        with self._lock:
            self._batches.append(np.asarray(batch.samples, dtype=np.float32))
            self._sample_count += int(batch.samples.size)
            if self._boundary_time is None:
                self._boundary_time = batch.received_at

    def drain(self, now: float) -> Optional[DrainedAudio]:
        """Atomically take all accumulated samples; ``None`` if nothing is pending."""

        with self._lock:
            if not self._batches:
                return None
            samples = np.concatenate(self._batches)
            duration_ms = samples.size / self.sample_rate * 1000.0
            drained = DrainedAudio(
                samples=samples,
                duration_ms=duration_ms,
                estimated_word_count=int(duration_ms / 1000.0 * self._words_per_second),
            )
            self._batches = []
            self._sample_count = 0
            self._boundary_time = now
        return drained

    def discard(self) -> int:
        """Drop unsent audio and reset the boundary clock."""

        with self._lock:
            dropped = self._sample_count
            self._batches = []
            self._sample_count = 0
            self._boundary_time = None
        if dropped:
            logging.debug("Discarded %d unsent samples.", dropped)
        return dropped

    def observe_speech_rate(self, word_count: int, duration_ms: float) -> None:
        """Blend the rate measured on a transcribed chunk into the running estimate."""

        if duration_ms <= 0 or word_count <= 0:
            return
        measured = word_count / (duration_ms / 1000.0)
        self._words_per_second = (
            (1.0 - self._rate_smoothing) * self._words_per_second
            + self._rate_smoothing * measured
        )
