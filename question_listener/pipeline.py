"""High-level orchestration of the streaming question pipeline."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, List, Optional, Set

from .asr import TranscriptionGateway
from .audio import SampleAccumulator, decode_pcm16
from .boundary import BoundarySignals, ChunkBoundaryPolicy
from .config import Settings
from .events import ErrorKind, EventBus, EventType, Observer, PipelineError
from .extraction import Lexicon, QuestionExtractionPipeline, count_words, get_lexicon
from .hints import StreamingHintTracker
from .models import (
    AudioChunk,
    AudioSampleBatch,
    BoundaryReason,
    DetectedQuestion,
    StateSnapshot,
    StreamState,
    TranscriptionResult,
    new_id,
)
from .wav import encode_wav


def _normalize_text(text: str) -> str:
    if not text:
        return ""
    stripped = text.strip()
    if not stripped:
        return ""
    normalized = re.sub(r"\s+", " ", stripped)
    normalized = re.sub(r"\s+([,.;:?!、。？！])", r"\1", normalized)
    return normalized


class StreamOrchestrator:
    """Tie accumulation, boundary decisions, transcription and extraction together.

    Lifecycle is ``Idle -> Listening -> Listening(Processing)``. The only
    suspension point is the gateway call; several chunks may be in flight at
    once and their results are emitted in completion order.
    """

    def __init__(
        self,
        gateway: TranscriptionGateway,
        settings: Optional[Settings] = None,
        lexicon: Optional[Lexicon] = None,
        extractor: Optional[QuestionExtractionPipeline] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or Settings()
        self.sample_rate = self.settings.audio.sample_rate
        self._gateway = gateway
        self._clock = clock
        self._wall_clock = wall_clock
        lexicon = lexicon or get_lexicon(self.settings.extraction.language)
        self._accumulator = SampleAccumulator(
            self.sample_rate, words_per_second=self.settings.chunking.words_per_second
        )
        self._policy = ChunkBoundaryPolicy(self.settings.chunking)
        self._hints = StreamingHintTracker(
            self.settings.hints,
            lexicon,
            hint_window_seconds=self.settings.chunking.question_hint_window_seconds,
        )
        self._extractor = extractor or QuestionExtractionPipeline(self.settings.extraction, lexicon)
        self.events = EventBus()
        self.state = StreamState()
        self._session = 0
        self._sequence = 0
        self._in_flight = 0
        self._background: Set[asyncio.Task] = set()
        self.ingested_samples = 0
        self.discarded_samples = 0

    async def __aenter__(self) -> "StreamOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        return self.events.subscribe(observer)

    @property
    def accumulator(self) -> SampleAccumulator:
        return self._accumulator

    @property
    def hints(self) -> StreamingHintTracker:
        return self._hints

    async def start_listening(self) -> None:
        if self.state.listening:
            logging.info("Already listening.")
            return
        self._session += 1
        self.state.listening = True
        self.state.last_activity_time = self._wall_clock()
        self._emit_state()
        logging.info("Started listening for audio.")

    async def stop_listening(self) -> None:
        if not self.state.listening:
            logging.info("Not currently listening.")
            return
        self.state.listening = False
        self.state.processing = False
        self._drop_pending_audio()
        self._emit_state()
        logging.info("Stopped listening.")

    async def submit_audio(self, data: bytes) -> None:
        """Ingest one little-endian int16 PCM batch and cut a chunk if due."""

        if not self.state.listening:
            logging.debug("Not listening; ignoring %d-byte audio batch.", len(data or b""))
            return
        if not data or len(data) % 2:
            logging.warning("Ignoring malformed audio batch of %d bytes.", len(data or b""))
            return

        try:
            now = self._clock()
            batch = AudioSampleBatch(samples=decode_pcm16(data), received_at=now)
            self._accumulator.ingest(batch)
            self.ingested_samples += len(batch)
            self.state.last_activity_time = self._wall_clock()
            reason = self._policy.decide(self._signals(now))
        except Exception as exc:  # noqa: BLE001
            self._fail(exc)
            return

        if reason is not None:
            await self._create_and_process_chunk(reason)

    async def create_chunk_now(self) -> None:
        """Flush accumulated audio as a chunk regardless of the boundary policy."""

        if self.state.listening:
            await self._create_and_process_chunk(BoundaryReason.MANUAL)

    def get_state(self) -> StateSnapshot:
        return self.state.snapshot()

    def get_questions(self) -> List[DetectedQuestion]:
        return list(self.state.question_log)

    def clear_questions(self) -> None:
        self.state.question_log = []
        self._emit_state()

    async def wait_pending(self) -> None:
        """Wait for chunk tasks started by streaming question triggers."""

        while self._background:
            await asyncio.gather(*list(self._background))

    async def aclose(self) -> None:
        await self.wait_pending()
        self.events.clear()
        self._drop_pending_audio()
        self.state.question_log = []
        await self._gateway.close()

    def _signals(self, now: float) -> BoundarySignals:
        return BoundarySignals(
            duration_ms=self._accumulator.duration_ms,
            time_since_boundary_ms=self._accumulator.time_since_boundary_ms(now),
            estimated_word_count=self._accumulator.estimated_word_count,
            question_likely=self._hints.question_likely(now),
        )

    async def _create_and_process_chunk(self, reason: BoundaryReason) -> None:
        session = self._session
        try:
            chunk = self._cut_chunk(reason)
            if chunk is None:
                return
            self.events.emit(EventType.CHUNK_RECORDED, chunk.info())
            if not self.settings.extraction.enabled:
                logging.debug("Question detection disabled; skipping transcription.")
                return
            wav_bytes = encode_wav(chunk.samples, self.sample_rate)
        except Exception as exc:  # noqa: BLE001
            self._fail(exc)
            return

        text = await self._call_gateway(chunk, wav_bytes, session)
        if text is None:
            return
        if not self._is_current(session):
            logging.info("Discarding transcript of chunk %s received after stop.", chunk.id)
            return

        try:
            self._handle_transcript(chunk, _normalize_text(text))
        except Exception as exc:  # noqa: BLE001
            self._fail(exc, chunk.id)

    def _cut_chunk(self, reason: BoundaryReason) -> Optional[AudioChunk]:
        drained = self._accumulator.drain(self._clock())
        if drained is None:
            logging.debug("Chunk trigger %s found no pending audio.", reason.value)
            return None
        self._sequence += 1
        chunk = AudioChunk(
            id=new_id(),
            samples=drained.samples,
            timestamp=self._wall_clock(),
            duration_ms=drained.duration_ms,
            estimated_word_count=drained.estimated_word_count,
            sequence=self._sequence,
            trigger=reason,
        )
        logging.info(
            "Creating chunk #%d (%s): %.0f ms, ~%d words.",
            chunk.sequence,
            reason.value,
            chunk.duration_ms,
            chunk.estimated_word_count,
        )
        return chunk

    async def _call_gateway(self, chunk: AudioChunk, wav_bytes: bytes, session: int) -> Optional[str]:
        self._in_flight += 1
        self._set_processing(True)
        try:
            return await self._gateway.transcribe(wav_bytes, chunk)
        except Exception as exc:  # noqa: BLE001
            if not self._is_current(session):
                logging.debug("Ignoring failure of chunk %s received after stop: %s", chunk.id, exc)
                return None
            logging.error("Transcription of chunk %s failed: %s", chunk.id, exc)
            self.events.emit(
                EventType.ERROR,
                PipelineError(
                    kind=ErrorKind.GATEWAY,
                    message=str(exc) or type(exc).__name__,
                    chunk_id=chunk.id,
                ),
            )
            return None
        finally:
            self._in_flight -= 1
            self._set_processing(self._in_flight > 0)

    def _handle_transcript(self, chunk: AudioChunk, text: str) -> None:
        now = self._clock()
        result = TranscriptionResult(
            id=new_id(),
            text=text,
            timestamp=chunk.timestamp,
            confidence=1.0,
            source_chunk_id=chunk.id,
        )
        self.events.emit(EventType.TRANSCRIPTION_COMPLETED, result)
        logging.debug("Transcript for chunk %s: %s", chunk.id, text)

        self._accumulator.observe_speech_rate(count_words(text), chunk.duration_ms)
        self._hints.record_transcript(text, now)
        if self._hints.observe_fragment(text, now) and self._accumulator.has_audio:
            logging.info("Triggering immediate chunk after streaming question pattern.")
            self._spawn(self._create_and_process_chunk(BoundaryReason.QUESTION_STREAM))

        if not text:
            return
        questions = self._extractor.extract(result)
        for question in questions:
            self.state.question_log.append(question)
            self.events.emit(EventType.QUESTION_DETECTED, question)
            logging.info("Question detected: %s", question.refined_text)
        if questions:
            self._emit_state()

    def _is_current(self, session: int) -> bool:
        return self.state.listening and session == self._session

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _set_processing(self, processing: bool) -> None:
        if not self.state.listening:
            return
        if self.state.processing != processing:
            self.state.processing = processing
            self._emit_state()

    def _drop_pending_audio(self) -> None:
        self.discarded_samples += self._accumulator.discard()
        self._hints.reset()

    def _fail(self, exc: Exception, chunk_id: Optional[str] = None) -> None:
        logging.exception("Internal pipeline error: %s", exc)
        self.events.emit(
            EventType.ERROR,
            PipelineError(kind=ErrorKind.INTERNAL, message=str(exc) or type(exc).__name__, chunk_id=chunk_id),
        )
        self.state.listening = False
        self.state.processing = False
        self._drop_pending_audio()
        self._emit_state()

    def _emit_state(self) -> None:
        self.events.emit(EventType.STATE_CHANGED, self.state.snapshot())
