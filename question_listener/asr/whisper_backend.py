"""Local faster-whisper transcription gateway."""

from __future__ import annotations

import asyncio
import logging

import numpy as np
from faster_whisper import WhisperModel  # type: ignore

from ..audio import decode_pcm16
from ..config import WhisperConfig
from ..models import AudioChunk
from ..wav import WAV_HEADER_SIZE
from .base import TranscriptionGateway, TranscriptionGatewayError


class WhisperTranscriptionGateway(TranscriptionGateway):
    """Run faster-whisper in the default executor, one chunk at a time."""

    def __init__(self, config: WhisperConfig) -> None:
        self.config = config
        try:
            self._model = WhisperModel(
                model_size_or_path=config.model_size,
                device=config.device,
                compute_type=config.compute_type,
            )
        except Exception as exc:  # pylint: disable=broad-except
            raise TranscriptionGatewayError(f"Failed to load Whisper model: {exc}") from exc
        self._lock = asyncio.Lock()

    async def transcribe(self, wav_bytes: bytes, chunk: AudioChunk) -> str:
        audio = decode_pcm16(wav_bytes[WAV_HEADER_SIZE:])
        if audio.size == 0:
            return ""

        loop = asyncio.get_running_loop()
        async with self._lock:
            try:
                return await loop.run_in_executor(None, self._run_transcription, audio)
            except Exception as exc:  # pylint: disable=broad-except
                logging.exception("Whisper transcription failed: %s", exc)
                raise TranscriptionGatewayError("Whisper transcription failed.") from exc

    def _run_transcription(self, audio: np.ndarray) -> str:
        segments, _info = self._model.transcribe(
            audio=audio,
            language=self.config.language,
            beam_size=self.config.beam_size,
            vad_filter=self.config.vad_filter,
            condition_on_previous_text=False,
        )

        texts = []
        for segment in segments:
            text = segment.text.strip()
            if text:
                texts.append(text)
        return " ".join(texts).strip()
