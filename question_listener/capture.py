"""Microphone capture producing PCM batches for the orchestrator."""

from __future__ import annotations

import asyncio
import logging
import queue
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

import numpy as np
import sounddevice as sd

from .config import AudioInputConfig


class AudioCaptureError(Exception):
    """Raised when the audio subsystem cannot be initialised."""


class MicrophoneStream:
    """Async iterator over little-endian int16 mono PCM batches."""

    def __init__(self, config: AudioInputConfig, max_queued_batches: int = 32) -> None:
        self.config = config
        self._queue: "queue.Queue[bytes]" = queue.Queue(maxsize=max_queued_batches)
        self._stream: Optional[sd.RawInputStream] = None
        self._frames_per_batch = max(
            1, int(round(config.sample_rate * config.batch_duration_seconds))
        )

    def _callback(self, indata, frames: int, _time, status: sd.CallbackFlags) -> None:  # noqa: ANN001
        if status:
            if status.input_overflow:
                logging.warning("Audio stream input overflow")
            else:
                logging.warning("Audio stream status: %s", status)

        chunk = bytes(indata)
        if self.config.channels > 1:
            chunk = self._downmix_to_mono(chunk)
        try:
            self._queue.put_nowait(chunk)
        except queue.Full:
            try:
                _ = self._queue.get_nowait()
                self._queue.put_nowait(chunk)
                logging.debug("Dropped one audio batch to keep up with realtime processing.")
            except queue.Empty:
                logging.debug("Audio buffer overflow handled, but queue empty when trimming.")

    def _downmix_to_mono(self, data: bytes) -> bytes:
        """Average multi-channel int16 PCM data down to mono."""

        frames = np.frombuffer(data, dtype="<i2").reshape(-1, self.config.channels)
        return frames.mean(axis=1).astype("<i2").tobytes()

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator["MicrophoneStream", None]:
        try:
            self._stream = sd.RawInputStream(
                samplerate=self.config.sample_rate,
                blocksize=self._frames_per_batch,
                device=self.config.device_index,
                channels=self.config.channels,
                dtype="int16",
                callback=self._callback,
            )
            self._stream.start()
        except Exception as exc:  # noqa: BLE001
            raise AudioCaptureError(f"Failed to open audio input: {exc}") from exc
        logging.info(
            "Capturing audio from device %s at %d Hz.",
            self.config.device_index if self.config.device_index is not None else "default",
            self.config.sample_rate,
        )
        try:
            yield self
        finally:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        loop = asyncio.get_running_loop()
        while self._stream is not None:
            chunk = await loop.run_in_executor(None, self._get_chunk)
            if chunk:
                yield chunk

    def _get_chunk(self) -> bytes:
        try:
            return self._queue.get(timeout=0.5)
        except queue.Empty:
            return b""
