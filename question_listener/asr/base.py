"""Abstractions shared by transcription gateways."""

from __future__ import annotations

import abc

from ..models import AudioChunk


class TranscriptionGatewayError(Exception):
    """Raised when the speech-to-text service fails or answers malformed data."""


class TranscriptionGateway(abc.ABC):
    """Interface to the external speech-to-text service.

    ``transcribe`` receives the chunk already wrapped in a WAV container and
    returns the transcript text, possibly empty for silence.
    """

    async def __aenter__(self) -> "TranscriptionGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    async def close(self) -> None:
        """Release network sessions or models."""

    @abc.abstractmethod
    async def transcribe(self, wav_bytes: bytes, chunk: AudioChunk) -> str:
        """Return the transcript of one encoded chunk."""
