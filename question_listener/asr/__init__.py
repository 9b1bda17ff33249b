"""Transcription gateways."""

from __future__ import annotations

from ..config import GatewayChoice, Settings
from .base import TranscriptionGateway, TranscriptionGatewayError
from .openai_backend import OpenAITranscriptionGateway


def create_gateway(settings: Settings) -> TranscriptionGateway:
    """Build the gateway selected by ``settings.gateway``."""

    if settings.gateway is GatewayChoice.OPENAI:
        if not settings.openai:
            raise RuntimeError("OpenAI configuration missing.")
        return OpenAITranscriptionGateway(settings.openai)

    if settings.gateway is GatewayChoice.WHISPER:
        if not settings.whisper:
            raise RuntimeError("Whisper configuration missing.")
        # faster-whisper is an optional extra.
        from .whisper_backend import WhisperTranscriptionGateway

        return WhisperTranscriptionGateway(settings.whisper)

    raise RuntimeError(f"Unsupported gateway: {settings.gateway}")


__all__ = [
    "OpenAITranscriptionGateway",
    "TranscriptionGateway",
    "TranscriptionGatewayError",
    "create_gateway",
]
