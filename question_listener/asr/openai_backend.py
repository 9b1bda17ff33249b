"""OpenAI-compatible HTTP transcription gateway."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from ..config import OpenAIConfig
from ..models import AudioChunk
from .base import TranscriptionGateway, TranscriptionGatewayError


class OpenAITranscriptionGateway(TranscriptionGateway):
    """POST each chunk to ``{base_url}/audio/transcriptions``."""

    def __init__(self, config: OpenAIConfig) -> None:
        self.config = config
        self._url = f"{config.base_url.rstrip('/')}/audio/transcriptions"
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
            )
        return self._session

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def transcribe(self, wav_bytes: bytes, chunk: AudioChunk) -> str:
        session = await self._ensure_session()
        form = aiohttp.FormData()
        form.add_field("file", wav_bytes, filename=f"{chunk.id}.wav", content_type="audio/wav")
        form.add_field("model", self.config.model)
        form.add_field("language", self.config.language)
        form.add_field("response_format", "json")
        form.add_field("temperature", str(self.config.temperature))

        try:
            async with session.post(self._url, data=form) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    raise TranscriptionGatewayError(f"HTTP {resp.status}: {body[:200]}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TranscriptionGatewayError(f"Transcription request failed: {exc}") from exc
        except ValueError as exc:
            raise TranscriptionGatewayError("Transcription response was not valid JSON.") from exc

        if not isinstance(data, dict) or not isinstance(data.get("text", ""), str):
            raise TranscriptionGatewayError(f"Unexpected transcription payload: {data!r}")
        text = data.get("text", "")
        logging.debug("Transcribed chunk %s (%d chars).", chunk.id, len(text))
        return text
