"""Configuration loading utilities for the question listener."""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

_TRUTHY = {"1", "true", "yes", "on"}


class AudioInputConfig(BaseModel):
    """Audio capture configuration."""

    device_index: Optional[int] = Field(
        default=None,
        description="Input device index; None selects system default.",
    )
    sample_rate: int = Field(default=16_000, ge=8_000, le=48_000)
    channels: int = Field(default=1, ge=1, le=2)
    batch_duration_seconds: float = Field(
        default=0.25,
        gt=0,
        le=2.0,
        description="Size of each PCM batch handed to the orchestrator.",
    )


class ChunkingConfig(BaseModel):
    """Thresholds of the chunk boundary policy."""

    max_chunk_duration_seconds: float = Field(default=2.0, gt=0, le=30.0)
    max_idle_seconds: float = Field(default=4.0, gt=0, le=60.0)
    max_words: int = Field(default=40, ge=1, le=1000)
    question_hint_window_seconds: float = Field(default=3.0, ge=0, le=30.0)
    words_per_second: float = Field(
        default=2.5,
        gt=0,
        le=20.0,
        description="Initial speech rate used to estimate words in unsent audio.",
    )


class StreamingHintConfig(BaseModel):
    """Sizing of the streaming question hint buffers."""

    recent_transcripts: int = Field(default=10, ge=1, le=100)
    streaming_buffer_chars: int = Field(default=500, ge=16, le=10_000)
    debounce_seconds: float = Field(default=0.5, ge=0, le=10.0)


class ExtractionConfig(BaseModel):
    """Question extraction settings."""

    language: str = Field(default="ja", min_length=2)
    enabled: bool = True
    min_transcript_chars: int = Field(default=3, ge=1)
    min_candidate_chars: int = Field(default=2, ge=1)
    preface_max_iterations: int = Field(default=3, ge=0, le=10)


class GatewayChoice(str, Enum):
    """Supported transcription gateways."""

    OPENAI = "openai"
    WHISPER = "whisper"


class OpenAIConfig(BaseModel):
    """OpenAI-compatible transcription endpoint."""

    api_key: str = Field(..., min_length=8)
    base_url: str = Field(default="https://api.openai.com/v1", min_length=8)
    model: str = Field(default="whisper-1", min_length=1)
    language: str = Field(default="ja", min_length=2)
    temperature: float = Field(default=0.2, ge=0.0, le=1.0)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)


class WhisperConfig(BaseModel):
    """Configuration for the local faster-whisper gateway."""

    model_size: str = Field(default="small", min_length=1)
    device: str = Field(default="auto")
    compute_type: str = Field(default="default")
    language: str = Field(default="ja")
    beam_size: int = Field(default=1, ge=1, le=5)
    vad_filter: bool = Field(default=True)


class Settings(BaseModel):
    """Aggregated settings for the question listener."""

    gateway: GatewayChoice = GatewayChoice.OPENAI
    audio: AudioInputConfig = AudioInputConfig()
    chunking: ChunkingConfig = ChunkingConfig()
    hints: StreamingHintConfig = StreamingHintConfig()
    extraction: ExtractionConfig = ExtractionConfig()
    openai: Optional[OpenAIConfig] = None
    whisper: Optional[WhisperConfig] = None


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load settings from environment variables and .env files."""

    load_dotenv()

    env = os.environ
    try:
        gateway = GatewayChoice(env.get("TRANSCRIPTION_GATEWAY", "openai").lower())
        language = env.get("QUESTION_LANGUAGE", "ja")

        openai_cfg: Optional[OpenAIConfig] = None
        if "OPENAI_API_KEY" in env:
            openai_cfg = OpenAIConfig(
                api_key=env["OPENAI_API_KEY"],
                base_url=env.get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
                model=env.get("OPENAI_TRANSCRIPTION_MODEL", "whisper-1"),
                language=env.get("OPENAI_LANGUAGE", language),
                temperature=float(env.get("OPENAI_TEMPERATURE", "0.2")),
                timeout_seconds=float(env.get("OPENAI_TIMEOUT_SECONDS", "30")),
            )

        if gateway is GatewayChoice.OPENAI and openai_cfg is None:
            raise RuntimeError("OpenAI gateway selected but OPENAI_API_KEY not set.")

        whisper_cfg: Optional[WhisperConfig] = None
        if "WHISPER_MODEL_SIZE" in env or gateway is GatewayChoice.WHISPER:
            whisper_cfg = WhisperConfig(
                model_size=env.get("WHISPER_MODEL_SIZE", "small"),
                device=env.get("WHISPER_DEVICE", "auto"),
                compute_type=env.get("WHISPER_COMPUTE_TYPE", "default"),
                language=env.get("WHISPER_LANGUAGE", language),
                beam_size=int(env.get("WHISPER_BEAM_SIZE", "1")),
                vad_filter=_flag(env.get("WHISPER_VAD_FILTER", "true")),
            )

        return Settings(
            gateway=gateway,
            openai=openai_cfg,
            whisper=whisper_cfg,
            audio=AudioInputConfig(
                device_index=(
                    int(env["AUDIO_DEVICE_INDEX"])
                    if "AUDIO_DEVICE_INDEX" in env
                    else None
                ),
                sample_rate=int(env.get("AUDIO_SAMPLE_RATE", "16000")),
                channels=int(env.get("AUDIO_CHANNELS", "1")),
                batch_duration_seconds=float(env.get("AUDIO_BATCH_DURATION_SECONDS", "0.25")),
            ),
            chunking=ChunkingConfig(
                max_chunk_duration_seconds=float(env.get("CHUNK_MAX_DURATION_SECONDS", "2.0")),
                max_idle_seconds=float(env.get("CHUNK_MAX_IDLE_SECONDS", "4.0")),
                max_words=int(env.get("CHUNK_MAX_WORDS", "40")),
                question_hint_window_seconds=float(
                    env.get("QUESTION_HINT_WINDOW_SECONDS", "3.0")
                ),
                words_per_second=float(env.get("SPEECH_WORDS_PER_SECOND", "2.5")),
            ),
            hints=StreamingHintConfig(
                recent_transcripts=int(env.get("HINT_RECENT_TRANSCRIPTS", "10")),
                streaming_buffer_chars=int(env.get("HINT_STREAMING_BUFFER_CHARS", "500")),
                debounce_seconds=float(env.get("HINT_DEBOUNCE_SECONDS", "0.5")),
            ),
            extraction=ExtractionConfig(
                language=language,
                enabled=_flag(env.get("QUESTION_DETECTION_ENABLED", "true")),
                min_transcript_chars=int(env.get("QUESTION_MIN_TRANSCRIPT_CHARS", "3")),
                min_candidate_chars=int(env.get("QUESTION_MIN_CANDIDATE_CHARS", "2")),
                preface_max_iterations=int(env.get("QUESTION_PREFACE_MAX_ITERATIONS", "3")),
            ),
        )
    except KeyError as exc:
        missing = exc.args[0]
        raise RuntimeError(f"Missing required environment variable: {missing}") from exc
    except ValidationError as exc:
        raise RuntimeError(f"Configuration invalid: {exc}") from exc
    except ValueError as exc:
        raise RuntimeError(f"Configuration value could not be parsed: {exc}") from exc
