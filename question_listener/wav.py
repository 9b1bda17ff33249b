"""Minimal PCM WAV container used to hand chunks to transcription gateways."""

from __future__ import annotations

import struct
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np

WAV_HEADER_SIZE = 44
_BITS_PER_SAMPLE = 16
_CHANNELS = 1
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class WavFormatError(Exception):
    """Raised when a WAV payload cannot be parsed or is unsupported."""


@dataclass(frozen=True)
class WavHeader:
    sample_rate: int
    channels: int
    bits_per_sample: int
    sample_count: int


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Clamp to [-1, 1] and scale asymmetrically to little-endian int16."""

    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.floor(scaled).astype("<i2").tobytes()


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Wrap float samples in a 44-byte PCM/mono/16-bit WAV container."""

    payload = float_to_pcm16(samples)
    block_align = _CHANNELS * _BITS_PER_SAMPLE // 8
    header = _HEADER.pack(
        b"RIFF",
        36 + len(payload),
        b"WAVE",
        b"fmt ",
        16,
        1,  # PCM
        _CHANNELS,
        sample_rate,
        sample_rate * block_align,
        block_align,
        _BITS_PER_SAMPLE,
        b"data",
        len(payload),
    )
    return header + payload


def read_wav_header(data: bytes) -> WavHeader:
    """Parse the fixed 44-byte header written by :func:`encode_wav`."""

    if len(data) < WAV_HEADER_SIZE:
        raise WavFormatError(f"WAV payload too short ({len(data)} bytes).")
    (
        riff,
        _riff_size,
        wave_tag,
        fmt_tag,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        _byte_rate,
        block_align,
        bits_per_sample,
        data_tag,
        data_size,
    ) = _HEADER.unpack_from(data)
    if riff != b"RIFF" or wave_tag != b"WAVE":
        raise WavFormatError("Missing RIFF/WAVE magic.")
    if fmt_tag != b"fmt " or fmt_size != 16 or audio_format != 1:
        raise WavFormatError("Only uncompressed PCM fmt chunks are supported.")
    if data_tag != b"data":
        raise WavFormatError("Missing data sub-chunk.")
    if block_align == 0:
        raise WavFormatError("Invalid block alignment.")
    return WavHeader(
        sample_rate=sample_rate,
        channels=channels,
        bits_per_sample=bits_per_sample,
        sample_count=data_size // block_align,
    )


def load_wav_file(path: Union[str, Path], sample_rate: int) -> bytes:
    """Return the PCM payload of a 16-bit mono WAV file recorded at ``sample_rate``."""

    try:
        with wave.open(str(path), "rb") as handle:
            if handle.getsampwidth() != 2 or handle.getnchannels() != 1:
                raise WavFormatError(
                    f"{path}: expected 16-bit mono audio, got "
                    f"{handle.getsampwidth() * 8}-bit x{handle.getnchannels()}."
                )
            if handle.getframerate() != sample_rate:
                raise WavFormatError(
                    f"{path}: expected {sample_rate} Hz, got {handle.getframerate()} Hz."
                )
            return handle.readframes(handle.getnframes())
    except wave.Error as exc:
        raise WavFormatError(f"{path}: {exc}") from exc
