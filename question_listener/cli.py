"""Command line interface for the streaming question listener."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from typing import Any, Dict, Optional, Set

import sounddevice as sd

from .asr import create_gateway
from .capture import AudioCaptureError, MicrophoneStream
from .config import ExtractionConfig, GatewayChoice, Settings, WhisperConfig, load_settings
from .events import EventType, PipelineEvent
from .extraction import QuestionExtractionPipeline, get_lexicon
from .models import DetectedQuestion, TranscriptionResult, new_id
from .pipeline import StreamOrchestrator
from .wav import WavFormatError, load_wav_file


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def list_audio_devices() -> None:
    devices = sd.query_devices()
    for index, device in enumerate(devices):
        if device["max_input_channels"]:
            print(f"{index:>3}: IN      {device['name']}  ({device['hostapi']})")


def print_settings(settings: Settings) -> None:
    filtered: Dict[str, Any] = settings.model_dump(mode="json")
    if filtered.get("openai"):
        filtered["openai"]["api_key"] = "***redacted***"
    print(json.dumps(filtered, indent=2, ensure_ascii=False))


def _question_line(question: DetectedQuestion) -> str:
    return json.dumps(
        {
            "question": question.refined_text,
            "raw": question.raw_text,
            "confidence": round(question.confidence, 3),
            "timestamp": question.timestamp,
        },
        ensure_ascii=False,
    )


def print_event(event: PipelineEvent) -> None:
    if event.type is EventType.QUESTION_DETECTED:
        print(_question_line(event.payload), flush=True)
    elif event.type is EventType.ERROR:
        print(f"error ({event.payload.kind.value}): {event.payload.message}", file=sys.stderr)


def run_text(text: str, language: str = "ja") -> int:
    """Run only the extraction stages on ``text``; returns the number of questions."""

    config = ExtractionConfig(language=language)
    extractor = QuestionExtractionPipeline(config, get_lexicon(language))
    result = TranscriptionResult(
        id=new_id(),
        text=text,
        timestamp=time.time(),
        confidence=1.0,
        source_chunk_id="cli",
    )
    questions = extractor.extract(result)
    for question in questions:
        print(_question_line(question))
    return len(questions)


async def run_wav(path: str, settings: Settings) -> None:
    pcm = load_wav_file(path, settings.audio.sample_rate)
    batch_bytes = 2 * max(1, int(settings.audio.sample_rate * settings.audio.batch_duration_seconds))

    async with StreamOrchestrator(create_gateway(settings), settings) as orchestrator:
        orchestrator.subscribe(print_event)
        await orchestrator.start_listening()
        for offset in range(0, len(pcm), batch_bytes):
            await orchestrator.submit_audio(pcm[offset : offset + batch_bytes])
        await orchestrator.create_chunk_now()
        await orchestrator.wait_pending()
        await orchestrator.stop_listening()


async def run_microphone(settings: Settings) -> None:
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def handle_stop(*_args) -> None:  # noqa: ANN002
        logging.info("Received stop signal, shutting down.")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_stop)
        except (NotImplementedError, RuntimeError, ValueError):
            signal.signal(sig, lambda *_args: loop.call_soon_threadsafe(stop_event.set))

    pending: Set[asyncio.Task] = set()
    microphone = MicrophoneStream(settings.audio)

    async with StreamOrchestrator(create_gateway(settings), settings) as orchestrator:
        orchestrator.subscribe(print_event)

        async def pump() -> None:
            async with microphone.connect() as stream:
                async for batch in stream:
                    # Each submission may await a transcription; keep ingesting meanwhile.
                    task = asyncio.create_task(orchestrator.submit_audio(batch))
                    pending.add(task)
                    task.add_done_callback(pending.discard)

        await orchestrator.start_listening()
        pump_task = asyncio.create_task(pump(), name="audio-producer")
        stop_task = asyncio.create_task(stop_event.wait())
        done, _ = await asyncio.wait({pump_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        pump_task.cancel()
        stop_task.cancel()
        await orchestrator.stop_listening()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if pump_task in done and not pump_task.cancelled():
            pump_task.result()


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Detect spoken questions in a live audio stream in near real time."
    )
    parser.add_argument("--list-devices", action="store_true", help="List audio input devices and exit.")
    parser.add_argument(
        "--show-config", action="store_true", help="Print loaded configuration and exit."
    )
    parser.add_argument("--wav", help="Process a 16-bit mono WAV file instead of the microphone.")
    parser.add_argument("--text", help="Extract questions from a transcript string and exit.")
    parser.add_argument("--language", default="ja", help="Lexicon for --text (ja or en).")
    parser.add_argument(
        "--gateway",
        choices=[choice.value for choice in GatewayChoice],
        help="Override transcription gateway selection.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if args.list_devices:
        list_audio_devices()
        return

    if args.text is not None:
        run_text(args.text, args.language)
        return

    settings = load_settings()
    if args.gateway:
        update: Dict[str, Any] = {"gateway": GatewayChoice(args.gateway)}
        if update["gateway"] is GatewayChoice.WHISPER and settings.whisper is None:
            update["whisper"] = WhisperConfig()
        settings = settings.model_copy(update=update)

    if args.show_config:
        print_settings(settings)
        return

    try:
        if args.wav:
            asyncio.run(run_wav(args.wav, settings))
        else:
            asyncio.run(run_microphone(settings))
    except (AudioCaptureError, WavFormatError) as exc:
        logging.error("Stopped: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
