"""Tests for the command line entry points and microphone helpers."""

from __future__ import annotations

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

import numpy as np

try:
    import sounddevice  # noqa: F401
except OSError as exc:  # PortAudio missing on the host
    raise unittest.SkipTest(f"sounddevice unavailable: {exc}")

from question_listener import cli
from question_listener.asr import TranscriptionGateway
from question_listener.capture import MicrophoneStream
from question_listener.config import AudioInputConfig, ChunkingConfig, GatewayChoice, OpenAIConfig, Settings
from question_listener.events import ErrorKind, EventType, PipelineError, PipelineEvent
from question_listener.wav import encode_wav


class ScriptedGateway(TranscriptionGateway):
    def __init__(self, text: str) -> None:
        self.text = text
        self.calls = 0
        self.closed = False

    async def transcribe(self, wav_bytes, chunk) -> str:  # noqa: ANN001
        self.calls += 1
        return self.text

    async def close(self) -> None:
        self.closed = True


class RunTextTests(unittest.TestCase):
    def test_prints_one_json_line_per_question(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            count = cli.run_text("何時に始まりますか？それから誰が参加しますか？")
        lines = [json.loads(line) for line in buffer.getvalue().splitlines()]
        self.assertEqual(count, 2)
        self.assertEqual([line["question"] for line in lines], ["何時に始まりますか？", "誰が参加しますか？"])
        self.assertEqual(lines[0]["confidence"], 1.0)

    def test_statement_prints_nothing(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            count = cli.run_text("今日は天気がいいですね")
        self.assertEqual(count, 0)
        self.assertEqual(buffer.getvalue(), "")

    def test_main_text_mode_skips_settings(self) -> None:
        buffer = io.StringIO()
        with mock.patch.object(cli, "load_settings") as load, redirect_stdout(buffer):
            cli.main(["--text", "Where is the office?", "--language", "en"])
        load.assert_not_called()
        self.assertEqual(json.loads(buffer.getvalue())["question"], "Where is the office?")


class ShowConfigTests(unittest.TestCase):
    def test_api_key_is_redacted(self) -> None:
        settings = Settings(openai=OpenAIConfig(api_key="sk-secret-value"))
        buffer = io.StringIO()
        with mock.patch.object(cli, "load_settings", return_value=settings), redirect_stdout(buffer):
            cli.main(["--show-config"])
        output = buffer.getvalue()
        self.assertNotIn("sk-secret-value", output)
        self.assertEqual(json.loads(output)["openai"]["api_key"], "***redacted***")

    def test_gateway_override_adds_whisper_defaults(self) -> None:
        settings = Settings(openai=OpenAIConfig(api_key="sk-secret-value"))
        buffer = io.StringIO()
        with mock.patch.object(cli, "load_settings", return_value=settings), redirect_stdout(buffer):
            cli.main(["--show-config", "--gateway", "whisper"])
        dumped = json.loads(buffer.getvalue())
        self.assertEqual(dumped["gateway"], GatewayChoice.WHISPER.value)
        self.assertEqual(dumped["whisper"]["model_size"], "small")


class PrintEventTests(unittest.TestCase):
    def test_errors_go_to_stderr(self) -> None:
        stderr = io.StringIO()
        stdout = io.StringIO()
        event = PipelineEvent(EventType.ERROR, PipelineError(ErrorKind.GATEWAY, "HTTP 500"))
        with redirect_stderr(stderr), redirect_stdout(stdout):
            cli.print_event(event)
        self.assertIn("gateway", stderr.getvalue())
        self.assertEqual(stdout.getvalue(), "")


class RunWavTests(unittest.IsolatedAsyncioTestCase):
    async def test_wav_file_is_streamed_and_flushed(self) -> None:
        samples = np.zeros(16_000 * 3, dtype=np.float32)
        gateway = ScriptedGateway("いつ届きますか？")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "speech.wav"
            path.write_bytes(encode_wav(samples, 16_000))
            buffer = io.StringIO()
            with mock.patch.object(cli, "create_gateway", return_value=gateway), redirect_stdout(buffer):
                settings = Settings(chunking=ChunkingConfig(question_hint_window_seconds=0))
                await cli.run_wav(os.fspath(path), settings)

        # One duration cut at 2 s, then the remaining second is flushed.
        self.assertEqual(gateway.calls, 2)
        self.assertTrue(gateway.closed)
        questions = [json.loads(line)["question"] for line in buffer.getvalue().splitlines()]
        self.assertEqual(questions, ["いつ届きますか？", "いつ届きますか？"])


class MicrophoneStreamTests(unittest.TestCase):
    def test_downmix_averages_channels(self) -> None:
        stream = MicrophoneStream(AudioInputConfig(channels=2))
        stereo = np.array([[100, 300], [-200, -400]], dtype="<i2").tobytes()
        mono = np.frombuffer(stream._downmix_to_mono(stereo), dtype="<i2")
        self.assertEqual(mono.tolist(), [200, -300])

    def test_full_queue_drops_oldest_batch(self) -> None:
        stream = MicrophoneStream(AudioInputConfig(), max_queued_batches=2)
        for value in (1, 2, 3):
            stream._callback(np.full(4, value, dtype="<i2").tobytes(), 4, None, None)
        first = np.frombuffer(stream._get_chunk(), dtype="<i2")
        second = np.frombuffer(stream._get_chunk(), dtype="<i2")
        self.assertEqual((first[0], second[0]), (2, 3))


if __name__ == "__main__":
    unittest.main()
