"""Unit tests for environment-driven settings."""

from __future__ import annotations

import unittest
from unittest import mock

from question_listener.config import GatewayChoice, Settings, load_settings


class LoadSettingsTests(unittest.TestCase):
    """Exercise ``load_settings`` with a controlled environment."""

    def setUp(self) -> None:
        load_settings.cache_clear()
        patcher = mock.patch("question_listener.config.load_dotenv")
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(load_settings.cache_clear)

    def load(self, env: dict) -> Settings:
        with mock.patch.dict("os.environ", env, clear=True):
            return load_settings()

    def test_openai_defaults(self) -> None:
        settings = self.load({"OPENAI_API_KEY": "sk-test-123456"})
        self.assertIs(settings.gateway, GatewayChoice.OPENAI)
        self.assertEqual(settings.openai.model, "whisper-1")
        self.assertEqual(settings.openai.language, "ja")
        self.assertAlmostEqual(settings.openai.temperature, 0.2)
        self.assertIsNone(settings.whisper)
        self.assertEqual(settings.audio.sample_rate, 16_000)
        self.assertAlmostEqual(settings.chunking.max_chunk_duration_seconds, 2.0)
        self.assertAlmostEqual(settings.chunking.max_idle_seconds, 4.0)
        self.assertEqual(settings.chunking.max_words, 40)
        self.assertAlmostEqual(settings.chunking.question_hint_window_seconds, 3.0)
        self.assertEqual(settings.hints.recent_transcripts, 10)
        self.assertEqual(settings.hints.streaming_buffer_chars, 500)
        self.assertTrue(settings.extraction.enabled)

    def test_missing_api_key_is_reported(self) -> None:
        with self.assertRaises(RuntimeError) as ctx:
            self.load({})
        self.assertIn("OPENAI_API_KEY", str(ctx.exception))

    def test_whisper_gateway_needs_no_key(self) -> None:
        settings = self.load(
            {
                "TRANSCRIPTION_GATEWAY": "WHISPER",
                "WHISPER_MODEL_SIZE": "base",
                "WHISPER_VAD_FILTER": "no",
                "QUESTION_LANGUAGE": "en",
            }
        )
        self.assertIs(settings.gateway, GatewayChoice.WHISPER)
        self.assertEqual(settings.whisper.model_size, "base")
        self.assertFalse(settings.whisper.vad_filter)
        self.assertEqual(settings.whisper.language, "en")
        self.assertEqual(settings.extraction.language, "en")

    def test_overrides_are_parsed(self) -> None:
        settings = self.load(
            {
                "OPENAI_API_KEY": "sk-test-123456",
                "AUDIO_DEVICE_INDEX": "3",
                "CHUNK_MAX_DURATION_SECONDS": "1.5",
                "CHUNK_MAX_WORDS": "20",
                "QUESTION_DETECTION_ENABLED": "0",
            }
        )
        self.assertEqual(settings.audio.device_index, 3)
        self.assertAlmostEqual(settings.chunking.max_chunk_duration_seconds, 1.5)
        self.assertEqual(settings.chunking.max_words, 20)
        self.assertFalse(settings.extraction.enabled)

    def test_invalid_values_raise_runtime_error(self) -> None:
        with self.assertRaises(RuntimeError):
            self.load({"OPENAI_API_KEY": "sk-test-123456", "AUDIO_SAMPLE_RATE": "10"})
        load_settings.cache_clear()
        with self.assertRaises(RuntimeError):
            self.load({"OPENAI_API_KEY": "sk-test-123456", "CHUNK_MAX_WORDS": "many"})
        load_settings.cache_clear()
        with self.assertRaises(RuntimeError):
            self.load({"TRANSCRIPTION_GATEWAY": "carrier-pigeon"})

    def test_settings_default_constructible(self) -> None:
        settings = Settings()
        self.assertIsNone(settings.openai)
        self.assertEqual(settings.extraction.language, "ja")


if __name__ == "__main__":
    unittest.main()
