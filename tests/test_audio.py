"""Unit tests for PCM decoding and sample accumulation."""

from __future__ import annotations

import threading
import unittest

import numpy as np

from question_listener.audio import SampleAccumulator, decode_pcm16
from question_listener.models import AudioSampleBatch


def _batch(count: int, at: float = 0.0, value: float = 0.1) -> AudioSampleBatch:
    return AudioSampleBatch(samples=np.full(count, value, dtype=np.float32), received_at=at)


class DecodePcmTests(unittest.TestCase):
    def test_divides_by_32768(self) -> None:
        data = np.array([0, 16384, -32768, 32767], dtype="<i2").tobytes()
        samples = decode_pcm16(data)
        self.assertEqual(samples.dtype, np.float32)
        np.testing.assert_allclose(samples, [0.0, 0.5, -1.0, 32767 / 32768], rtol=1e-6)


class SampleAccumulatorTests(unittest.TestCase):
    def test_drain_returns_contiguous_buffer_and_resets(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000)
        accumulator.ingest(_batch(8_000, at=1.0, value=0.1))
        accumulator.ingest(_batch(8_000, at=1.2, value=0.2))
        self.assertAlmostEqual(accumulator.duration_ms, 1000.0)

        drained = accumulator.drain(now=2.0)

        self.assertIsNotNone(drained)
        self.assertEqual(drained.samples.size, 16_000)
        self.assertAlmostEqual(float(drained.samples[0]), 0.1, places=5)
        self.assertAlmostEqual(float(drained.samples[-1]), 0.2, places=5)
        self.assertAlmostEqual(drained.duration_ms, 1000.0)
        self.assertEqual(accumulator.sample_count, 0)
        self.assertEqual(accumulator.duration_ms, 0.0)
        self.assertAlmostEqual(accumulator.time_since_boundary_ms(2.5), 500.0)

    def test_second_drain_is_a_noop(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000)
        accumulator.ingest(_batch(100))
        self.assertIsNotNone(accumulator.drain(now=1.0))
        self.assertIsNone(accumulator.drain(now=1.0))

    def test_boundary_clock_starts_on_first_batch(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000)
        self.assertEqual(accumulator.time_since_boundary_ms(10.0), 0.0)
        accumulator.ingest(_batch(10, at=10.0))
        accumulator.ingest(_batch(10, at=13.0))
        self.assertAlmostEqual(accumulator.time_since_boundary_ms(14.0), 4000.0)

    def test_empty_batch_is_ignored(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000)
        accumulator.ingest(_batch(0, at=5.0))
        self.assertFalse(accumulator.has_audio)
        self.assertEqual(accumulator.time_since_boundary_ms(9.0), 0.0)

    def test_discard_reports_dropped_samples(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000)
        accumulator.ingest(_batch(320))
        accumulator.ingest(_batch(160))
        self.assertEqual(accumulator.discard(), 480)
        self.assertEqual(accumulator.discard(), 0)
        self.assertIsNone(accumulator.drain(now=1.0))

    def test_word_estimate_follows_observed_speech_rate(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000, words_per_second=2.0, rate_smoothing=0.5)
        accumulator.ingest(_batch(16_000 * 4))
        self.assertEqual(accumulator.estimated_word_count, 8)

        accumulator.observe_speech_rate(word_count=12, duration_ms=2000.0)

        self.assertAlmostEqual(accumulator.words_per_second, 4.0)
        self.assertEqual(accumulator.estimated_word_count, 16)

    def test_speech_rate_ignores_silent_chunks(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000, words_per_second=2.5)
        accumulator.observe_speech_rate(word_count=0, duration_ms=2000.0)
        self.assertEqual(accumulator.words_per_second, 2.5)

    def test_concurrent_ingest_and_drain_keep_every_sample_once(self) -> None:
        accumulator = SampleAccumulator(sample_rate=16_000)
        batches_per_writer = 500
        writers = 4
        drained_total = []
        lock = threading.Lock()
        done = threading.Event()

        def writer() -> None:
            for _ in range(batches_per_writer):
                accumulator.ingest(_batch(7))

        def drainer() -> None:
            while not done.is_set():
                drained = accumulator.drain(now=0.0)
                if drained is not None:
                    with lock:
                        drained_total.append(drained.samples.size)

        writer_threads = [threading.Thread(target=writer) for _ in range(writers)]
        drainer_threads = [threading.Thread(target=drainer) for _ in range(2)]
        for thread in drainer_threads + writer_threads:
            thread.start()
        for thread in writer_threads:
            thread.join()
        done.set()
        for thread in drainer_threads:
            thread.join()

        leftover = accumulator.discard()
        self.assertEqual(sum(drained_total) + leftover, writers * batches_per_writer * 7)


if __name__ == "__main__":
    unittest.main()
