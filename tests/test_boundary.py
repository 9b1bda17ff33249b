"""Unit tests for the chunk boundary policy."""

from __future__ import annotations

import unittest

from question_listener.boundary import BoundarySignals, ChunkBoundaryPolicy
from question_listener.config import ChunkingConfig
from question_listener.models import BoundaryReason


def _signals(**overrides) -> BoundarySignals:
    values = dict(duration_ms=0.0, time_since_boundary_ms=0.0, estimated_word_count=0, question_likely=False)
    values.update(overrides)
    return BoundarySignals(**values)


class ChunkBoundaryPolicyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = ChunkBoundaryPolicy(ChunkingConfig())

    def test_nothing_fires_below_thresholds(self) -> None:
        signals = _signals(duration_ms=1999.0, time_since_boundary_ms=3999.0, estimated_word_count=39)
        self.assertIsNone(self.policy.decide(signals))

    def test_each_predicate_fires_alone(self) -> None:
        self.assertIs(self.policy.decide(_signals(duration_ms=2000.0)), BoundaryReason.DURATION)
        self.assertIs(self.policy.decide(_signals(time_since_boundary_ms=4000.0)), BoundaryReason.IDLE)
        self.assertIs(self.policy.decide(_signals(estimated_word_count=40)), BoundaryReason.WORD_COUNT)
        self.assertIs(self.policy.decide(_signals(question_likely=True)), BoundaryReason.QUESTION_HINT)

    def test_first_true_predicate_is_reported(self) -> None:
        signals = _signals(duration_ms=2500.0, time_since_boundary_ms=5000.0, question_likely=True)
        self.assertIs(self.policy.decide(signals), BoundaryReason.DURATION)

    def test_thresholds_come_from_config(self) -> None:
        policy = ChunkBoundaryPolicy(
            ChunkingConfig(max_chunk_duration_seconds=0.5, max_idle_seconds=1.0, max_words=5)
        )
        self.assertIs(policy.decide(_signals(duration_ms=500.0)), BoundaryReason.DURATION)
        self.assertIs(policy.decide(_signals(time_since_boundary_ms=1000.0)), BoundaryReason.IDLE)
        self.assertIs(policy.decide(_signals(estimated_word_count=5)), BoundaryReason.WORD_COUNT)


if __name__ == "__main__":
    unittest.main()
