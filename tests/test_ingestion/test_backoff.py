"""Tests for the login backoff."""

import pytest

from src.ingestion.backoff import ExponentialBackoff


class TestExponentialBackoff:
    def test_first_delay_is_base(self):
        backoff = ExponentialBackoff(base_delay=5.0, max_delay=60.0, jitter_range=0.0)
        assert backoff.next_delay() == 5.0

    def test_delay_doubles_and_caps(self):
        backoff = ExponentialBackoff(base_delay=5.0, max_delay=30.0, jitter_range=0.0)
        delays = [backoff.next_delay() for _ in range(5)]
        assert delays == [5.0, 10.0, 20.0, 30.0, 30.0]
        assert backoff.attempt == 5

    def test_reset(self):
        backoff = ExponentialBackoff(base_delay=5.0, jitter_range=0.0)
        backoff.next_delay()
        backoff.next_delay()
        backoff.reset()

        assert backoff.attempt == 0
        assert backoff.next_delay() == 5.0

    def test_jitter_stays_in_range(self):
        backoff = ExponentialBackoff(base_delay=10.0, max_delay=10.0, jitter_range=0.1)
        for _ in range(20):
            assert 9.0 <= backoff.next_delay() <= 11.0

    def test_max_below_base_is_raised_to_base(self):
        backoff = ExponentialBackoff(base_delay=5.0, max_delay=1.0, jitter_range=0.0)
        assert backoff.next_delay() == 5.0

    def test_base_must_be_positive(self):
        with pytest.raises(ValueError):
            ExponentialBackoff(base_delay=0)
