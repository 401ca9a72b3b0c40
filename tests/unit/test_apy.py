"""Unit tests for APY tracking."""
from __future__ import annotations

import pytest

from vault_sentinel.analysis.apy import SECONDS_PER_YEAR, ApyTracker, annualize


class TestAnnualize:
    def test_one_percent_per_day(self) -> None:
        growth, apy = annualize(1000.0, 1010.0, 86400)
        assert growth == pytest.approx(0.01)
        assert apy == pytest.approx(0.01 / 86400 * 31536000)
        assert apy == pytest.approx(3.65)

    def test_seconds_per_year(self) -> None:
        assert SECONDS_PER_YEAR == 31_536_000


class TestApyTracker:
    def test_first_observation_is_baseline(self) -> None:
        tracker = ApyTracker()
        obs = tracker.observe("ctx", 1000.0, now=0.0)
        assert obs.apy == 0.0
        assert obs.baseline is True
        state = tracker.state("ctx")
        assert state is not None
        assert state.last_tvl == 1000.0
        assert state.last_timestamp == 0.0

    def test_second_observation_annualizes(self) -> None:
        tracker = ApyTracker()
        tracker.observe("ctx", 1000.0, now=1_000.0)
        obs = tracker.observe("ctx", 1010.0, now=1_000.0 + 86400)
        assert obs.baseline is False
        assert obs.apy == pytest.approx(3.65)
        assert obs.readable == "365.00%"

    def test_unchanged_tvl_is_zero(self) -> None:
        tracker = ApyTracker()
        tracker.observe("ctx", 1000.0, now=0.0)
        assert tracker.observe("ctx", 1000.0, now=300.0).apy == 0.0

    def test_baseline_overwritten_each_time(self) -> None:
        tracker = ApyTracker()
        tracker.observe("ctx", 1000.0, now=0.0)
        tracker.observe("ctx", 1010.0, now=86400.0)
        obs = tracker.observe("ctx", 1010.0, now=172800.0)
        assert obs.apy == 0.0

    def test_contexts_are_independent(self) -> None:
        tracker = ApyTracker()
        tracker.observe("a", 1000.0, now=0.0)
        assert tracker.observe("b", 2000.0, now=10.0).baseline is True

    def test_zero_baseline_restarts(self) -> None:
        tracker = ApyTracker()
        tracker.observe("ctx", 0.0, now=0.0)
        assert tracker.observe("ctx", 100.0, now=60.0).baseline is True

    def test_non_positive_elapsed_treated_as_one_second(self) -> None:
        tracker = ApyTracker()
        tracker.observe("ctx", 1000.0, now=50.0)
        obs = tracker.observe("ctx", 1000.001, now=50.0)
        assert obs.elapsed_seconds == 1.0

    def test_discard(self) -> None:
        tracker = ApyTracker()
        tracker.observe("ctx", 1000.0, now=0.0)
        tracker.discard("ctx")
        assert tracker.state("ctx") is None
