"""
Unit tests for RateGovernor.
"""

import pytest

from chat_service.services.rate_governor import RateGovernor


class TestRateGovernor:
    """Tests for per-user admission windows."""

    def test_admits_up_to_limit_then_denies(self):
        governor = RateGovernor(max_requests=3, window_seconds=60)

        decisions = [governor.admit("u1", now=1000.0 + i) for i in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.count for d in decisions[:3]] == [1, 2, 3]
        assert decisions[3].limit == 3

    def test_retry_after_counts_remaining_window(self):
        governor = RateGovernor(max_requests=1, window_seconds=60)
        governor.admit("u1", now=1000.0)

        denied = governor.admit("u1", now=1020.5)

        assert not denied.allowed
        assert denied.retry_after_seconds == 40

    def test_retry_after_is_at_least_one_second(self):
        governor = RateGovernor(max_requests=1, window_seconds=60)
        governor.admit("u1", now=1000.0)

        denied = governor.admit("u1", now=1060.0)

        assert not denied.allowed
        assert denied.retry_after_seconds == 1

    def test_denied_submission_does_not_increment(self):
        governor = RateGovernor(max_requests=2, window_seconds=60)
        governor.admit("u1", now=0.0)
        governor.admit("u1", now=1.0)

        governor.admit("u1", now=2.0)
        governor.admit("u1", now=3.0)

        assert governor.peek("u1").count == 2

    def test_window_resets_after_elapse(self):
        governor = RateGovernor(max_requests=1, window_seconds=60)
        governor.admit("u1", now=1000.0)
        assert not governor.admit("u1", now=1030.0).allowed

        fresh = governor.admit("u1", now=1061.0)

        assert fresh.allowed
        assert fresh.count == 1
        assert governor.peek("u1").window_start == 1061.0

    def test_users_are_independent(self):
        governor = RateGovernor(max_requests=1, window_seconds=60)
        governor.admit("u1", now=0.0)

        assert not governor.admit("u1", now=1.0).allowed
        assert governor.admit("u2", now=1.0).allowed

    def test_purge_stale_drops_only_elapsed_windows(self):
        governor = RateGovernor(max_requests=5, window_seconds=60)
        governor.admit("old", now=0.0)
        governor.admit("edge", now=40.0)
        governor.admit("new", now=50.0)

        removed = governor.purge_stale(now=100.0)

        assert removed == 1
        assert governor.peek("old") is None
        assert governor.peek("edge") is not None
        assert governor.peek("new") is not None
        assert len(governor) == 2

    def test_admit_purges_lazily(self):
        governor = RateGovernor(max_requests=5, window_seconds=60)
        governor.admit("a", now=0.0)
        governor.admit("b", now=0.0)

        governor.admit("c", now=120.0)

        assert len(governor) == 1

    @pytest.mark.parametrize("kwargs", [
        {"max_requests": 0},
        {"window_seconds": 0},
        {"window_seconds": -5},
    ])
    def test_rejects_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            RateGovernor(**kwargs)
