"""Tests for sliding-window rate estimation."""

import math

import pytest

from torrent_panel.rate_window import RateWindow


class TestRate:
    """Tests for RateWindow.rate()."""

    def test_unknown_key_is_zero(self) -> None:
        """Test that a key never recorded has no rate."""
        assert RateWindow().rate("1.2.3.4:6881") == 0

    def test_single_sample_is_zero(self) -> None:
        """Test that one sample is not enough for a rate."""
        window = RateWindow()
        window.record("peer", 0, 500)
        assert window.rate("peer") == 0

    def test_two_samples_ten_seconds_apart(self) -> None:
        """Test 1000 bytes over 10 seconds gives 100 bytes/s."""
        window = RateWindow()
        window.record("peer", 0, 0)
        window.record("peer", 10_000, 1000)
        assert window.rate("peer") == pytest.approx(100)

    def test_uses_oldest_and_newest_samples(self) -> None:
        """Test that the slope spans the whole window, not the last two polls."""
        window = RateWindow()
        window.record("peer", 0, 0)
        window.record("peer", 1000, 900)
        window.record("peer", 2000, 1000)
        assert window.rate("peer") == pytest.approx(500)

    def test_decreasing_counter_gives_negative_rate(self) -> None:
        """Test that counter resets are reported raw, not clamped."""
        window = RateWindow()
        window.record("peer", 0, 1000)
        window.record("peer", 2000, 0)
        assert window.rate("peer") == pytest.approx(-500)

    def test_keys_are_independent(self) -> None:
        """Test that each key has its own history."""
        window = RateWindow()
        window.record("a", 0, 0)
        window.record("a", 1000, 100)
        window.record("b", 0, 0)
        window.record("b", 1000, 300)
        assert window.rate("a") == pytest.approx(100)
        assert window.rate("b") == pytest.approx(300)


class TestEviction:
    """Tests for the retention window."""

    def test_sample_older_than_window_is_evicted(self) -> None:
        """Test that t=0 is gone once t=11000 is recorded."""
        window = RateWindow()
        window.record("peer", 0, 0)
        window.record("peer", 11_000, 1000)
        assert len(window.history("peer")) == 1
        assert window.rate("peer") == 0

    def test_sample_exactly_at_window_edge_is_kept(self) -> None:
        """Test that a sample exactly WINDOW old is still retained."""
        window = RateWindow()
        window.record("peer", 0, 0)
        window.record("peer", 10_000, 1000)
        assert len(window.history("peer")) == 2

    def test_all_retained_samples_inside_window(self) -> None:
        """Test the retention invariant after many polls."""
        window = RateWindow(window_ms=3000)
        for second in range(20):
            window.record("peer", second * 1000, second * 100)
        history = window.history("peer")
        assert all(19_000 - entry.timestamp <= 3000 for entry in history)
        assert window.rate("peer") == pytest.approx(100)


class TestRecordValidation:
    """Tests for inputs record() ignores."""

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_counter_is_ignored(self, value: float) -> None:
        """Test that a non-finite counter leaves the history untouched."""
        window = RateWindow()
        window.record("peer", 0, 0)
        window.record("peer", 1000, 100)
        window.record("peer", 2000, value)
        assert len(window.history("peer")) == 2
        assert window.rate("peer") == pytest.approx(100)

    def test_non_numeric_counter_is_ignored(self) -> None:
        """Test that garbage does not create history."""
        window = RateWindow()
        window.record("peer", 0, "lots")  # type: ignore[arg-type]
        assert "peer" not in window

    def test_out_of_order_sample_is_ignored(self) -> None:
        """Test that timestamps stay strictly increasing."""
        window = RateWindow()
        window.record("peer", 1000, 0)
        window.record("peer", 1000, 500)
        window.record("peer", 500, 900)
        assert len(window.history("peer")) == 1
        assert window.rate("peer") == 0


class TestForget:
    """Tests for dropping history."""

    def test_forget_drops_key(self) -> None:
        """Test that forget removes all history of a key."""
        window = RateWindow()
        window.record("peer", 0, 0)
        window.record("peer", 1000, 100)
        window.forget("peer")
        assert "peer" not in window
        assert window.rate("peer") == 0

    def test_forget_unknown_key(self) -> None:
        """Test that forgetting an unknown key is harmless."""
        RateWindow().forget("nobody")

    def test_retain_forgets_missing_keys(self) -> None:
        """Test that retain keeps only the given keys."""
        window = RateWindow()
        for key in ("a", "b", "c"):
            window.record(key, 0, 0)
        stale = window.retain({"a", "c"})
        assert stale == ["b"]
        assert sorted(window) == ["a", "c"]
