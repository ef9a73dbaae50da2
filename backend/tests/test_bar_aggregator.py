"""Tests for the tick-to-bar aggregator."""

import math
import random

import pytest

from tickcore.bar_aggregator import BarAggregator
from tickcore.models import Bar

MINUTE = 60_000


def make_bar(
    timestamp: int = 0,
    open_price: float = 1.1,
    high: float = 1.2,
    low: float = 1.0,
    close: float = 1.15,
    volume: float = 0.0,
) -> Bar:
    """Helper to create a 1m bar."""
    return Bar(
        timestamp=timestamp,
        open=open_price,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


class TestTickFolding:
    """Tests for folding ticks into the in-progress bar."""

    def test_first_tick_opens_bar(self):
        """The first tick opens a bar with open=high=low=close=price."""
        agg = BarAggregator()

        sealed = agg.add_tick(1.1000, 5_000)

        assert sealed is None
        bar = agg.current_bar
        assert bar.timestamp == 0  # Truncated to the minute
        assert bar.open == bar.high == bar.low == bar.close == 1.1000
        assert agg.history == []

    def test_ticks_in_same_bucket_extend_bar(self):
        """Ticks within the bucket update high, low and close."""
        agg = BarAggregator()

        agg.add_tick(1.1000, 1_000)
        agg.add_tick(1.1050, 10_000)
        agg.add_tick(1.0950, 20_000)
        agg.add_tick(1.1010, 59_999)

        bar = agg.current_bar
        assert bar.open == 1.1000
        assert bar.high == 1.1050
        assert bar.low == 1.0950
        assert bar.close == 1.1010
        assert bar.volume == 0.0

    def test_new_bucket_seals_previous_bar(self):
        """The first tick of a new minute seals the open bar."""
        agg = BarAggregator()
        agg.add_tick(1.1000, 1_000)
        agg.add_tick(1.1020, 30_000)

        sealed = agg.add_tick(1.1030, MINUTE + 500)

        assert sealed is not None
        assert sealed.timestamp == 0
        assert sealed.close == 1.1020
        assert agg.history == [sealed]
        assert agg.current_bar.timestamp == MINUTE
        assert agg.current_bar.open == 1.1030

    def test_gap_in_minutes_seals_once(self):
        """A tick several minutes later seals only the open bar."""
        agg = BarAggregator()
        agg.add_tick(1.1, 0)

        sealed = agg.add_tick(1.2, 5 * MINUTE)

        assert sealed.timestamp == 0
        assert len(agg.history) == 1
        assert agg.current_bar.timestamp == 5 * MINUTE

    def test_volume_accumulates_when_supplied(self):
        agg = BarAggregator()
        agg.add_tick(1.1, 0, volume=2.0)
        agg.add_tick(1.1, 1_000, volume=3.5)

        assert agg.current_bar.volume == 5.5

    def test_last_price(self):
        agg = BarAggregator()
        assert agg.last_price is None

        agg.add_tick(1.1, 0)
        agg.add_tick(1.3, 1_000)

        assert agg.last_price == 1.3

    def test_ohlc_envelope_holds_for_random_ticks(self):
        """Every sealed bar satisfies low <= open, close <= high."""
        rng = random.Random(42)
        agg = BarAggregator()
        price = 1.1
        ts = 0
        for _ in range(2000):
            price = max(0.0001, price + rng.gauss(0, 0.0005))
            ts += rng.randint(100, 20_000)
            agg.add_tick(price, ts)

        assert len(agg.history) > 100
        for bar in agg.history:
            assert bar.low <= min(bar.open, bar.close)
            assert bar.high >= max(bar.open, bar.close)
            assert bar.low <= bar.high


class TestTickRejection:
    """Tests for malformed and out-of-order ticks."""

    def test_out_of_order_tick_rejected(self):
        """A tick before the open bar's bucket start is rejected."""
        agg = BarAggregator()
        agg.add_tick(1.1, 2 * MINUTE + 100)

        result = agg.add_tick(1.5, MINUTE + 100)

        assert result is None
        assert agg.rejected_ticks == 1
        bar = agg.current_bar
        assert bar.timestamp == 2 * MINUTE
        assert bar.high == 1.1  # Untouched

    def test_late_tick_within_bucket_accepted(self):
        """Only ticks before the bucket start are out of order."""
        agg = BarAggregator()
        agg.add_tick(1.1, 30_000)

        agg.add_tick(1.2, 10_000)

        assert agg.rejected_ticks == 0
        assert agg.current_bar.high == 1.2

    @pytest.mark.parametrize("price", [math.nan, math.inf, -math.inf, 0.0, -1.0, "abc", None])
    def test_malformed_price_rejected(self, price):
        agg = BarAggregator()
        agg.add_tick(1.1, 0)

        assert agg.add_tick(price, 1_000) is None
        assert agg.rejected_ticks == 1
        assert agg.current_bar.close == 1.1

    @pytest.mark.parametrize("timestamp", [-1, 1.5, math.nan, math.inf, None, True, "60000"])
    def test_malformed_timestamp_rejected(self, timestamp):
        agg = BarAggregator()

        assert agg.add_tick(1.1, timestamp) is None
        assert agg.rejected_ticks == 1
        assert agg.current_bar is None

    def test_integral_float_timestamp_accepted(self):
        agg = BarAggregator()

        agg.add_tick(1.1, 1_700_000_000_000.0)
        sealed = agg.add_tick(1.2, 1_700_000_060_000.0)

        assert agg.rejected_ticks == 0
        assert sealed.timestamp == 1_700_000_000_000 - 1_700_000_000_000 % MINUTE
        assert isinstance(sealed.timestamp, int)
        assert agg.current_bar.close == 1.2

    def test_tick_not_after_seeded_history_rejected(self):
        """With no open bar, ticks must land after the last sealed bar."""
        agg = BarAggregator()
        agg.seed([make_bar(timestamp=0), make_bar(timestamp=MINUTE)])

        assert agg.add_tick(1.1, MINUTE + 30_000) is None
        assert agg.rejected_ticks == 1

        agg.add_tick(1.1, 2 * MINUTE)
        assert agg.rejected_ticks == 1
        assert agg.current_bar.timestamp == 2 * MINUTE


class TestSeedAndHistory:
    """Tests for seeding and capping history."""

    def test_seed_copies_ohlcv(self):
        bars = [make_bar(timestamp=i * MINUTE) for i in range(3)]
        bars[0].rsi = 55.0

        agg = BarAggregator()
        agg.seed(bars)

        assert len(agg.history) == 3
        assert agg.history[0].rsi is None
        assert agg.history[0] is not bars[0]
        assert agg.last_price == bars[-1].close

    def test_seed_rejects_invalid_bar(self):
        agg = BarAggregator()
        with pytest.raises(ValueError, match="Invalid OHLC"):
            agg.seed([make_bar(high=1.0, low=1.1)])

    def test_seed_rejects_unordered_bars(self):
        agg = BarAggregator()
        with pytest.raises(ValueError, match="strictly increasing"):
            agg.seed([make_bar(timestamp=MINUTE), make_bar(timestamp=MINUTE)])

    def test_history_is_capped(self):
        agg = BarAggregator(max_history=5)
        agg.seed([make_bar(timestamp=i * MINUTE) for i in range(10)])

        assert len(agg.history) == 5
        assert agg.history[0].timestamp == 5 * MINUTE

        agg.add_tick(1.1, 10 * MINUTE)
        agg.add_tick(1.1, 11 * MINUTE)

        assert len(agg.history) == 5
        assert agg.history[-1].timestamp == 10 * MINUTE

    def test_history_returns_copy(self):
        agg = BarAggregator()
        agg.seed([make_bar()])

        agg.history.clear()

        assert len(agg.history) == 1
