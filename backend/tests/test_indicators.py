"""Tests for technical indicators."""

import math
import random

import numpy as np
import pytest

from tickcore.indicators import (
    EPSILON,
    IndicatorCalculator,
    atr_adx,
    bollinger,
    ema,
    macd,
    rma,
    rsi,
    true_range,
)
from tickcore.models import Bar, IndicatorConfig


def make_random_bars(n: int = 300, seed: int = 7, start: float = 1.1) -> list[Bar]:
    """Helper to create a random-walk series of valid 1m bars."""
    rng = random.Random(seed)
    bars = []
    close = start
    for i in range(n):
        open_price = close
        close = max(0.01, open_price + rng.gauss(0, 0.001))
        high = max(open_price, close) + abs(rng.gauss(0, 0.0005))
        low = min(open_price, close) - abs(rng.gauss(0, 0.0005))
        bars.append(Bar(timestamp=i * 60_000, open=open_price, high=high, low=low, close=close))
    return bars


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeded_with_first_value(self):
        """EMA starts at the first value, with no seed period."""
        result = ema([10.0, 20.0, 20.0], 3)  # k = 0.5

        assert result[0] == 10.0
        assert result[1] == 15.0
        assert result[2] == 17.5

    def test_ema_constant(self):
        result = ema([5.0] * 50, 200)
        assert np.allclose(result, 5.0)

    def test_ema_empty(self):
        assert len(ema([], 10)) == 0


class TestRMA:
    """Tests for Wilder's moving average."""

    def test_rma_seed_and_recursion(self):
        result = rma([4.0, 8.0], 4)

        assert result[0] == 4.0
        assert result[1] == 5.0  # (4 * 3 + 8) / 4

    def test_rma_skips_leading_nan(self):
        result = rma([math.nan, 2.0, 2.0], 14)

        assert math.isnan(result[0])
        assert result[1] == 2.0
        assert result[2] == 2.0


class TestMACD:
    """Tests for MACD calculation."""

    def test_macd_not_populated_before_slow_period(self):
        closes = [1.0 + i * 0.01 for i in range(26)]
        line, signal, hist = macd(closes)

        assert all(math.isnan(v) for v in line)
        assert all(math.isnan(v) for v in signal)
        assert all(math.isnan(v) for v in hist)

    def test_macd_populated_from_index_26(self):
        closes = [1.0 + i * 0.01 for i in range(40)]
        line, signal, hist = macd(closes)

        assert math.isnan(line[25])
        assert not math.isnan(line[26])
        # Signal EMA is seeded with the first line value
        assert signal[26] == line[26]
        assert hist[26] == 0.0
        assert not math.isnan(hist[39])

    def test_macd_positive_in_uptrend(self):
        closes = [1.0 + i * 0.01 for i in range(60)]
        line, _, _ = macd(closes)

        assert line[-1] > 0


class TestBollinger:
    """Tests for Bollinger Bands."""

    def test_not_populated_before_period(self):
        upper, middle, lower = bollinger([1.0] * 19, 20)

        assert all(math.isnan(v) for v in middle)

    def test_populated_at_period(self):
        closes = [float(i) for i in range(1, 21)]
        upper, middle, lower = bollinger(closes, 20, 2.0)

        assert math.isnan(middle[18])
        assert middle[19] == pytest.approx(10.5)
        std = np.std(closes)  # population
        assert upper[19] == pytest.approx(10.5 + 2 * std)
        assert lower[19] == pytest.approx(10.5 - 2 * std)

    def test_constant_prices_collapse_bands(self):
        upper, middle, lower = bollinger([1.1] * 25, 20)

        assert upper[-1] == pytest.approx(1.1)
        assert lower[-1] == pytest.approx(1.1)

    def test_band_order(self):
        """lower <= middle <= upper wherever populated."""
        closes = [b.close for b in make_random_bars(300)]
        upper, middle, lower = bollinger(closes)

        for u, m, l in zip(upper[19:], middle[19:], lower[19:]):
            assert l <= m <= u


class TestATRADX:
    """Tests for true range, ATR and ADX."""

    def test_true_range_uses_previous_close(self):
        highs = [1.0, 1.5]
        lows = [0.9, 1.4]
        closes = [1.0, 1.45]

        result = true_range(highs, lows, closes)

        assert math.isnan(result[0])
        assert result[1] == pytest.approx(0.5)  # Gap up: high - prev close

    def test_atr_constant_range(self):
        n = 40
        atr, _ = atr_adx([1.2] * n, [1.0] * n, [1.1] * n, 14)

        assert math.isnan(atr[0])
        assert atr[1] == pytest.approx(0.2)
        assert atr[-1] == pytest.approx(0.2)

    def test_adx_populated_after_twice_period(self):
        bars = make_random_bars(60)
        _, adx = atr_adx(
            [b.high for b in bars], [b.low for b in bars], [b.close for b in bars], 14
        )

        assert all(math.isnan(v) for v in adx[:29])
        assert not math.isnan(adx[29])

    def test_adx_flat_market_is_zero(self):
        """Zero movement is guarded by epsilon, not an error."""
        n = 40
        atr, adx = atr_adx([1.1] * n, [1.1] * n, [1.1] * n, 14)

        assert atr[-1] == 0.0
        assert adx[-1] == 0.0

    def test_adx_strong_trend(self):
        n = 80
        highs = [1.0 + i * 0.01 + 0.005 for i in range(n)]
        lows = [1.0 + i * 0.01 - 0.005 for i in range(n)]
        closes = [1.0 + i * 0.01 for i in range(n)]

        _, adx = atr_adx(highs, lows, closes, 14)

        assert adx[-1] > 25

    def test_adx_in_range(self):
        bars = make_random_bars(300)
        _, adx = atr_adx(
            [b.high for b in bars], [b.low for b in bars], [b.close for b in bars], 14
        )

        populated = adx[~np.isnan(adx)]
        assert len(populated) > 0
        assert np.all((populated >= 0) & (populated <= 100))


class TestRSI:
    """Tests for RSI."""

    def test_rsi_starts_at_period(self):
        closes = [b.close for b in make_random_bars(30)]
        result = rsi(closes, 14)

        assert math.isnan(result[13])
        assert not math.isnan(result[14])

    def test_rsi_all_gains(self):
        """Zero average loss uses epsilon instead of dividing by zero."""
        result = rsi([1.0 + i * 0.01 for i in range(30)], 14)

        assert result[-1] > 99.99
        assert result[-1] <= 100

    def test_rsi_all_losses(self):
        result = rsi([2.0 - i * 0.01 for i in range(30)], 14)

        assert result[-1] == 0.0

    def test_rsi_in_range(self):
        closes = [b.close for b in make_random_bars(500, seed=3)]
        result = rsi(closes, 14)

        populated = result[~np.isnan(result)]
        assert np.all((populated >= 0) & (populated <= 100))

    def test_epsilon_value(self):
        assert EPSILON == 1e-7


class TestIndicatorCalculator:
    """Tests for IndicatorCalculator."""

    def test_annotate_empty(self):
        assert IndicatorCalculator().annotate([]) == []

    def test_annotate_does_not_modify_input(self):
        bars = make_random_bars(50)

        annotated = IndicatorCalculator().annotate(bars)

        assert bars[-1].rsi is None
        assert annotated[-1].rsi is not None
        assert annotated[-1].close == bars[-1].close

    def test_fields_absent_before_warmup(self):
        annotated = IndicatorCalculator().annotate(make_random_bars(40))

        first = annotated[0]
        assert first.ema200 is not None  # EMA from the first bar
        assert first.macd is None
        assert first.bollinger is None
        assert first.adx is None
        assert first.rsi is None
        assert annotated[13].rsi is None
        assert annotated[18].bollinger is None
        assert annotated[25].macd is None
        assert annotated[28].adx is None

    def test_fields_present_after_warmup(self):
        last = IndicatorCalculator().annotate(make_random_bars(40))[-1]

        assert last.macd is not None
        assert last.macd.hist == pytest.approx(last.macd.line - last.macd.signal)
        assert last.bollinger.lower <= last.bollinger.middle <= last.bollinger.upper
        assert last.atr is not None
        assert last.adx is not None
        assert 0 <= last.rsi <= 100

    def test_no_lookahead(self):
        """A bar's indicators do not change when later bars are appended."""
        bars = make_random_bars(120)
        calc = IndicatorCalculator()

        full = calc.annotate(bars)
        prefix = calc.annotate(bars[:60])

        a, b = prefix[-1], full[59]
        assert a.ema200 == pytest.approx(b.ema200)
        assert a.macd.line == pytest.approx(b.macd.line)
        assert a.macd.signal == pytest.approx(b.macd.signal)
        assert a.bollinger.middle == pytest.approx(b.bollinger.middle)
        assert a.adx == pytest.approx(b.adx)
        assert a.rsi == pytest.approx(b.rsi)

    def test_custom_config(self):
        calc = IndicatorCalculator(IndicatorConfig(rsi_period=5, bb_period=10))
        annotated = calc.annotate(make_random_bars(12))

        assert annotated[4].rsi is None
        assert annotated[5].rsi is not None
        assert annotated[8].bollinger is None
        assert annotated[9].bollinger is not None
