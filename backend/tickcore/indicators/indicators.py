"""Technical indicators for signal scoring.

All series functions take plain price sequences and return NumPy arrays
of the same length, with NaN wherever the indicator's minimum history
has not been reached yet. Every value at index i depends only on inputs
0..i (no lookahead).

The recursions follow the conventions the scorer was tuned against:
- EMA is seeded with the first value (no SMA seed period).
- RMA (Wilder) is seeded with the first raw value.
"""

from dataclasses import replace
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from tickcore.models import Bar, BollingerBands, IndicatorConfig, MacdValue

# Substituted for a zero denominator (RSI average loss, DI sum, smoothed TR)
EPSILON = 1e-7


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def ema(values: Sequence[float], period: int) -> np.ndarray:
    """
    Calculate Exponential Moving Average seeded with the first value.

    ema = value * k + prev_ema * (1 - k), k = 2 / (period + 1)

    Args:
        values: Sequence of values
        period: EMA period

    Returns:
        Array of EMA values (defined from the first element on)
    """
    arr = _as_array(values)
    result = np.empty_like(arr)
    if len(arr) == 0:
        return result

    k = 2.0 / (period + 1)
    result[0] = arr[0]
    for i in range(1, len(arr)):
        result[i] = arr[i] * k + result[i - 1] * (1 - k)
    return result


def rma(values: Sequence[float], period: int) -> np.ndarray:
    """
    Calculate Wilder's moving average seeded with the first value.

    rma = (prev * (period - 1) + value) / period

    Leading NaNs in the input are skipped; the seed is the first finite value.
    """
    arr = _as_array(values)
    result = np.full_like(arr, np.nan)
    prev = None
    for i, value in enumerate(arr):
        if np.isnan(value):
            continue
        prev = value if prev is None else (prev * (period - 1) + value) / period
        result[i] = prev
    return result


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate MACD line, signal line and histogram.

    The fast and slow EMAs run from the first bar, but MACD is only
    populated from index ``slow`` on; the signal EMA is seeded there.

    Returns:
        Tuple of (line, signal, hist) arrays
    """
    arr = _as_array(closes)
    n = len(arr)
    line = np.full(n, np.nan)
    if n <= slow:
        return line, line.copy(), line.copy()

    line[slow:] = (ema(arr, fast) - ema(arr, slow))[slow:]
    signal_line = np.full(n, np.nan)
    signal_line[slow:] = ema(line[slow:], signal)
    return line, signal_line, line - signal_line


def bollinger(
    closes: Sequence[float],
    period: int = 20,
    mult: float = 2.0,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate Bollinger Bands over a trailing window.

    middle = SMA(period), upper/lower = middle +/- mult * population std dev.
    Populated once ``period`` bars exist.

    Returns:
        Tuple of (upper, middle, lower) arrays
    """
    arr = _as_array(closes)
    n = len(arr)
    upper = np.full(n, np.nan)
    middle = np.full(n, np.nan)
    lower = np.full(n, np.nan)
    if n < period:
        return upper, middle, lower

    windows = sliding_window_view(arr, period)
    mean = windows.mean(axis=1)
    std = windows.std(axis=1)  # ddof=0: population
    middle[period - 1:] = mean
    upper[period - 1:] = mean + std * mult
    lower[period - 1:] = mean - std * mult
    return upper, middle, lower


def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> np.ndarray:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))

    The first bar has no previous close, so its TR is NaN.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    result = np.full(len(h), np.nan)
    if len(h) < 2:
        return result

    prev_close = c[:-1]
    result[1:] = np.maximum.reduce([
        h[1:] - l[1:],
        np.abs(h[1:] - prev_close),
        np.abs(l[1:] - prev_close),
    ])
    return result


def directional_movement(
    highs: Sequence[float],
    lows: Sequence[float],
) -> tuple[np.ndarray, np.ndarray]:
    """
    Calculate +DM and -DM against the previous bar.

    The larger of up-move / down-move counts, the other is zeroed;
    negative moves count as zero. First bar is NaN.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    plus_dm = np.full(len(h), np.nan)
    minus_dm = np.full(len(h), np.nan)
    if len(h) < 2:
        return plus_dm, minus_dm

    up_move = h[1:] - h[:-1]
    down_move = l[:-1] - l[1:]
    plus_dm[1:] = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm[1:] = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    return plus_dm, minus_dm


def atr_adx(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Calculate ATR and ADX with Wilder's smoothing.

    ATR is the RMA of true range and is defined from the second bar.
    ADX is the RMA of DX, seeded once the bar index exceeds 2 * period
    so the smoothing chain has settled.

    Returns:
        Tuple of (atr, adx) arrays
    """
    smooth_tr = rma(true_range(highs, lows, closes), period)
    plus_dm, minus_dm = directional_movement(highs, lows)
    smooth_plus = rma(plus_dm, period)
    smooth_minus = rma(minus_dm, period)

    n = len(smooth_tr)
    adx = np.full(n, np.nan)
    prev_adx = None
    for i in range(2 * period + 1, n):
        tr_value = smooth_tr[i] or EPSILON
        plus_di = 100 * smooth_plus[i] / tr_value
        minus_di = 100 * smooth_minus[i] / tr_value
        dx = 100 * abs(plus_di - minus_di) / ((plus_di + minus_di) or EPSILON)
        prev_adx = dx if prev_adx is None else (prev_adx * (period - 1) + dx) / period
        adx[i] = prev_adx

    return smooth_tr, adx


def rsi(closes: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Calculate RSI using Wilder's method.

    Average gain/loss are seeded from the first ``period`` changes (so
    RSI starts at index ``period``), then smoothed recursively.
    A zero average loss is replaced by EPSILON.
    """
    arr = _as_array(closes)
    n = len(arr)
    result = np.full(n, np.nan)
    if n <= period:
        return result

    changes = np.diff(arr)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period
    for i in range(period, n):
        if i > period:
            avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
            avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        rs = avg_gain / (avg_loss or EPSILON)
        result[i] = 100 - 100 / (1 + rs)
    return result


def _opt(value: float) -> float | None:
    """Convert NaN to None (not yet computable)."""
    return None if np.isnan(value) else float(value)


class IndicatorCalculator:
    """Calculator for all technical indicators needed by the scorer."""

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    def calculate_all(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
    ) -> dict[str, np.ndarray]:
        """
        Calculate all indicator series for the given price data.

        Returns:
            Dict of indicator name to array (NaN where not computable)
        """
        cfg = self.config
        macd_line, macd_signal, macd_hist = macd(
            closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal
        )
        bb_upper, bb_middle, bb_lower = bollinger(closes, cfg.bb_period, cfg.bb_mult)
        atr_values, adx_values = atr_adx(highs, lows, closes, cfg.adx_period)

        return {
            "ema200": ema(closes, cfg.ema_trend),
            "macd_line": macd_line,
            "macd_signal": macd_signal,
            "macd_hist": macd_hist,
            "bb_upper": bb_upper,
            "bb_middle": bb_middle,
            "bb_lower": bb_lower,
            "atr": atr_values,
            "adx": adx_values,
            "rsi": rsi(closes, cfg.rsi_period),
        }

    def annotate(self, bars: Sequence[Bar]) -> list[Bar]:
        """
        Return copies of ``bars`` with every indicator field recomputed.

        The input bars are never modified; indicator fields that cannot
        be computed yet are None.
        """
        if not bars:
            return []

        values = self.calculate_all(
            [b.high for b in bars],
            [b.low for b in bars],
            [b.close for b in bars],
        )

        annotated = []
        for i, bar in enumerate(bars):
            line = _opt(values["macd_line"][i])
            middle = _opt(values["bb_middle"][i])
            annotated.append(replace(
                bar,
                ema200=_opt(values["ema200"][i]),
                macd=(
                    MacdValue(
                        line=line,
                        signal=float(values["macd_signal"][i]),
                        hist=float(values["macd_hist"][i]),
                    )
                    if line is not None
                    else None
                ),
                bollinger=(
                    BollingerBands(
                        upper=float(values["bb_upper"][i]),
                        middle=middle,
                        lower=float(values["bb_lower"][i]),
                    )
                    if middle is not None
                    else None
                ),
                atr=_opt(values["atr"][i]),
                adx=_opt(values["adx"][i]),
                rsi=_opt(values["rsi"][i]),
            ))
        return annotated
