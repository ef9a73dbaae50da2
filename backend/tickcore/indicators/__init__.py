"""Technical indicators (pure math, no I/O)."""

from tickcore.indicators.indicators import (
    EPSILON,
    ema,
    rma,
    macd,
    bollinger,
    true_range,
    directional_movement,
    atr_adx,
    rsi,
    IndicatorCalculator,
)

__all__ = [
    "EPSILON",
    "ema",
    "rma",
    "macd",
    "bollinger",
    "true_range",
    "directional_movement",
    "atr_adx",
    "rsi",
    "IndicatorCalculator",
]
