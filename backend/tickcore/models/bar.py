"""Bar (candlestick) data models.

Bars are hot path objects: they are created for every minute of the
stream and re-annotated on every bar close, so they use
@dataclass(slots=True), float prices and epoch-millisecond timestamps.
"""

import math
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class MacdValue:
    """MACD line, signal line and histogram for one bar."""

    line: float
    signal: float
    hist: float


@dataclass(slots=True, frozen=True)
class BollingerBands:
    """Bollinger bands for one bar."""

    upper: float
    middle: float
    lower: float


@dataclass(slots=True)
class Bar:
    """One interval's OHLCV summary plus the indicators attached to it.

    ``timestamp`` is the interval start in epoch milliseconds. Indicator
    fields stay None until enough history exists to compute them.
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    ema200: float | None = None
    macd: MacdValue | None = None
    bollinger: BollingerBands | None = None
    atr: float | None = None
    adx: float | None = None
    rsi: float | None = None

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) bar."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) bar."""
        return self.close < self.open

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the bar."""
        return self.high - self.low

    @property
    def is_valid(self) -> bool:
        """Check the OHLC envelope: low <= open, close <= high."""
        values = (self.open, self.high, self.low, self.close, self.volume)
        if not all(math.isfinite(v) for v in values):
            return False
        return (
            self.low <= min(self.open, self.close)
            and self.high >= max(self.open, self.close)
            and self.volume >= 0
        )

    def ohlcv(self) -> "Bar":
        """Return a copy with the OHLCV fields only (indicators stripped)."""
        return Bar(
            timestamp=self.timestamp,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )

    def to_dict(self) -> dict:
        """Flatten into a JSON-friendly dict for chart consumers."""
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "ema200": self.ema200,
            "macd": (
                {"line": self.macd.line, "signal": self.macd.signal, "hist": self.macd.hist}
                if self.macd is not None
                else None
            ),
            "bollinger": (
                {
                    "upper": self.bollinger.upper,
                    "middle": self.bollinger.middle,
                    "lower": self.bollinger.lower,
                }
                if self.bollinger is not None
                else None
            ),
            "atr": self.atr,
            "adx": self.adx,
            "rsi": self.rsi,
        }
