"""Tick-to-bar aggregation on the 1-minute base interval.

The aggregator is the single source of truth for price history:
- one append-only list of sealed bars
- one mutable in-progress bar

Sealing (triggered by the first tick of a new minute bucket) is the only
transition that moves the in-progress bar into history.
"""

import logging
import math
from typing import Sequence

from tickcore.models import Bar
from tickcore.resampler import BASE_INTERVAL_MS, bucket_start

logger = logging.getLogger(__name__)

# Sealed bars kept in memory (about 2.5 days of 1m bars)
DEFAULT_MAX_HISTORY = 3500


class BarAggregator:
    """Folds (price, timestamp) ticks into 1-minute OHLCV bars.

    Usage:
        aggregator = BarAggregator()
        aggregator.seed(historical_bars)

        for price, ts in ticks:
            sealed = aggregator.add_tick(price, ts)
            if sealed is not None:
                ...  # run analysis over aggregator.history
    """

    def __init__(self, max_history: int | None = DEFAULT_MAX_HISTORY):
        """
        Args:
            max_history: Maximum sealed bars to keep (None = unbounded)
        """
        self.max_history = max_history
        self._history: list[Bar] = []
        self._current: Bar | None = None
        self._rejected_ticks = 0

    @property
    def history(self) -> list[Bar]:
        """Sealed bars, oldest first."""
        return list(self._history)

    @property
    def current_bar(self) -> Bar | None:
        """The in-progress bar, or None before the first live tick."""
        return self._current

    @property
    def last_price(self) -> float | None:
        """Latest known price (in-progress close, else last sealed close)."""
        if self._current is not None:
            return self._current.close
        if self._history:
            return self._history[-1].close
        return None

    @property
    def rejected_ticks(self) -> int:
        return self._rejected_ticks

    def seed(self, bars: Sequence[Bar]) -> None:
        """Seed sealed history from a historical loader.

        Raises:
            ValueError: If a bar violates the OHLC envelope or timestamps
                are not strictly increasing
        """
        seeded: list[Bar] = []
        for bar in bars:
            if not bar.is_valid:
                raise ValueError(f"Invalid OHLC bar at {bar.timestamp}: {bar}")
            if seeded and bar.timestamp <= seeded[-1].timestamp:
                raise ValueError(
                    f"History not strictly increasing at {bar.timestamp} "
                    f"(previous {seeded[-1].timestamp})"
                )
            seeded.append(bar.ohlcv())

        self._history = seeded
        self._current = None
        self._trim()
        logger.info(f"Seeded bar history with {len(self._history)} bars")

    def add_tick(self, price: float, timestamp: int, volume: float = 0.0) -> Bar | None:
        """Apply one tick.

        Args:
            price: Trade price
            timestamp: Tick time in epoch milliseconds (int, or an integral float)
            volume: Traded volume, if the venue supplies it

        Returns:
            The bar sealed by this tick (first tick of a new bucket),
            otherwise None. Rejected ticks also return None.
        """
        if not self._is_valid_tick(price, timestamp, volume):
            self._rejected_ticks += 1
            logger.warning(f"Rejected malformed tick: price={price!r} ts={timestamp!r} volume={volume!r}")
            return None

        timestamp = int(timestamp)
        bucket = bucket_start(timestamp, BASE_INTERVAL_MS)
        current = self._current

        if current is not None and bucket < current.timestamp:
            self._rejected_ticks += 1
            logger.warning(
                f"Rejected out-of-order tick: ts={timestamp} is before open bar {current.timestamp}"
            )
            return None

        if current is None and self._history and bucket <= self._history[-1].timestamp:
            self._rejected_ticks += 1
            logger.warning(
                f"Rejected stale tick: ts={timestamp} is not after sealed bar {self._history[-1].timestamp}"
            )
            return None

        if current is not None and bucket == current.timestamp:
            # Same bucket: extend the open bar
            current.high = max(current.high, price)
            current.low = min(current.low, price)
            current.close = price
            current.volume += volume
            return None

        sealed = self._seal()
        self._current = Bar(
            timestamp=bucket,
            open=price,
            high=price,
            low=price,
            close=price,
            volume=volume,
        )
        return sealed

    def _seal(self) -> Bar | None:
        """Move the in-progress bar into history."""
        if self._current is None:
            return None

        sealed = self._current
        self._history.append(sealed)
        self._current = None
        self._trim()
        return sealed

    def _trim(self) -> None:
        if self.max_history is not None and len(self._history) > self.max_history:
            self._history = self._history[-self.max_history:]

    @staticmethod
    def _is_valid_tick(price, timestamp, volume) -> bool:
        try:
            price = float(price)
            volume = float(volume)
        except (TypeError, ValueError):
            return False
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return False
        if isinstance(timestamp, float) and not (math.isfinite(timestamp) and timestamp.is_integer()):
            return False
        if timestamp < 0:
            return False
        return math.isfinite(price) and price > 0 and math.isfinite(volume) and volume >= 0
