"""Resampling of 1-minute bars into higher timeframes.

Aggregation rules per bucket:
- bucket = floor(timestamp / interval_ms) * interval_ms
- open: first bar's open, close: last bar's close
- high: highest high, low: lowest low, volume: sum of volumes

Buckets are always derived from the base bars' own timestamps, never from
already-aggregated bars, so boundaries cannot drift.
"""

import re
from typing import Sequence

from tickcore.models import Bar

BASE_INTERVAL_MINUTES = 1
BASE_INTERVAL_MS = 60_000

# Default analysis timeframes
DEFAULT_TIMEFRAMES = ["5m", "15m", "30m", "45m", "1h"]

_TIMEFRAME_RE = re.compile(r"^(\d+)([mh])$")


def parse_timeframe_minutes(timeframe: str) -> int:
    """Convert a timeframe label to minutes ("5m" -> 5, "1h" -> 60).

    Raises:
        ValueError: If the label is not "<N>m" or "<N>h" with N > 0
    """
    match = _TIMEFRAME_RE.match((timeframe or "").strip().lower())
    if not match:
        raise ValueError(f"Unsupported timeframe: {timeframe!r} (use e.g. '5m' or '1h')")
    value = int(match.group(1))
    if value <= 0:
        raise ValueError(f"Timeframe must be positive: {timeframe!r}")
    return value * 60 if match.group(2) == "h" else value


def check_timeframes(timeframes: Sequence[str]) -> list[int]:
    """Parse a timeframe list and reject labels naming the same interval.

    "60m" and "1h" are duplicates.

    Returns:
        Minutes per timeframe, in input order

    Raises:
        ValueError: On an unsupported label or a duplicate interval
    """
    minutes = [parse_timeframe_minutes(tf) for tf in timeframes]
    if len(set(minutes)) != len(minutes):
        raise ValueError(f"duplicate timeframes: {list(timeframes)}")
    return minutes


def timeframe_ms(timeframe: str) -> int:
    """Timeframe duration in milliseconds."""
    return parse_timeframe_minutes(timeframe) * BASE_INTERVAL_MS


def bucket_start(timestamp: int, interval_ms: int) -> int:
    """Get the bucket start for a timestamp (epoch ms)."""
    return (timestamp // interval_ms) * interval_ms


def _aggregate(timestamp: int, group: list[Bar]) -> Bar:
    """Aggregate one bucket of base bars into a single bar."""
    return Bar(
        timestamp=timestamp,
        open=group[0].open,  # First bar's open
        high=max(b.high for b in group),  # Highest high
        low=min(b.low for b in group),  # Lowest low
        close=group[-1].close,  # Last bar's close
        volume=sum(b.volume for b in group),  # Sum of volumes
    )


def resample(bars: Sequence[Bar], minutes: int) -> list[Bar]:
    """Group base bars into ``minutes``-wide bars.

    Resampling at the base interval returns the input unchanged.

    Args:
        bars: Base (1m) bars, ascending by timestamp
        minutes: Target interval, an integer multiple of the base interval

    Returns:
        Resampled bars ordered ascending by bucket
    """
    if minutes <= 0 or minutes % BASE_INTERVAL_MINUTES != 0:
        raise ValueError(f"Interval must be a positive multiple of {BASE_INTERVAL_MINUTES}m: {minutes}")
    if minutes == BASE_INTERVAL_MINUTES:
        return list(bars)

    interval_ms = minutes * BASE_INTERVAL_MS
    groups: dict[int, list[Bar]] = {}
    for bar in bars:
        groups.setdefault(bucket_start(bar.timestamp, interval_ms), []).append(bar)

    return [_aggregate(ts, groups[ts]) for ts in sorted(groups)]


def resample_timeframe(bars: Sequence[Bar], timeframe: str) -> list[Bar]:
    """Resample base bars to a timeframe label such as "15m"."""
    return resample(bars, parse_timeframe_minutes(timeframe))
