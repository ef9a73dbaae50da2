"""CSV loaders for historical bars and recorded ticks.

Formats:
- bars:  timestamp,open,high,low,close[,volume]
- ticks: timestamp,price

Timestamps are epoch milliseconds or ISO-8601 (naive = UTC). A header
row is optional. Unparseable rows are logged and skipped.
"""

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Iterator

from tickcore.models import Bar

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> int:
    """Parse an epoch-ms or ISO-8601 timestamp into epoch milliseconds."""
    value = value.strip()
    if value.isdigit():
        return int(value)
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _iter_rows(path: Path) -> Iterator[tuple[int, list[str]]]:
    with open(path, newline="") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or not row[0].strip():
                continue
            if row[0].strip().lower() == "timestamp":
                continue
            yield line_no, row


def load_bars_csv(path: Path | str) -> list[Bar]:
    """Load historical 1m bars, oldest first."""
    path = Path(path)
    bars = []
    for line_no, row in _iter_rows(path):
        try:
            bars.append(Bar(
                timestamp=parse_timestamp(row[0]),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]) if len(row) > 5 and row[5].strip() else 0.0,
            ))
        except (IndexError, ValueError) as e:
            logger.warning(f"{path.name}:{line_no}: skipping bar row {row}: {e}")

    bars.sort(key=lambda b: b.timestamp)
    logger.info(f"Loaded {len(bars)} bars from {path}")
    return bars


async def iter_ticks_csv(path: Path | str) -> AsyncIterator[tuple[float, int]]:
    """Yield recorded ticks as (price, timestamp_ms) in file order."""
    path = Path(path)
    count = 0
    for line_no, row in _iter_rows(path):
        try:
            ts = parse_timestamp(row[0])
            price = float(row[1])
        except (IndexError, ValueError) as e:
            logger.warning(f"{path.name}:{line_no}: skipping tick row {row}: {e}")
            continue
        count += 1
        yield price, ts
    logger.info(f"Replayed {count} ticks from {path}")
