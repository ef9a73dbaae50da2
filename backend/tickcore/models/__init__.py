"""Data models."""

from tickcore.models.bar import Bar, BollingerBands, MacdValue
from tickcore.models.signal import (
    Direction,
    NewsImpact,
    NewsItem,
    NewsSentiment,
    SignalIdGenerator,
    SignalRecord,
    SignalStats,
    SignalStatus,
    SignalStrength,
    generate_signal_id,
)
from tickcore.models.config import IndicatorConfig, LifecyclePolicy, ScoringConfig

__all__ = [
    # Hot path (dataclass)
    "Bar",
    "BollingerBands",
    "MacdValue",
    # Cold path (Pydantic)
    "Direction",
    "NewsImpact",
    "NewsItem",
    "NewsSentiment",
    "SignalIdGenerator",
    "SignalRecord",
    "SignalStats",
    "SignalStatus",
    "SignalStrength",
    "generate_signal_id",
    # Config
    "IndicatorConfig",
    "LifecyclePolicy",
    "ScoringConfig",
]
