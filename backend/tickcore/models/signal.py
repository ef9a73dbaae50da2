"""Signal, news and statistics data models."""

import hashlib
import itertools
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Direction(str, Enum):
    """Signal direction."""

    CALL = "CALL"
    PUT = "PUT"


class SignalStatus(str, Enum):
    """Signal lifecycle status."""

    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"


class SignalStrength(str, Enum):
    """Discretized confidence bucket derived from the raw score."""

    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    MAX = "MAX"


class NewsSentiment(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class NewsImpact(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


def generate_signal_id(timeframe: str, created_at: int, direction: Direction, sequence: int) -> str:
    """Generate a deterministic signal ID.

    The same scenario replayed with the same clock produces the same IDs,
    which keeps replays and tests reproducible.
    """
    key = f"{timeframe}:{created_at}:{direction.value}:{sequence}"
    return "sig_" + hashlib.sha256(key.encode()).hexdigest()[:24]


class SignalIdGenerator:
    """Monotonic sequence feeding generate_signal_id."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next_id(self, timeframe: str, created_at: int, direction: Direction) -> str:
        return generate_signal_id(timeframe, created_at, direction, next(self._counter))


class SignalRecord(BaseModel):
    """One scoring decision.

    Records are frozen: the lifecycle manager publishes a resolved copy
    (status, exit_price, pnl, resolved_at) instead of mutating in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: int  # epoch milliseconds
    direction: Direction
    entry_price: float
    timeframe: str
    regime: str
    strategy: str
    strength: SignalStrength
    confidence: float
    prediction: float | None = None
    prediction_confidence: float = 0.0  # 0-100 points contributed by the oracle
    sentiment_context: str | None = None
    status: SignalStatus = SignalStatus.PENDING
    exit_price: float | None = None
    pnl: float | None = None
    resolved_at: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == SignalStatus.PENDING

    def is_favorable(self, price: float) -> bool:
        """Check whether price has moved in the signal's direction."""
        if self.direction == Direction.CALL:
            return price > self.entry_price
        return price < self.entry_price


class NewsItem(BaseModel):
    """A discrete news event consumed by the sentiment tracker."""

    model_config = ConfigDict(frozen=True)

    headline: str
    sentiment: NewsSentiment
    impact: NewsImpact
    timestamp: int  # epoch milliseconds
    source: str = ""


class SignalStats(BaseModel):
    """Running win/loss statistics over resolved signals."""

    total_signals: int = 0
    wins: int = 0
    losses: int = 0
    active_signals: int = 0
    current_streak: int = 0  # Positive = wins, negative = losses
    total_pnl: float = 0.0

    def record_created(self) -> None:
        self.total_signals += 1
        self.active_signals += 1

    def record_outcome(self, status: SignalStatus, pnl: float) -> None:
        """Record a resolved signal and update the streak."""
        self.active_signals = max(0, self.active_signals - 1)
        self.total_pnl += pnl
        if status == SignalStatus.WIN:
            self.wins += 1
            if self.current_streak >= 0:
                self.current_streak += 1
            else:
                self.current_streak = 1
        elif status == SignalStatus.LOSS:
            self.losses += 1
            if self.current_streak <= 0:
                self.current_streak -= 1
            else:
                self.current_streak = -1

    @property
    def win_rate(self) -> float:
        """Win rate in percent over resolved signals."""
        total = self.wins + self.losses
        if total == 0:
            return 0.0
        return self.wins / total * 100
