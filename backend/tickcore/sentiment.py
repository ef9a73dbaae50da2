"""Decaying market sentiment driven by discrete news events.

The score lives in an explicit SentimentState owned by one tracker and
passed to the scorer, so every timeframe's scoring pass reads the same
state through the same interface.
"""

import logging
from dataclasses import dataclass

from tickcore.models import NewsImpact, NewsItem, NewsSentiment

logger = logging.getLogger(__name__)

SCORE_LIMIT = 100.0
DECAY_FACTOR = 0.995
SNAP_TO_ZERO = 1.0

IMPACT_POINTS = {
    NewsImpact.HIGH: 25.0,
    NewsImpact.MEDIUM: 15.0,
    NewsImpact.LOW: 5.0,
}


@dataclass(slots=True)
class SentimentState:
    """Signed sentiment score in [-100, 100]."""

    score: float = 0.0


def news_impact(item: NewsItem) -> float:
    """Signed points a news item adds to the score."""
    if item.sentiment == NewsSentiment.NEUTRAL:
        return 0.0
    points = IMPACT_POINTS[item.impact]
    return -points if item.sentiment == NewsSentiment.NEGATIVE else points


class SentimentTracker:
    """
    Read/write access to the sentiment state.

    Decay is read-triggered: every read() multiplies the score by 0.995
    and snaps it to exactly 0 once |score| < 1. peek() reads without
    decaying.
    """

    def __init__(self, state: SentimentState | None = None):
        self.state = state or SentimentState()

    def ingest(self, item: NewsItem) -> float:
        """
        Apply a news event.

        Returns:
            The clamped score after the event
        """
        delta = news_impact(item)
        self.state.score = max(-SCORE_LIMIT, min(SCORE_LIMIT, self.state.score + delta))
        logger.info(
            f"News [{item.sentiment.value}/{item.impact.value}] {item.headline} "
            f"-> sentiment {self.state.score:.1f}"
        )
        return self.state.score

    def read(self) -> float:
        """Decay the score once and return it."""
        score = self.state.score * DECAY_FACTOR
        if abs(score) < SNAP_TO_ZERO:
            score = 0.0
        self.state.score = score
        return score

    def peek(self) -> float:
        return self.state.score

    def reset(self) -> None:
        self.state.score = 0.0
