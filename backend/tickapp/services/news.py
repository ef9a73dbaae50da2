"""Simulated market news feed.

Draws headlines from a fixed template set with an injectable
random.Random, so a seeded generator replays the same news sequence.
"""

import asyncio
import logging
import random
import time
from typing import Callable

from tickcore.models import NewsImpact, NewsItem, NewsSentiment
from tickcore.protocol import NewsCallback

logger = logging.getLogger(__name__)

NEWS_SOURCE = "Simulated Wire"

# (headline, sentiment, impact)
NEWS_TEMPLATES: list[tuple[str, NewsSentiment, NewsImpact]] = [
    ("US CPI Inflation data shows cooling trend", NewsSentiment.POSITIVE, NewsImpact.HIGH),
    ("Federal Reserve hints at interest rate hold", NewsSentiment.POSITIVE, NewsImpact.HIGH),
    ("ECB President Lagarde warning on Eurozone growth", NewsSentiment.NEGATIVE, NewsImpact.MEDIUM),
    ("US Jobless claims higher than expected", NewsSentiment.NEGATIVE, NewsImpact.HIGH),
    ("Geopolitical tensions easing in key regions", NewsSentiment.POSITIVE, NewsImpact.MEDIUM),
    ("Tech sector rally boosting market confidence", NewsSentiment.POSITIVE, NewsImpact.LOW),
    ("Crude Oil inventory surplus reported", NewsSentiment.NEGATIVE, NewsImpact.MEDIUM),
    ("Market consolidation ahead of FOMC minutes", NewsSentiment.NEUTRAL, NewsImpact.LOW),
    ("Retail Sales data disappoints analysts", NewsSentiment.NEGATIVE, NewsImpact.MEDIUM),
    ("German Manufacturing PMI beats expectations", NewsSentiment.POSITIVE, NewsImpact.MEDIUM),
]

def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class NewsGenerator:
    """Produce NewsItem events from the headline templates."""

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        source: str = NEWS_SOURCE,
    ):
        self.rng = rng or random.Random()
        self.clock = clock or _wall_clock_ms
        self.source = source

    def generate(self) -> NewsItem:
        headline, sentiment, impact = self.rng.choice(NEWS_TEMPLATES)
        return NewsItem(
            headline=headline,
            sentiment=sentiment,
            impact=impact,
            timestamp=self.clock(),
            source=self.source,
        )


async def run_news_loop(
    generator: NewsGenerator,
    on_news: NewsCallback,
    min_interval_s: float = 180.0,
    max_interval_s: float = 300.0,
) -> None:
    """Emit one news event every random interval until cancelled."""
    if min_interval_s > max_interval_s:
        raise ValueError(
            f"min_interval_s ({min_interval_s}) must not exceed max_interval_s ({max_interval_s})"
        )

    while True:
        await asyncio.sleep(generator.rng.uniform(min_interval_s, max_interval_s))
        item = generator.generate()
        try:
            await on_news(item)
        except Exception as e:
            logger.warning(f"News handler failed: {e}")
