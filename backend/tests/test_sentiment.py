"""Tests for the sentiment tracker."""

import pytest

from tickcore.models import NewsImpact, NewsItem, NewsSentiment
from tickcore.sentiment import SentimentState, SentimentTracker, news_impact


def make_news(
    sentiment: NewsSentiment = NewsSentiment.POSITIVE,
    impact: NewsImpact = NewsImpact.HIGH,
) -> NewsItem:
    """Helper to create a news item."""
    return NewsItem(
        headline="Test headline",
        sentiment=sentiment,
        impact=impact,
        timestamp=0,
    )


class TestNewsImpact:
    """Tests for impact tier to points mapping."""

    @pytest.mark.parametrize("impact,points", [
        (NewsImpact.HIGH, 25),
        (NewsImpact.MEDIUM, 15),
        (NewsImpact.LOW, 5),
    ])
    def test_positive(self, impact, points):
        assert news_impact(make_news(NewsSentiment.POSITIVE, impact)) == points

    @pytest.mark.parametrize("impact,points", [
        (NewsImpact.HIGH, -25),
        (NewsImpact.MEDIUM, -15),
        (NewsImpact.LOW, -5),
    ])
    def test_negative_flips_sign(self, impact, points):
        assert news_impact(make_news(NewsSentiment.NEGATIVE, impact)) == points

    def test_neutral_is_zero(self):
        assert news_impact(make_news(NewsSentiment.NEUTRAL, NewsImpact.HIGH)) == 0


class TestSentimentTracker:
    """Tests for SentimentTracker."""

    def test_ingest_adds_points(self):
        tracker = SentimentTracker()

        assert tracker.ingest(make_news()) == 25
        assert tracker.ingest(make_news(NewsSentiment.NEGATIVE, NewsImpact.MEDIUM)) == 10

    def test_ingest_clamps(self):
        tracker = SentimentTracker()
        for _ in range(6):
            tracker.ingest(make_news())
        assert tracker.peek() == 100

        for _ in range(12):
            tracker.ingest(make_news(NewsSentiment.NEGATIVE))
        assert tracker.peek() == -100

    def test_read_decays(self):
        tracker = SentimentTracker(SentimentState(score=25.0))

        assert tracker.read() == pytest.approx(24.875)
        assert tracker.peek() == pytest.approx(24.875)

    def test_peek_does_not_decay(self):
        tracker = SentimentTracker(SentimentState(score=25.0))

        tracker.peek()
        tracker.peek()

        assert tracker.peek() == 25.0

    def test_snaps_to_zero(self):
        tracker = SentimentTracker(SentimentState(score=1.004))

        assert tracker.read() == 0.0
        assert tracker.peek() == 0.0

    @pytest.mark.parametrize("start", [100.0, -100.0, 7.5, -3.0])
    def test_decays_toward_zero_without_overshoot(self, start):
        """Repeated reads shrink |score| monotonically and end at exactly 0."""
        tracker = SentimentTracker(SentimentState(score=start))
        previous = start

        for _ in range(2000):
            current = tracker.read()
            assert abs(current) <= abs(previous)
            assert current == 0.0 or (current > 0) == (start > 0)
            previous = current

        assert previous == 0.0

    def test_shared_state(self):
        """Trackers over the same state object see the same score."""
        state = SentimentState()
        writer = SentimentTracker(state)
        reader = SentimentTracker(state)

        writer.ingest(make_news())

        assert reader.peek() == 25

    def test_reset(self):
        tracker = SentimentTracker(SentimentState(score=50.0))
        tracker.reset()
        assert tracker.peek() == 0.0
