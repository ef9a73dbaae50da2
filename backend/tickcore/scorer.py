"""Regime classification and weighted signal scoring for one timeframe.

This module is pure business logic with no I/O dependencies. The
prediction value is computed by the caller (off the hot path) and passed
in; sentiment is read through the injected SentimentTracker.

Scoring:
- Sentiment: up to 30 points to the side matching its sign
- Trend strategy (ADX > 25): MACD cross 25, mid-band cross 20,
  RSI band 10, histogram momentum 5
- Mean-reversion strategy (ADX <= 30): band breach 30, RSI extreme 20,
  MACD cross 10
- Prediction: up to 100 points to the side it points at

A side emits a signal when its score reaches the threshold (70) and
strictly beats the other side. The trend and reversion windows overlap
for 25 < ADX <= 30, where both strategies add to the same scores.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from tickcore.models import (
    Bar,
    Direction,
    ScoringConfig,
    SignalIdGenerator,
    SignalRecord,
    SignalStrength,
)
from tickcore.sentiment import SentimentTracker

logger = logging.getLogger(__name__)

# Regime labels
GATHERING_DATA = "GATHERING_DATA"
CALCULATING = "CALCULATING"
STRONG_BULL_TREND = "STRONG_BULL_TREND"
STRONG_BEAR_TREND = "STRONG_BEAR_TREND"
CHOPPY = "CHOPPY/SIDEWAYS"
RANGING = "RANGING"
NEWS_BULLISH = "NEWS_BULLISH"
NEWS_BEARISH = "NEWS_BEARISH"

# Strategy labels
TREND_ALPHA = "Trend Alpha"
BB_REVERSION = "BB Reversion"
PREDICTION_PURE = "LSTM Pure"
PREDICTION_SUFFIX = " + LSTM"
NEWS_EVENT = "News Event"
NEWS_SUFFIX = " & News"
HYBRID = "Hybrid"

# A strategy names the signal once it lifts a side above this many points
STRATEGY_LABEL_MIN = 20


@dataclass(slots=True)
class ScoreResult:
    """Result of scoring one timeframe."""
    signal: SignalRecord | None  # Emitted signal, if a side won
    regime: str
    call_score: float = 0.0
    put_score: float = 0.0
    debug: str = ""


def strength_for(score: float) -> SignalStrength:
    """Map a raw score to its strength tier."""
    if score > 100:
        return SignalStrength.MAX
    if score > 85:
        return SignalStrength.STRONG
    if score > 70:
        return SignalStrength.MODERATE
    return SignalStrength.WEAK


def _is_ready(bar: Bar) -> bool:
    return (
        bar.macd is not None
        and bar.bollinger is not None
        and bar.adx is not None
        and bar.rsi is not None
    )


class SignalScorer:
    """
    Score an indicator-annotated bar series and emit at most one signal.

    Usage:
        scorer = SignalScorer(sentiment_tracker)
        result = scorer.evaluate(bars, "5m", prediction=None, now_ms=clock())
        if result.signal:
            ...
    """

    def __init__(
        self,
        sentiment: SentimentTracker,
        config: ScoringConfig | None = None,
        id_generator: SignalIdGenerator | None = None,
    ):
        self.sentiment = sentiment
        self.config = config or ScoringConfig()
        self.id_generator = id_generator or SignalIdGenerator()

    def classify_regime(self, bar: Bar) -> str:
        """Classify the market regime from ADX and the EMA200 trend filter."""
        cfg = self.config
        if bar.adx > cfg.trend_adx:
            ema200 = bar.ema200 if bar.ema200 is not None else 0.0
            return STRONG_BULL_TREND if bar.close > ema200 else STRONG_BEAR_TREND
        if bar.adx < cfg.choppy_adx:
            return CHOPPY
        return RANGING

    def evaluate(
        self,
        bars: Sequence[Bar],
        timeframe: str,
        prediction: float | None = None,
        now_ms: int = 0,
    ) -> ScoreResult:
        """
        Score the latest bar of a timeframe series.

        Args:
            bars: Indicator-annotated bars for this timeframe, oldest first
            timeframe: Timeframe label (e.g., "5m")
            prediction: Predicted next close, or None if unavailable
            now_ms: Signal creation time in epoch milliseconds

        Returns:
            ScoreResult with the signal (or None) and the scoring breakdown
        """
        cfg = self.config

        if len(bars) < cfg.min_bars:
            return ScoreResult(signal=None, regime=GATHERING_DATA)

        last = bars[-1]
        prev = bars[-2]
        if not (_is_ready(last) and _is_ready(prev)):
            return ScoreResult(signal=None, regime=CALCULATING)

        regime = self.classify_regime(last)
        call_score = 0.0
        put_score = 0.0
        strategy = ""

        # Sentiment (decays on every read)
        sentiment_score = self.sentiment.read()
        sentiment_context = None
        if sentiment_score > cfg.sentiment_regime_threshold:
            points = min(sentiment_score, cfg.sentiment_cap)
            call_score += points
            sentiment_context = f"Bullish Sentiment (+{math.floor(points)})"
            regime = NEWS_BULLISH
        elif sentiment_score < -cfg.sentiment_regime_threshold:
            points = min(abs(sentiment_score), cfg.sentiment_cap)
            put_score += points
            sentiment_context = f"Bearish Sentiment (+{math.floor(points)})"
            regime = NEWS_BEARISH

        rsi = last.rsi
        ema200 = last.ema200 if last.ema200 is not None else 0.0
        is_above_ema = last.close > ema200

        bull_cross = prev.macd.line < prev.macd.signal and last.macd.line > last.macd.signal
        bear_cross = prev.macd.line > prev.macd.signal and last.macd.line < last.macd.signal
        hist_improving = last.macd.hist > prev.macd.hist
        hist_declining = last.macd.hist < prev.macd.hist

        bands = last.bollinger
        lower_break = last.close < bands.lower
        upper_break = last.close > bands.upper
        mid_cross_up = prev.close < bands.middle and last.close > bands.middle
        mid_cross_down = prev.close > bands.middle and last.close < bands.middle

        # Trend following
        if last.adx > cfg.trend_adx:
            if is_above_ema:
                if bull_cross:
                    call_score += cfg.trend_macd_cross
                if mid_cross_up:
                    call_score += cfg.trend_mid_band_cross
                if 50 < rsi < 70:
                    call_score += cfg.trend_rsi_band
                if hist_improving and last.macd.hist > 0:
                    call_score += cfg.trend_hist_momentum
                if call_score > STRATEGY_LABEL_MIN:
                    strategy = TREND_ALPHA
            else:
                if bear_cross:
                    put_score += cfg.trend_macd_cross
                if mid_cross_down:
                    put_score += cfg.trend_mid_band_cross
                if 30 < rsi < 50:
                    put_score += cfg.trend_rsi_band
                if hist_declining and last.macd.hist < 0:
                    put_score += cfg.trend_hist_momentum
                if put_score > STRATEGY_LABEL_MIN:
                    strategy = TREND_ALPHA

        # Mean reversion (weak trend or range)
        if last.adx <= cfg.reversion_max_adx:
            if lower_break:
                call_score += cfg.reversion_band_breach
            if rsi < 30:
                call_score += cfg.reversion_rsi_extreme
            if bull_cross:
                call_score += cfg.reversion_macd_cross
            if call_score > STRATEGY_LABEL_MIN and not strategy:
                strategy = BB_REVERSION

            if upper_break:
                put_score += cfg.reversion_band_breach
            if rsi > 70:
                put_score += cfg.reversion_rsi_extreme
            if bear_cross:
                put_score += cfg.reversion_macd_cross
            if put_score > STRATEGY_LABEL_MIN and not strategy:
                strategy = BB_REVERSION

        # Prediction fusion
        prediction_points = 0.0
        if prediction is not None and prediction != last.close:
            threshold = last.close * cfg.prediction_threshold_ratio
            ratio = min(abs(prediction - last.close) / threshold, cfg.prediction_ratio_cap)
            prediction_points = ratio * cfg.prediction_points_per_ratio
            if prediction > last.close:
                call_score += prediction_points
            else:
                put_score += prediction_points
            strategy = strategy + PREDICTION_SUFFIX if strategy else PREDICTION_PURE

        if sentiment_context:
            strategy = strategy + NEWS_SUFFIX if strategy else NEWS_EVENT

        debug = f"Call: {call_score:.0f}, Put: {put_score:.0f} (Req: {cfg.threshold:g})"
        if sentiment_context:
            debug += f" [{sentiment_context}]"

        direction = None
        score = 0.0
        if call_score >= cfg.threshold and call_score > put_score:
            direction, score = Direction.CALL, call_score
        elif put_score >= cfg.threshold and put_score > call_score:
            direction, score = Direction.PUT, put_score

        if direction is None:
            logger.debug(f"[{timeframe}] {regime}: no signal ({debug})")
            return ScoreResult(
                signal=None,
                regime=regime,
                call_score=call_score,
                put_score=put_score,
                debug=debug,
            )

        signal = SignalRecord(
            id=self.id_generator.next_id(timeframe, now_ms, direction),
            created_at=now_ms,
            direction=direction,
            entry_price=last.close,
            timeframe=timeframe,
            regime=regime,
            strategy=strategy or HYBRID,
            strength=strength_for(score),
            confidence=min(score / cfg.confidence_divisor, cfg.max_confidence),
            prediction=prediction,
            prediction_confidence=prediction_points,
            sentiment_context=sentiment_context,
        )
        logger.debug(f"[{timeframe}] {regime}: {direction.value} candidate ({debug})")

        return ScoreResult(
            signal=signal,
            regime=regime,
            call_score=call_score,
            put_score=put_score,
            debug=debug,
        )
