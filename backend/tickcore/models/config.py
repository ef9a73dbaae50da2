"""Engine configuration models."""

from pydantic import BaseModel, Field


class IndicatorConfig(BaseModel):
    """Indicator periods and multipliers."""

    macd_fast: int = Field(12, gt=0)
    macd_slow: int = Field(26, gt=0)
    macd_signal: int = Field(9, gt=0)
    ema_trend: int = Field(200, gt=0)
    bb_period: int = Field(20, gt=0)
    bb_mult: float = Field(2.0, gt=0)
    adx_period: int = Field(14, gt=0)
    rsi_period: int = Field(14, gt=0)


class ScoringConfig(BaseModel):
    """Signal scorer thresholds and weights."""

    threshold: float = 70.0
    min_bars: int = 30

    # Regime boundaries (ADX)
    trend_adx: float = 25.0
    choppy_adx: float = 20.0
    reversion_max_adx: float = 30.0

    # Sentiment contribution
    sentiment_cap: float = 30.0
    sentiment_regime_threshold: float = 5.0

    # Prediction contribution: 0.05% of price = ratio 1.0
    prediction_threshold_ratio: float = 0.0005
    prediction_ratio_cap: float = 2.0
    prediction_points_per_ratio: float = 50.0

    # Confidence = min(score / divisor, max)
    confidence_divisor: float = 150.0
    max_confidence: float = 0.99

    # Trend strategy points
    trend_macd_cross: float = 25.0
    trend_mid_band_cross: float = 20.0
    trend_rsi_band: float = 10.0
    trend_hist_momentum: float = 5.0

    # Mean-reversion strategy points
    reversion_band_breach: float = 30.0
    reversion_rsi_extreme: float = 20.0
    reversion_macd_cross: float = 10.0


class LifecyclePolicy(BaseModel):
    """Payouts applied when a pending signal expires, and resolved-signal retention."""

    win_payout: float = 0.85
    loss_payout: float = -1.0
    max_resolved: int | None = Field(50, ge=0)  # None = keep every resolved signal
