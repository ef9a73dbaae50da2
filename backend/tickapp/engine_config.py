"""Engine configuration loaded from engine.yaml.

Supports:
- Indicator periods, scoring thresholds/weights and lifecycle payouts
- An optional timeframe list overriding the settings default
- No YAML file = built-in defaults
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator, model_validator

from tickcore.models import IndicatorConfig, LifecyclePolicy, ScoringConfig
from tickcore.resampler import check_timeframes

logger = logging.getLogger(__name__)


class EngineConfig(BaseModel):
    """Top-level engine.yaml configuration."""

    indicators: IndicatorConfig = IndicatorConfig()
    scoring: ScoringConfig = ScoringConfig()
    lifecycle: LifecyclePolicy = LifecyclePolicy()
    timeframes: list[str] | None = None  # None = use Settings.timeframes

    @field_validator("timeframes")
    @classmethod
    def _validate_timeframes(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        if not value:
            raise ValueError("timeframes must not be empty")
        check_timeframes(value)
        return value

    @model_validator(mode="after")
    def _validate(self):
        if self.indicators.macd_fast >= self.indicators.macd_slow:
            raise ValueError(
                f"macd_fast ({self.indicators.macd_fast}) must be below "
                f"macd_slow ({self.indicators.macd_slow})"
            )
        return self

    def resolve_timeframes(self, default: list[str]) -> list[str]:
        """Return the configured timeframes, or ``default`` when unset."""
        return list(self.timeframes) if self.timeframes is not None else list(default)


_DEFAULT_PATH = Path(__file__).parent.parent / "engine.yaml"


def load_engine_config(path: Path | None = None) -> EngineConfig:
    """Load engine config from YAML file.

    Falls back to defaults if the file doesn't exist.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    # Sibling .env (e.g. LOG_LEVEL, RANDOM_SEED) for the settings layer
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info("No engine.yaml found at %s, using defaults", config_path)
        return EngineConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = EngineConfig(**raw)
    logger.info(
        "Loaded engine config: threshold=%s, win=%+.2f, loss=%+.2f, timeframes=%s",
        config.scoring.threshold,
        config.lifecycle.win_payout,
        config.lifecycle.loss_payout,
        config.timeframes or "default",
    )
    return config
