"""Best-effort next-close prediction.

The oracle is a collaborator: scoring must never wait on it. OracleRunner
runs it in a worker thread under a timeout and degrades every failure
(short window, timeout, exception, non-finite output) to None.
"""

import asyncio
import logging
import math
from typing import Sequence

import numpy as np

from tickcore.indicators import EPSILON
from tickcore.protocol import PredictionOracle

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 30


class TrendOracle:
    """
    Linear-trend baseline oracle.

    Min-max normalizes the trailing window, fits a least-squares line
    and extrapolates one step ahead, then maps the result back to price.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE):
        if window_size < 2:
            raise ValueError(f"window_size must be at least 2, got {window_size}")
        self._window_size = window_size

    @property
    def window_size(self) -> int:
        return self._window_size

    def predict(self, closes: Sequence[float]) -> float | None:
        if len(closes) < self._window_size:
            return None

        window = np.asarray(closes[-self._window_size:], dtype=np.float64)
        low = window.min()
        span = (window.max() - low) or EPSILON  # Flat window
        normalized = (window - low) / span

        x = np.arange(self._window_size, dtype=np.float64)
        slope, intercept = np.polyfit(x, normalized, 1)
        predicted = slope * self._window_size + intercept
        return float(predicted * span + low)


class OracleRunner:
    """Run a PredictionOracle off the event loop with a timeout."""

    def __init__(self, oracle: PredictionOracle | None, timeout_s: float = 0.25):
        self.oracle = oracle
        self.timeout_s = timeout_s
        self.failures = 0

    async def predict(self, closes: Sequence[float]) -> float | None:
        """
        Ask the oracle for the next close.

        Returns:
            Predicted price, or None when unavailable
        """
        if self.oracle is None:
            return None

        window_size = self.oracle.window_size
        if len(closes) < window_size:
            return None
        window = list(closes[-window_size:])

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.oracle.predict, window),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            self.failures += 1
            logger.warning(f"Prediction oracle timed out after {self.timeout_s}s")
            return None
        except Exception as e:
            self.failures += 1
            logger.warning(f"Prediction oracle failed: {e}")
            return None

        if result is None:
            return None
        if not math.isfinite(result):
            self.failures += 1
            logger.warning(f"Prediction oracle returned non-finite value: {result}")
            return None
        return float(result)
