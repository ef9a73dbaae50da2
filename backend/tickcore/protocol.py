"""Protocols for collaborators the core consumes.

This module provides:
- PredictionOracle: Runtime-checkable Protocol for next-close predictors
- NewsCallback: handler type for the news feed
"""

from __future__ import annotations

from typing import Awaitable, Callable, Protocol, Sequence, runtime_checkable

from tickcore.models import NewsItem


# ---------------------------------------------------------------------------
# Callback type aliases
# ---------------------------------------------------------------------------
NewsCallback = Callable[[NewsItem], Awaitable[None]]


# ---------------------------------------------------------------------------
# PredictionOracle Protocol
# ---------------------------------------------------------------------------
@runtime_checkable
class PredictionOracle(Protocol):
    """Protocol for best-effort next-close predictors.

    Oracles are opaque to the scorer: they receive exactly ``window_size``
    trailing closes and return a predicted next close, or None when no
    prediction is available. Callers run them off the hot path.
    """

    @property
    def window_size(self) -> int:
        """Number of trailing closes the oracle needs."""
        ...

    def predict(self, closes: Sequence[float]) -> float | None:
        """Predict the next close from the trailing window."""
        ...
