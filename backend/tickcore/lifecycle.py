"""Pending signal tracking and time-boxed resolution.

Rules:
- At most one PENDING signal per timeframe (indexed by timeframe)
- A signal is due once now - created_at >= timeframe duration
- Due CALL wins if price > entry, due PUT wins if price < entry,
  anything else is a loss (ties included)
- Resolution is one-shot: a resolved signal never changes again
- Only the newest policy.max_resolved resolved signals are kept; PENDING
  signals are never dropped

Signal records are frozen. Resolution builds resolved copies plus a new
signal tuple and pending index, then swaps both in one assignment so a
reader never sees a half-applied pass.
"""

import logging

from tickcore.models import LifecyclePolicy, SignalRecord, SignalStats, SignalStatus
from tickcore.resampler import timeframe_ms

logger = logging.getLogger(__name__)


class PendingSignalExistsError(ValueError):
    """Raised when a timeframe already has a PENDING signal."""


class SignalLifecycleManager:
    """Own the signal set and its PENDING -> WIN/LOSS transitions."""

    def __init__(self, policy: LifecyclePolicy | None = None):
        self.policy = policy or LifecyclePolicy()
        self._signals: tuple[SignalRecord, ...] = ()
        self._pending: dict[str, SignalRecord] = {}
        self._stats = SignalStats()

    @property
    def signals(self) -> tuple[SignalRecord, ...]:
        """All signals, oldest first (an immutable snapshot)."""
        return self._signals

    @property
    def pending(self) -> dict[str, SignalRecord]:
        """PENDING signals keyed by timeframe (a copy)."""
        return dict(self._pending)

    @property
    def stats(self) -> SignalStats:
        return self._stats

    @property
    def active_count(self) -> int:
        return len(self._pending)

    def has_pending(self, timeframe: str) -> bool:
        return timeframe in self._pending

    def add(self, signal: SignalRecord) -> None:
        """
        Start tracking a new PENDING signal.

        Raises:
            PendingSignalExistsError: If the timeframe already has one
            ValueError: If the signal is not PENDING
        """
        if not signal.is_pending:
            raise ValueError(f"Only PENDING signals can be added, got {signal.status.value}")
        if signal.timeframe in self._pending:
            raise PendingSignalExistsError(
                f"Timeframe {signal.timeframe} already has pending signal "
                f"{self._pending[signal.timeframe].id}"
            )

        self._signals = self._signals + (signal,)
        self._pending = {**self._pending, signal.timeframe: signal}
        self._stats.record_created()

    @staticmethod
    def is_due(signal: SignalRecord, now_ms: int) -> bool:
        return now_ms - signal.created_at >= timeframe_ms(signal.timeframe)

    def settle(self, signal: SignalRecord, price: float, now_ms: int) -> SignalRecord:
        """Build the resolved copy of a due signal."""
        if signal.is_favorable(price):
            status, pnl = SignalStatus.WIN, self.policy.win_payout
        else:
            status, pnl = SignalStatus.LOSS, self.policy.loss_payout
        return signal.model_copy(update={
            "status": status,
            "exit_price": price,
            "pnl": pnl,
            "resolved_at": now_ms,
        })

    def _retain(self, signals: tuple[SignalRecord, ...]) -> tuple[SignalRecord, ...]:
        """Drop the oldest resolved signals beyond the retention cap."""
        limit = self.policy.max_resolved
        if limit is None:
            return signals
        resolved = [s for s in signals if not s.is_pending]
        excess = len(resolved) - limit
        if excess <= 0:
            return signals
        dropped = {s.id for s in resolved[:excess]}
        return tuple(s for s in signals if s.id not in dropped)

    def resolve_due(self, price: float, now_ms: int) -> list[SignalRecord]:
        """
        Resolve every PENDING signal whose expiry has passed.

        Args:
            price: Latest price
            now_ms: Current time in epoch milliseconds

        Returns:
            The resolved signals (empty when nothing was due)
        """
        due = {
            signal.id: signal
            for signal in self._pending.values()
            if self.is_due(signal, now_ms)
        }
        if not due:
            return []

        resolved: dict[str, SignalRecord] = {
            signal_id: self.settle(signal, price, now_ms)
            for signal_id, signal in due.items()
        }
        signals = tuple(resolved.get(s.id, s) for s in self._signals)
        pending = {
            tf: signal for tf, signal in self._pending.items() if signal.id not in resolved
        }

        # Publish the whole pass at once
        self._signals, self._pending = self._retain(signals), pending

        for signal in resolved.values():
            self._stats.record_outcome(signal.status, signal.pnl)
            logger.info(
                f"Signal {signal.id} [{signal.timeframe}] {signal.direction.value} "
                f"{signal.status.value}: entry={signal.entry_price} exit={signal.exit_price} "
                f"pnl={signal.pnl:+.2f}"
            )

        return list(resolved.values())
