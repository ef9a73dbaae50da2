"""Tick-to-signal pipeline.

Serializes the two event sources against the shared bar history and
signal set:
- ticks, applied one at a time from a bounded queue
- resolution checks, on their own timer

Both run under one asyncio.Lock. A bar close runs the full fan-out
(annotate base history, then per timeframe: gate, resample, annotate,
predict, score, track) before the next tick is applied. Events are
published after the lock is released.

Time:
- With a clock, "now" is wall time and the resolution loop drives expiry.
- Without one, "now" follows tick time (replay), and every accepted tick
  also runs a resolution pass at its timestamp.
"""

import asyncio
import logging
from typing import Callable, Sequence

from tickcore.bar_aggregator import DEFAULT_MAX_HISTORY, BarAggregator
from tickcore.indicators import IndicatorCalculator
from tickcore.lifecycle import SignalLifecycleManager
from tickcore.models import (
    Bar,
    IndicatorConfig,
    LifecyclePolicy,
    NewsItem,
    ScoringConfig,
    SignalIdGenerator,
    SignalRecord,
    SignalStats,
    SignalStrength,
)
from tickcore.protocol import PredictionOracle
from tickcore.resampler import DEFAULT_TIMEFRAMES, check_timeframes, resample_timeframe
from tickcore.scorer import SignalScorer
from tickcore.sentiment import SentimentTracker
from tickapp.events import (
    EventMessage,
    EventPublisher,
    bars_message,
    news_message,
    regime_message,
    signal_created_message,
    signal_resolved_message,
)
from tickapp.services.prediction import OracleRunner

logger = logging.getLogger(__name__)

BASE_TIMEFRAME = "1m"
CHART_LIMIT = 50


class SignalPipeline:
    """
    Drive the core from a tick stream.

    Usage:
        pipeline = SignalPipeline(timeframes=["5m", "15m"])
        pipeline.seed(historical_bars)
        await pipeline.start()
        await pipeline.submit_tick(price, ts_ms)
        ...
        await pipeline.stop()
    """

    def __init__(
        self,
        timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
        indicator_config: IndicatorConfig | None = None,
        scoring_config: ScoringConfig | None = None,
        lifecycle_policy: LifecyclePolicy | None = None,
        oracle: PredictionOracle | None = None,
        oracle_timeout_s: float = 0.25,
        publisher: EventPublisher | None = None,
        sentiment: SentimentTracker | None = None,
        id_generator: SignalIdGenerator | None = None,
        clock: Callable[[], int] | None = None,
        max_history: int | None = DEFAULT_MAX_HISTORY,
        queue_size: int = 10000,
        resolution_interval_s: float = 1.0,
    ):
        """
        Args:
            timeframes: Timeframes to analyze (e.g., ["5m", "1h"])
            oracle: Optional next-close predictor
            oracle_timeout_s: Max time to wait for a prediction
            publisher: Event publisher (one is created if omitted)
            sentiment: Shared sentiment tracker (one is created if omitted)
            id_generator: Signal id generator (deterministic sequence)
            clock: Wall clock in epoch ms; None follows tick time
            max_history: Sealed 1m bars to keep
            queue_size: Tick queue bound (producers wait when full)
            resolution_interval_s: Resolution loop period (wall-clock mode)
        """
        check_timeframes(timeframes)

        self.timeframes = list(timeframes)
        self.clock = clock
        self.resolution_interval_s = resolution_interval_s

        self.aggregator = BarAggregator(max_history=max_history)
        self.calculator = IndicatorCalculator(indicator_config)
        self.sentiment = sentiment or SentimentTracker()
        self.scorer = SignalScorer(self.sentiment, scoring_config, id_generator)
        self.lifecycle = SignalLifecycleManager(lifecycle_policy)
        self.oracle_runner = OracleRunner(oracle, timeout_s=oracle_timeout_s)
        self.publisher = publisher or EventPublisher()

        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue[tuple[float, int, float]] = asyncio.Queue(maxsize=queue_size)
        self._tasks: list[asyncio.Task] = []
        self._last_tick_ms = 0

        # Latest annotated series per timeframe (BASE_TIMEFRAME included)
        self._series: dict[str, list[Bar]] = {}
        self._regimes: dict[str, str] = {}

    # ── Accessors ───────────────────────────────────────────────

    def now(self) -> int:
        """Current time in epoch ms (wall clock, or last tick time)."""
        return self.clock() if self.clock is not None else self._last_tick_ms

    @property
    def signals(self) -> tuple[SignalRecord, ...]:
        return self.lifecycle.signals

    @property
    def stats(self) -> SignalStats:
        return self.lifecycle.stats

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    def get_bars(self, timeframe: str) -> list[Bar]:
        """Latest annotated series for a timeframe (empty before the first close)."""
        return list(self._series.get(timeframe, []))

    def chart_bars(self, timeframe: str, limit: int = CHART_LIMIT) -> list[Bar]:
        """Chart view: the last ``limit`` bars of a timeframe."""
        return self.get_bars(timeframe)[-limit:]

    def regime(self, timeframe: str) -> str | None:
        return self._regimes.get(timeframe)

    # ── Setup ───────────────────────────────────────────────────

    def seed(self, bars: Sequence[Bar]) -> None:
        """Seed 1m history from the historical loader and annotate it."""
        self.aggregator.seed(bars)
        history = self.aggregator.history
        self._series[BASE_TIMEFRAME] = self.calculator.annotate(history)
        for tf in self.timeframes:
            self._series[tf] = self.calculator.annotate(resample_timeframe(history, tf))
        if history:
            self._last_tick_ms = max(self._last_tick_ms, history[-1].timestamp)

    # ── Tick path ───────────────────────────────────────────────

    async def submit_tick(self, price: float, timestamp: int, volume: float = 0.0) -> None:
        """Queue a tick; waits while the queue is full."""
        await self._queue.put((price, timestamp, volume))

    async def drain(self) -> None:
        """Wait until every queued tick has been processed."""
        await self._queue.join()

    async def process_tick(self, price: float, timestamp: int, volume: float = 0.0) -> list[SignalRecord]:
        """
        Apply one tick and run any analysis it triggers.

        Returns:
            Signals created by the bar close this tick caused (usually empty)
        """
        messages: list[EventMessage] = []
        created: list[SignalRecord] = []

        async with self._lock:
            rejected = self.aggregator.rejected_ticks
            sealed = self.aggregator.add_tick(price, timestamp, volume)
            if self.aggregator.rejected_ticks != rejected:
                return []
            self._last_tick_ms = max(self._last_tick_ms, int(timestamp))

            if self.clock is None:
                now = self.now()
                messages.extend(
                    signal_resolved_message(s, now) for s in self._resolve_locked(price)
                )

            if sealed is not None:
                created = await self._on_bar_close(sealed, messages)

        await self.publisher.publish_all(messages)
        return created

    async def _on_bar_close(self, sealed: Bar, messages: list[EventMessage]) -> list[SignalRecord]:
        """Full analysis fan-out for one sealed 1m bar (lock held)."""
        now = self.now()
        history = self.aggregator.history

        base = self.calculator.annotate(history)
        self._series[BASE_TIMEFRAME] = base
        messages.append(bars_message(BASE_TIMEFRAME, base[-CHART_LIMIT:], now))

        created: list[SignalRecord] = []
        for tf in self.timeframes:
            series = self.calculator.annotate(resample_timeframe(history, tf))
            self._series[tf] = series
            messages.append(bars_message(tf, series[-CHART_LIMIT:], now))

            if self.lifecycle.has_pending(tf):
                logger.debug(f"[{tf}] pending signal open, skipping scoring")
                continue

            prediction = await self.oracle_runner.predict([b.close for b in series])
            result = self.scorer.evaluate(series, tf, prediction=prediction, now_ms=now)
            self._regimes[tf] = result.regime
            messages.append(regime_message(tf, result.regime, result.debug, now))

            signal = result.signal
            if signal is None:
                continue
            if signal.strength == SignalStrength.WEAK:
                logger.debug(f"[{tf}] dropping WEAK {signal.direction.value} candidate ({result.debug})")
                continue

            self.lifecycle.add(signal)
            created.append(signal)
            messages.append(signal_created_message(signal, now))
            logger.info(
                f"Signal {signal.id} [{tf}] {signal.direction.value} @ {signal.entry_price} "
                f"{signal.strength.value} {signal.strategy} ({result.debug})"
            )

        if created:
            logger.info(f"Bar {sealed.timestamp} closed: {len(created)} new signal(s)")
        return created

    # ── Resolution path ─────────────────────────────────────────

    async def resolve_now(self, price: float | None = None) -> list[SignalRecord]:
        """
        Resolve every due signal against ``price`` (default: last price).

        Returns:
            The resolved signals
        """
        async with self._lock:
            if price is None:
                price = self.aggregator.last_price
            now = self.now()
            resolved = self._resolve_locked(price)
        await self.publisher.publish_all(signal_resolved_message(s, now) for s in resolved)
        return resolved

    def _resolve_locked(self, price: float | None) -> list[SignalRecord]:
        if price is None or not self.lifecycle.active_count:
            return []
        return self.lifecycle.resolve_due(price, self.now())

    # ── News ────────────────────────────────────────────────────

    async def ingest_news(self, item: NewsItem) -> None:
        """Apply a news event to the shared sentiment state."""
        async with self._lock:
            self.sentiment.ingest(item)
        await self.publisher.publish(news_message(item))

    # ── Background tasks ────────────────────────────────────────

    async def start(self) -> None:
        """Start the tick consumer and (wall-clock mode) the resolution loop."""
        if self._tasks:
            return
        self._tasks.append(asyncio.create_task(self._consume_ticks()))
        if self.clock is not None:
            self._tasks.append(asyncio.create_task(self._resolution_loop()))
        logger.info(f"Pipeline started: timeframes={self.timeframes}")

    async def stop(self) -> None:
        """Cancel background tasks."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info(
            f"Pipeline stopped: {self.stats.total_signals} signals, "
            f"{self.stats.wins}W/{self.stats.losses}L, pnl={self.stats.total_pnl:+.2f}"
        )

    async def _consume_ticks(self) -> None:
        while True:
            price, timestamp, volume = await self._queue.get()
            try:
                await self.process_tick(price, timestamp, volume)
            except Exception:
                logger.exception(f"Tick processing failed at {timestamp}")
            finally:
                self._queue.task_done()

    async def _resolution_loop(self) -> None:
        while True:
            await asyncio.sleep(self.resolution_interval_s)
            try:
                await self.resolve_now()
            except Exception:
                logger.exception("Resolution check failed")
