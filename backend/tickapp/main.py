"""CLI entry point: replay recorded ticks through the signal pipeline.

Seeds 1m history from a bar CSV, feeds a tick CSV through the pipeline
(tick time drives the clock), prints events as JSON lines and runs a
final resolution pass at the end of the stream.

Usage:
    python -m tickapp.main --history bars.csv --ticks ticks.csv
    python -m tickapp.main --history bars.csv --ticks ticks.csv --config engine.yaml
    python -m tickapp.main --history bars.csv --ticks ticks.csv --events out.jsonl --news --seed 7
"""

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

from tickapp.config import get_settings
from tickapp.engine_config import load_engine_config
from tickapp.events import EventPublisher, JsonLinesSink
from tickapp.services.news import NewsGenerator
from tickapp.services.pipeline import SignalPipeline
from tickapp.services.prediction import TrendOracle
from tickapp.services.replay import iter_ticks_csv, load_bars_csv
from tickcore.models import SignalIdGenerator

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay ticks through the tick-to-signal engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tickapp.main --history bars.csv --ticks ticks.csv
  python -m tickapp.main --history bars.csv --ticks ticks.csv --events out.jsonl --news --seed 7
        """,
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=None,
        help="CSV of 1m bars to seed history (timestamp,open,high,low,close[,volume])",
    )
    parser.add_argument(
        "--ticks",
        type=Path,
        required=True,
        help="CSV of ticks to replay (timestamp,price)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Engine YAML config (default: settings / engine.yaml)",
    )
    parser.add_argument(
        "--events",
        type=Path,
        default=None,
        help="Write events as JSON lines to this file (default: stdout)",
    )
    parser.add_argument(
        "--no-bars",
        action="store_true",
        help="Do not emit bar series events",
    )
    parser.add_argument(
        "--no-oracle",
        action="store_true",
        help="Score without the trend prediction oracle",
    )
    parser.add_argument(
        "--news",
        action="store_true",
        help="Inject simulated news at random tick-time intervals",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for simulated news",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


async def run_replay(args: argparse.Namespace, stream) -> SignalPipeline:
    """Run one replay and return the finished pipeline."""
    settings = get_settings()
    engine = load_engine_config(args.config or settings.engine_config_path)

    sink_types = None
    if args.no_bars:
        sink_types = {"signal_created", "signal_resolved", "regime", "news"}
    publisher = EventPublisher()
    publisher.subscribe(JsonLinesSink(stream, types=sink_types))

    pipeline = SignalPipeline(
        timeframes=engine.resolve_timeframes(settings.timeframes),
        indicator_config=engine.indicators,
        scoring_config=engine.scoring,
        lifecycle_policy=engine.lifecycle,
        oracle=None if args.no_oracle else TrendOracle(),
        oracle_timeout_s=settings.oracle_timeout_s,
        publisher=publisher,
        id_generator=SignalIdGenerator(),
        clock=None,  # Tick time
        max_history=settings.max_history,
        queue_size=settings.tick_queue_size,
    )

    if args.history:
        pipeline.seed(load_bars_csv(args.history))

    logger.info(f"Replaying {settings.symbol} ticks from {args.ticks}")

    seed = args.seed if args.seed is not None else settings.random_seed
    rng = random.Random(seed)
    news = NewsGenerator(rng=rng, clock=pipeline.now)
    next_news_ms = None

    await pipeline.start()
    try:
        async for price, ts in iter_ticks_csv(args.ticks):
            if args.news:
                if next_news_ms is None:
                    next_news_ms = ts + int(rng.uniform(
                        settings.news_min_interval_s, settings.news_max_interval_s
                    ) * 1000)
                elif ts >= next_news_ms:
                    await pipeline.drain()
                    await pipeline.ingest_news(news.generate())
                    next_news_ms = ts + int(rng.uniform(
                        settings.news_min_interval_s, settings.news_max_interval_s
                    ) * 1000)
            await pipeline.submit_tick(price, ts)

        await pipeline.drain()
        await pipeline.resolve_now()
    finally:
        await pipeline.stop()

    stats = pipeline.stats
    logger.info(
        f"Replay done [{settings.symbol}]: {stats.total_signals} signals, {stats.wins} wins, {stats.losses} losses, "
        f"{stats.active_signals} pending, win rate {stats.win_rate:.1f}%, "
        f"pnl {stats.total_pnl:+.2f}, rejected ticks {pipeline.aggregator.rejected_ticks}"
    )
    return pipeline


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    try:
        if args.events:
            with open(args.events, "w") as f:
                await run_replay(args, f)
        else:
            await run_replay(args, sys.stdout)
    except Exception as e:
        logger.error(f"Replay failed: {e}")
        logger.exception("Traceback")
        return 1
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
