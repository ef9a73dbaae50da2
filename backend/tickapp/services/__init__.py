"""Runtime services."""

from tickapp.services.news import NEWS_TEMPLATES, NewsGenerator, run_news_loop
from tickapp.services.pipeline import SignalPipeline
from tickapp.services.prediction import OracleRunner, TrendOracle
from tickapp.services.replay import iter_ticks_csv, load_bars_csv, parse_timestamp

__all__ = [
    "NEWS_TEMPLATES",
    "NewsGenerator",
    "OracleRunner",
    "SignalPipeline",
    "TrendOracle",
    "iter_ticks_csv",
    "load_bars_csv",
    "parse_timestamp",
    "run_news_loop",
]
