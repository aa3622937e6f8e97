"""Lightnote - weekly digests from personal journal entries."""

__version__ = "0.3.0"

from lightnote.digest import Digest, compose_digest
from lightnote.models import JournalEntry, SentimentScore, ThemeSet
from lightnote.pipeline import DigestRun, generate_digest
from lightnote.rollup import WeekRollup, rollup_week
from lightnote.weeks import week_key, week_range_from_key

__all__ = [
    "Digest",
    "DigestRun",
    "JournalEntry",
    "SentimentScore",
    "ThemeSet",
    "WeekRollup",
    "__version__",
    "compose_digest",
    "generate_digest",
    "rollup_week",
    "week_key",
    "week_range_from_key",
]
