"""End-to-end weekly digest generation.

Slices the current and previous week out of the entry store, optionally
scores unscored entries, rolls both weeks up through the cache, extracts
themes for the current week and composes the digest.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from lightnote.cache import RollupCache, ThemeCache
from lightnote.config import LightnoteConfig
from lightnote.digest import Digest, compose_digest
from lightnote.errors import RunReport
from lightnote.llm import Completer
from lightnote.models import JournalEntry
from lightnote.sentiment import SentimentScorer, score_entries
from lightnote.store import BlobStore, EntryStore
from lightnote.themes import ThemeExtractor
from lightnote.weeks import prev_week_key, week_range_from_key

logger = logging.getLogger(__name__)


class DigestRun(BaseModel):
    """A composed digest plus the diagnostics of the run that produced it."""

    digest: Digest
    report: RunReport
    entries: list[JournalEntry]


async def _slice(
    store: EntryStore,
    week_key: str,
    scorer: SentimentScorer | None,
    report: RunReport,
) -> list[JournalEntry]:
    week = week_range_from_key(week_key)
    entries = store.entries_between(week.start, week.end)
    if scorer is not None and entries:
        entries = await score_entries(entries, scorer)
    report.items_processed[week_key] = len(entries)
    return entries


async def generate_digest(
    week_key: str,
    entry_store: EntryStore,
    blob_store: BlobStore,
    *,
    client: Completer | None = None,
    scorer: SentimentScorer | None = None,
    config: LightnoteConfig | None = None,
    extractor: ThemeExtractor | None = None,
) -> DigestRun:
    """Generate the digest for ``week_key``.

    Args:
        week_key: Target week, e.g. ``2025-W03``.
        entry_store: Source of journal entries.
        blob_store: Backing store for the rollup and theme caches.
        client: Completion client; None skips the LLM and uses heuristic themes.
        scorer: Sentiment scorer for entries without a score; None leaves them unscored.
        config: Settings for thresholds and tracked entities.
        extractor: Reuse an existing extractor (and its in-flight requests).

    Returns:
        The digest together with the run report.

    Raises:
        ValueError: If ``week_key`` is malformed.
    """
    config = config or LightnoteConfig()
    report = RunReport()
    previous_key = prev_week_key(week_key)

    entries = await _slice(entry_store, week_key, scorer, report)
    previous_entries = await _slice(entry_store, previous_key, scorer, report)
    report.mark_stage_complete("load")

    rollups = RollupCache(blob_store, min_words=config.digest.min_words)
    current_rollup = rollups.get_or_compute(week_key, entries)
    previous_rollup = rollups.get_or_compute(previous_key, previous_entries)
    report.mark_stage_complete("rollup")

    if extractor is None:
        extractor = ThemeExtractor(
            client,
            ThemeCache(blob_store, pinned=config.themes.pin_cache),
            sample_size=config.digest.sample_size,
        )
    themes = await extractor.extract_detailed(week_key, entries, report)
    report.mark_stage_complete("themes")

    digest = compose_digest(
        week_key,
        current_rollup,
        previous_rollup,
        themes.themes,
        entries,
        previous_entries,
        config.tracking.entities,
        theme_source=themes.source,
        low_mood_threshold=config.digest.low_mood_threshold,
    )
    report.mark_stage_complete("compose")
    report.finish()

    logger.info(
        "Digest for %s: %d entries, themes from %s, %d recovered errors",
        week_key,
        len(entries),
        themes.source,
        report.error_count,
    )
    return DigestRun(digest=digest, report=report, entries=entries)
