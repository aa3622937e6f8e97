"""Per-week caches for rollups and themes over an injected blob store.

Each week is its own blob (``<namespace>/<week key>``), so writing one week
leaves the others untouched. Neither cache evicts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from lightnote.models import JournalEntry, ThemeSet
from lightnote.rollup import MIN_WORDS, WeekRollup, rollup_checksum, rollup_week
from lightnote.store import BlobStore

logger = logging.getLogger(__name__)

ROLLUP_NAMESPACE = "rollups.v1"  # bump if the rollup shape changes
THEME_NAMESPACE = "themes.v1"


class RollupCacheEntry(BaseModel):
    """Cached rollup for one week with the checksum it was computed from."""

    checksum: str
    data: WeekRollup | None = None


class ThemeCacheEntry(BaseModel):
    """Cached LLM themes for one week."""

    timestamp: datetime = Field(default_factory=datetime.now)
    themes: ThemeSet
    checksum: str | None = None


class RollupCache:
    """Read-through rollup cache keyed by week.

    A week is recomputed only when its slice checksum changes; a recompute
    is always persisted, even if the rollup came out identical.
    """

    def __init__(
        self,
        store: BlobStore,
        namespace: str = ROLLUP_NAMESPACE,
        min_words: int = MIN_WORDS,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._min_words = min_words

    def _key(self, week_key: str) -> str:
        return f"{self._namespace}/{week_key}"

    def get(self, week_key: str) -> RollupCacheEntry | None:
        raw = self._store.get(self._key(week_key))
        if raw is None:
            return None
        try:
            return RollupCacheEntry.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding corrupt rollup cache for %s: %s", week_key, exc)
            return None

    def get_or_compute(
        self, week_key: str, entries: Sequence[JournalEntry]
    ) -> WeekRollup | None:
        checksum = rollup_checksum(entries)
        cached = self.get(week_key)
        if cached is not None and cached.checksum == checksum:
            logger.debug("Rollup cache hit for %s (%s)", week_key, checksum)
            return cached.data

        data = rollup_week(entries, min_words=self._min_words)
        entry = RollupCacheEntry(checksum=checksum, data=data)
        self._store.put(self._key(week_key), entry.model_dump(mode="json"))
        logger.debug("Rollup recomputed for %s (%s)", week_key, checksum)
        return data


class ThemeCache:
    """LLM theme results keyed by week.

    When ``pinned`` is False a hit only counts if it was stored against the
    same slice checksum, so edits to a week invalidate its themes. Pinned
    caches treat any structurally valid hit as permanent.
    """

    def __init__(
        self,
        store: BlobStore,
        namespace: str = THEME_NAMESPACE,
        pinned: bool = False,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._pinned = pinned

    def _key(self, week_key: str) -> str:
        return f"{self._namespace}/{week_key}"

    def get(self, week_key: str, checksum: str | None = None) -> ThemeSet | None:
        raw = self._store.get(self._key(week_key))
        if raw is None:
            return None
        themes = raw.get("themes")
        if not isinstance(themes, dict) or not isinstance(themes.get("words"), list):
            return None
        try:
            entry = ThemeCacheEntry.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding corrupt theme cache for %s: %s", week_key, exc)
            return None
        if not self._pinned and checksum is not None and entry.checksum != checksum:
            logger.info("Theme cache for %s is stale, entries changed", week_key)
            return None
        return entry.themes

    def put(self, week_key: str, themes: ThemeSet, checksum: str | None = None) -> None:
        entry = ThemeCacheEntry(themes=themes, checksum=checksum)
        self._store.put(self._key(week_key), entry.model_dump(mode="json"))
