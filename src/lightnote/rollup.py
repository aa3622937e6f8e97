"""Per-week statistical rollup over journal entries."""

from __future__ import annotations

import math
from collections.abc import Sequence

from pydantic import BaseModel

from lightnote.models import JournalEntry

MIN_WORDS = 3  # shorter entries are too noisy for mood statistics


class ScoredRef(BaseModel):
    """Pointer to an entry together with its compound score."""

    id: str
    score: float


class WeekRollup(BaseModel):
    """Aggregated statistics for one week's entries."""

    count: int = 0
    mood_avg: float = 0.0
    mood_vol: float = 0.0
    longest_entry_id: str | None = None
    most_negative: ScoredRef | None = None
    most_positive: ScoredRef | None = None
    scored_count: int = 0

    @property
    def has_mood(self) -> bool:
        return self.scored_count > 0


def rollup_week(
    entries: Sequence[JournalEntry], min_words: int = MIN_WORDS
) -> WeekRollup | None:
    """Compute count, mood mean/volatility and notable entries.

    Entries under ``min_words`` words still count toward ``count`` and the
    longest-entry pick but are ignored for mood statistics. Mean and
    population variance are accumulated in one pass (Welford). Extremes use
    strict comparisons, so the earliest entry wins ties.

    Returns:
        The rollup, or None for an empty slice.
    """
    if not entries:
        return None

    longest = entries[0]
    most_neg: ScoredRef | None = None
    most_pos: ScoredRef | None = None
    n = 0
    mean = 0.0
    m2 = 0.0

    for entry in entries:
        if len(entry.text) > len(longest.text):
            longest = entry

        if entry.word_count < min_words:
            continue
        score = entry.score
        if score is None:
            continue

        n += 1
        delta = score - mean
        mean += delta / n
        m2 += delta * (score - mean)

        if most_neg is None or score < most_neg.score:
            most_neg = ScoredRef(id=entry.id, score=score)
        if most_pos is None or score > most_pos.score:
            most_pos = ScoredRef(id=entry.id, score=score)

    return WeekRollup(
        count=len(entries),
        mood_avg=mean if n else 0.0,
        mood_vol=math.sqrt(m2 / n) if n > 1 else 0.0,
        longest_entry_id=longest.id,
        most_negative=most_neg,
        most_positive=most_pos,
        scored_count=n,
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def rollup_checksum(entries: Sequence[JournalEntry]) -> str:
    """Cheap content fingerprint: entry count plus summed milli-scores.

    Collisions are possible (same count, same summed score); that is
    acceptable for cache invalidation.
    """
    total = sum(
        _round_half_up(entry.score * 1000)
        for entry in entries
        if entry.score is not None
    )
    return f"{len(entries)}:{total}"
