"""Compose the weekly digest from rollups, themes and entry slices.

``compose_digest`` is pure: same inputs, same digest. Deltas against the
previous week are only filled in when that week actually has data.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from statistics import fmean

from pydantic import BaseModel, ConfigDict, Field

from lightnote.config import DEFAULT_TRACKED_ENTITIES
from lightnote.models import JournalEntry, ThemeSet
from lightnote.rollup import WeekRollup
from lightnote.terms import low_mood_terms, rank_counts, term_counts
from lightnote.themes import clip
from lightnote.weeks import WeekRange, week_range_from_key

NO_ENTRIES_MESSAGE = "No entries yet this week."
NOTABLE_CLIP = 120
SUMMARY_CLIP = 140
MOOD_DROP = -0.3
THEME_DELTA_LIMIT = 3
SIGNIFICANT_MENTION_DELTA = 3

_SENTENCE_RE = re.compile(r"(.+?[.!?])(\s|$)")
_DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class NotableEntry(BaseModel):
    """The most negative or most positive entry of the week."""

    id: str
    score: float
    clip: str
    summary: str


class EntityImpact(BaseModel):
    """Mentions and mood for one tracked entity this week vs last week.

    ``label`` is ``"new"`` when the entity had no mentions last week (and
    ``mention_delta`` is then None), otherwise the signed delta, e.g. ``"+2"``.
    """

    name: str
    mentions: int
    mention_delta: int | None = None
    label: str = ""
    mood_avg: float | None = None
    mood_delta: float | None = None


class ThemeDelta(BaseModel):
    term: str
    count: int
    delta: int


class Digest(BaseModel):
    """Structured weekly digest handed to renderers and storage."""

    model_config = ConfigDict(frozen=True)

    week_key: str
    date_range: WeekRange
    empty: bool = False
    message: str = ""
    rollup: WeekRollup | None = None
    themes: ThemeSet = Field(default_factory=ThemeSet)
    theme_source: str = "heuristic"
    has_previous: bool = False
    has_mood: bool = False
    count_delta: int | None = None
    mood_delta: float | None = None
    notable_negative: NotableEntry | None = None
    notable_positive: NotableEntry | None = None
    entity_impacts: list[EntityImpact] = Field(default_factory=list)
    rising_themes: list[ThemeDelta] = Field(default_factory=list)
    falling_themes: list[ThemeDelta] = Field(default_factory=list)
    low_mood_terms: list[str] = Field(default_factory=list)
    when_sentence: str = ""
    questions: list[str] = Field(default_factory=list)
    next_step: str = ""


def summarize_text(text: str) -> str:
    """First sentence, or the first 140 chars when there is no sentence end."""
    flat = " ".join((text or "").split())
    if not flat:
        return ""
    match = _SENTENCE_RE.search(flat)
    sentence = match.group(1) if match else flat
    return clip(sentence, SUMMARY_CLIP)


def _notable(entry: JournalEntry) -> NotableEntry:
    return NotableEntry(
        id=entry.id,
        score=entry.score if entry.score is not None else 0.0,
        clip=clip(entry.text, NOTABLE_CLIP),
        summary=summarize_text(entry.text),
    )


def notable_entries(
    entries: Sequence[JournalEntry],
) -> tuple[NotableEntry | None, NotableEntry | None]:
    """Worst and best scored entries; longer text wins a tie at either end."""
    scored = [e for e in entries if e.score is not None]
    if not scored:
        return None, None
    worst = sorted(scored, key=lambda e: (e.score, -len(e.text)))[0]
    best = sorted(scored, key=lambda e: (-e.score, -len(e.text)))[0]
    return _notable(worst), _notable(best)


def when_sentence(entries: Sequence[JournalEntry]) -> str:
    """Most common weekday and part of day, e.g. "You wrote mostly on Wed evening.".

    Ties go to the earliest day counting from Sunday, and to the earliest hour.
    """
    if not entries:
        return ""
    days = [0] * 7
    hours = [0] * 24
    for entry in entries:
        days[(entry.created_at.weekday() + 1) % 7] += 1
        hours[entry.created_at.hour] += 1
    top_day = days.index(max(days))
    top_hour = hours.index(max(hours))
    if top_hour < 12:
        bucket = "morning"
    elif top_hour < 18:
        bucket = "afternoon"
    else:
        bucket = "evening"
    return f"You wrote mostly on {_DAY_NAMES[top_day]} {bucket}."


def _tally(
    entries: Sequence[JournalEntry], names: Sequence[str]
) -> dict[str, tuple[int, list[float]]]:
    bag: dict[str, tuple[int, list[float]]] = {name: (0, []) for name in names}
    for entry in entries:
        text = entry.text.lower()
        for name in names:
            if name in text:
                mentions, moods = bag[name]
                if entry.score is not None:
                    moods.append(entry.score)
                bag[name] = (mentions + 1, moods)
    return bag


def entity_impacts(
    entries: Sequence[JournalEntry],
    previous_entries: Sequence[JournalEntry],
    tracked: Sequence[str],
) -> list[EntityImpact]:
    """Per tracked entity: mentions, mention delta and mood, most-mentioned first.

    An entry mentions an entity if the entity's lowercase name is a substring
    of the lowercased text. Entities absent this week are left out.
    """
    names = [t.strip().lower() for t in tracked if t.strip()]
    current = _tally(entries, names)
    previous = _tally(previous_entries, names)

    impacts: list[EntityImpact] = []
    for name in names:
        mentions, moods = current[name]
        if mentions == 0:
            continue
        prev_mentions, prev_moods = previous[name]
        mood = fmean(moods) if moods else None
        prev_mood = fmean(prev_moods) if prev_moods else None

        if prev_mentions == 0:
            delta, label = None, "new"
        else:
            delta = mentions - prev_mentions
            label = f"{delta:+d}" if delta else ""

        impacts.append(
            EntityImpact(
                name=name,
                mentions=mentions,
                mention_delta=delta,
                label=label,
                mood_avg=mood,
                mood_delta=mood - prev_mood if mood is not None and prev_mood is not None else None,
            )
        )

    impacts.sort(key=lambda i: -i.mentions)
    return impacts


def theme_deltas(
    entries: Sequence[JournalEntry],
    previous_entries: Sequence[JournalEntry],
    k: int = 8,
) -> tuple[list[ThemeDelta], list[ThemeDelta]]:
    """Rising and falling words between the two weeks' heuristic rankings.

    Candidates are the top-``k`` words of either week; each list holds at
    most three, largest absolute change first.
    """
    current, _ = term_counts(entries)
    previous, _ = term_counts(previous_entries)
    candidates = [t.term for t in rank_counts(current, k)]
    candidates += [t.term for t in rank_counts(previous, k) if t.term not in candidates]

    changes = [
        ThemeDelta(term=term, count=current[term], delta=current[term] - previous[term])
        for term in candidates
    ]
    changes = [c for c in changes if c.delta != 0]
    changes.sort(key=lambda c: -abs(c.delta))

    rising = [c for c in changes if c.delta > 0][:THEME_DELTA_LIMIT]
    falling = [c for c in changes if c.delta < 0][:THEME_DELTA_LIMIT]
    return rising, falling


def suggest_reflection(
    rising: Sequence[ThemeDelta],
    falling: Sequence[ThemeDelta],
    mood_delta: float | None,
    impacts: Sequence[EntityImpact],
    themes: ThemeSet,
) -> tuple[list[str], str]:
    """Questions (at most two) and one tiny next step from a fixed rule table."""
    mood_dropped = mood_delta is not None and mood_delta <= MOOD_DROP

    questions: list[str] = []
    if rising:
        questions.append(f'What did "{rising[0].term}" actually mean to you this week?')
    if mood_dropped:
        questions.append("What would help you feel more grounded right now?")
    significant = next(
        (
            i
            for i in impacts
            if (i.mention_delta or 0) >= SIGNIFICANT_MENTION_DELTA
            or (i.label == "new" and i.mentions >= SIGNIFICANT_MENTION_DELTA)
        ),
        None,
    )
    if significant is not None:
        questions.append(f"What's one thing about {significant.name} you want to remember?")

    if any(f.term == "sleep" for f in falling):
        next_step = "Set a gentle bedtime reminder for 10:30pm; just notice if you follow it."
    elif mood_dropped:
        next_step = (
            "Take a 10-minute walk after dinner on Wed/Fri; write one line about energy after."
        )
    else:
        focus = rising[0].term if rising else (themes.words[0] if themes.words else None)
        if focus:
            next_step = f'Notice when "{focus}" comes up next; write what preceded it.'
        else:
            next_step = "Write one line each evening about what stood out that day."

    return questions[:2], next_step


def compose_digest(
    week_key: str,
    current_rollup: WeekRollup | None,
    previous_rollup: WeekRollup | None,
    current_themes: ThemeSet,
    entries: Sequence[JournalEntry],
    previous_entries: Sequence[JournalEntry],
    tracked_entities: Sequence[str] | None = None,
    *,
    theme_source: str = "llm",
    low_mood_threshold: float = -0.2,
) -> Digest:
    """Merge rollups, themes and entity tracking into one Digest."""
    date_range = week_range_from_key(week_key)
    if current_rollup is None or not entries:
        return Digest(
            week_key=week_key,
            date_range=date_range,
            empty=True,
            message=NO_ENTRIES_MESSAGE,
        )

    tracked = DEFAULT_TRACKED_ENTITIES if tracked_entities is None else tracked_entities
    has_previous = bool(previous_entries) and previous_rollup is not None
    has_mood = current_rollup.has_mood

    count_delta: int | None = None
    mood_delta: float | None = None
    rising: list[ThemeDelta] = []
    falling: list[ThemeDelta] = []
    if previous_rollup is not None and has_previous:
        count_delta = current_rollup.count - previous_rollup.count
        if has_mood and previous_rollup.has_mood:
            mood_delta = round(
                round(current_rollup.mood_avg, 2) - round(previous_rollup.mood_avg, 2), 2
            )
        rising, falling = theme_deltas(entries, previous_entries)

    worst, best = notable_entries(entries)
    impacts = entity_impacts(entries, previous_entries, tracked)
    questions, next_step = suggest_reflection(
        rising, falling, mood_delta, impacts, current_themes
    )

    return Digest(
        week_key=week_key,
        date_range=date_range,
        rollup=current_rollup,
        themes=current_themes,
        theme_source=theme_source,
        has_previous=has_previous,
        has_mood=has_mood,
        count_delta=count_delta,
        mood_delta=mood_delta,
        notable_negative=worst,
        notable_positive=best,
        entity_impacts=impacts,
        rising_themes=rising,
        falling_themes=falling,
        low_mood_terms=(
            low_mood_terms(entries, low_mood_threshold).word_terms() if has_mood else []
        ),
        when_sentence=when_sentence(entries),
        questions=questions,
        next_step=next_step,
    )
