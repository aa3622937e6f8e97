"""Tests for lightnote.digest: composing the weekly digest."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from lightnote.digest import (
    NO_ENTRIES_MESSAGE,
    compose_digest,
    entity_impacts,
    notable_entries,
    summarize_text,
    theme_deltas,
    when_sentence,
)
from lightnote.models import JournalEntry, SentimentScore, ThemeSet
from lightnote.rollup import rollup_week
from lightnote.weeks import week_range_from_key

WEEK = "2025-W03"
CURRENT_MONDAY = datetime(2025, 1, 13)
PREVIOUS_MONDAY = datetime(2025, 1, 6)


def _entry(
    entry_id: str,
    text: str,
    score: float | None = None,
    when: datetime = CURRENT_MONDAY,
) -> JournalEntry:
    return JournalEntry(
        id=entry_id,
        text=text,
        created_at=when,
        sentiment=SentimentScore(compound=score) if score is not None else None,
    )


def _compose(entries, previous=(), themes=None, **kwargs):
    return compose_digest(
        WEEK,
        rollup_week(entries),
        rollup_week(list(previous)),
        themes or ThemeSet(),
        entries,
        list(previous),
        **kwargs,
    )


class TestEmptyWeek:
    def test_no_entries_message(self):
        digest = compose_digest(WEEK, None, None, ThemeSet(), [], [])
        assert digest.empty
        assert digest.message == NO_ENTRIES_MESSAGE
        assert digest.rollup is None
        assert digest.notable_negative is None
        assert digest.entity_impacts == []
        assert digest.questions == []
        assert digest.next_step == ""
        assert digest.date_range == week_range_from_key(WEEK)

    def test_empty_even_with_previous_week(self):
        previous = [_entry("p", "busy week at work", 0.2, PREVIOUS_MONDAY)]
        digest = compose_digest(WEEK, None, rollup_week(previous), ThemeSet(), [], previous)
        assert digest.empty
        assert digest.count_delta is None


class TestBaseline:
    def test_previous_entries_without_rollup_mean_no_deltas(self):
        entries = [_entry("a", "garden plans and tulips", 0.5)]
        previous = [_entry("p", "garden plans and tulips", 0.1, PREVIOUS_MONDAY)]
        digest = compose_digest(WEEK, rollup_week(entries), None, ThemeSet(), entries, previous)
        assert not digest.has_previous
        assert digest.count_delta is None
        assert digest.mood_delta is None

    def test_no_previous_week_means_no_deltas(self):
        entries = [_entry("a", "garden plans and tulips", 0.5), _entry("b", "garden rain today", -0.4)]
        digest = _compose(entries)
        assert not digest.empty
        assert not digest.has_previous
        assert digest.count_delta is None
        assert digest.mood_delta is None
        assert digest.rising_themes == []
        assert digest.falling_themes == []

    def test_count_and_mood_delta(self):
        entries = [_entry("a", "garden plans and tulips", -0.2), _entry("b", "rain all day long", -0.6)]
        previous = [_entry("p", "garden plans and tulips", 0.2, PREVIOUS_MONDAY)]
        digest = _compose(entries, previous)
        assert digest.has_previous
        assert digest.count_delta == 1
        assert digest.mood_delta == pytest.approx(-0.6)

    def test_previous_without_scores_has_no_mood_delta(self):
        entries = [_entry("a", "garden plans and tulips", -0.2)]
        previous = [_entry("p", "garden plans and tulips", None, PREVIOUS_MONDAY)]
        digest = _compose(entries, previous)
        assert digest.count_delta == 0
        assert digest.mood_delta is None

    def test_theme_source_and_themes_carried(self):
        themes = ThemeSet(words=["garden"])
        digest = _compose([_entry("a", "garden plans and tulips", 0.1)], themes=themes, theme_source="cache")
        assert digest.themes == themes
        assert digest.theme_source == "cache"

    def test_digest_is_immutable(self):
        digest = _compose([_entry("a", "garden plans and tulips", 0.1)])
        with pytest.raises(ValidationError):
            digest.week_key = "2025-W04"


class TestEntityImpacts:
    def test_new_entity(self):
        entries = [
            _entry("a", "Long day at Work, endless meetings", -0.3),
            _entry("b", "work deadline moved again", -0.5),
            _entry("c", "Left work early and walked home", 0.4),
        ]
        previous = [_entry("p", "Garden plans with a friend", 0.5, PREVIOUS_MONDAY)]
        digest = _compose(entries, previous)

        impacts = {i.name: i for i in digest.entity_impacts}
        assert list(impacts) == ["work"]
        work = impacts["work"]
        assert work.label == "new"
        assert work.mentions == 3
        assert work.mention_delta is None
        assert work.mood_avg == pytest.approx(-0.4 / 3)
        assert work.mood_delta is None

    def test_numeric_delta_and_mood_change(self):
        entries = [
            _entry("a", "dinner with mum", 0.6),
            _entry("b", "called mum twice", 0.2),
            _entry("c", "mum visited", None),
        ]
        previous = [_entry("p", "argued with mum", -0.4, PREVIOUS_MONDAY)]
        (impact,) = entity_impacts(entries, previous, ["mum"])
        assert impact.mentions == 3
        assert impact.mention_delta == 2
        assert impact.label == "+2"
        assert impact.mood_avg == pytest.approx(0.4)
        assert impact.mood_delta == pytest.approx(0.8)

    def test_unchanged_mentions_have_blank_label(self):
        entries = [_entry("a", "sleep was fine")]
        previous = [_entry("p", "sleep was bad", when=PREVIOUS_MONDAY)]
        (impact,) = entity_impacts(entries, previous, ["sleep"])
        assert impact.mention_delta == 0
        assert impact.label == ""
        assert impact.mood_avg is None

    def test_entity_counted_once_per_entry(self):
        (impact,) = entity_impacts([_entry("a", "work work work")], [], ["work"])
        assert impact.mentions == 1

    def test_absent_entities_omitted_and_sorted_by_mentions(self):
        entries = [
            _entry("a", "Charlotte called"),
            _entry("b", "sleep and charlotte"),
            _entry("c", "more sleep"),
            _entry("d", "sleep in"),
        ]
        impacts = entity_impacts(entries, [], ["Charlotte", " Sleep ", "mum"])
        assert [(i.name, i.mentions) for i in impacts] == [("sleep", 3), ("charlotte", 2)]

    def test_custom_tracking_list(self):
        digest = _compose([_entry("a", "Piano practice went well", 0.3)], tracked_entities=["piano"])
        assert [i.name for i in digest.entity_impacts] == ["piano"]


class TestNotables:
    def test_tie_prefers_longer_text(self):
        short = _entry("short", "rough day", -0.5)
        long = _entry("long", "rough day, the car broke down on the way home", -0.5)
        worst, best = notable_entries([short, long])
        assert worst.id == "long"
        assert best.id == "long"

    def test_extremes(self):
        entries = [
            _entry("a", "fine", 0.1),
            _entry("b", "awful. just awful.", -0.9),
            _entry("c", "best day in ages!", 0.8),
            _entry("d", "unscored"),
        ]
        worst, best = notable_entries(entries)
        assert worst.id == "b"
        assert worst.score == -0.9
        assert worst.summary == "awful."
        assert best.id == "c"

    def test_no_scores(self):
        assert notable_entries([_entry("a", "unscored")]) == (None, None)

    def test_clip(self):
        text = "word " * 60
        worst, _ = notable_entries([_entry("a", text, -0.1)])
        assert worst.clip.endswith("…")
        assert len(worst.clip) == 121


class TestSummarize:
    def test_first_sentence(self):
        assert summarize_text("Walked the dog. Then it rained.") == "Walked the dog."

    def test_question_and_exclamation(self):
        assert summarize_text("Why now? No idea.") == "Why now?"
        assert summarize_text("Finally!") == "Finally!"

    def test_no_terminal_punctuation(self):
        text = "a" * 200
        assert summarize_text(text) == "a" * 140 + "…"

    def test_decimal_point_is_not_a_sentence_end(self):
        assert summarize_text("Ran 5.5km today. Felt great.") == "Ran 5.5km today."

    def test_empty(self):
        assert summarize_text("   ") == ""


class TestThemeDeltas:
    def test_rising_and_falling(self):
        entries = [_entry("a", "apple apple apple banana")]
        previous = [_entry("p", "banana banana cherry", when=PREVIOUS_MONDAY)]
        rising, falling = theme_deltas(entries, previous)
        assert [(t.term, t.count, t.delta) for t in rising] == [("apple", 3, 3)]
        assert [(t.term, t.delta) for t in falling] == [("banana", -1), ("cherry", -1)]

    def test_limited_to_three_each(self):
        entries = [_entry("a", "alpha beta gamma delta epsilon")]
        rising, falling = theme_deltas(entries, [])
        assert len(rising) == 3
        assert falling == []

    def test_unchanged_terms_dropped(self):
        entries = [_entry("a", "garden")]
        previous = [_entry("p", "garden", when=PREVIOUS_MONDAY)]
        assert theme_deltas(entries, previous) == ([], [])


class TestWhenSentence:
    def test_most_common_day_and_bucket(self):
        wednesday = CURRENT_MONDAY + timedelta(days=2)
        entries = [
            _entry("a", "x", when=wednesday.replace(hour=20)),
            _entry("b", "y", when=wednesday.replace(hour=20, minute=30)),
            _entry("c", "z", when=CURRENT_MONDAY.replace(hour=9)),
        ]
        assert when_sentence(entries) == "You wrote mostly on Wed evening."

    @pytest.mark.parametrize(
        ("hour", "bucket"), [(0, "morning"), (11, "morning"), (12, "afternoon"), (17, "afternoon"), (18, "evening")]
    )
    def test_buckets(self, hour, bucket):
        entries = [_entry("a", "x", when=CURRENT_MONDAY.replace(hour=hour))]
        assert when_sentence(entries) == f"You wrote mostly on Mon {bucket}."

    def test_tie_goes_to_sunday_first(self):
        sunday = CURRENT_MONDAY + timedelta(days=6)
        entries = [_entry("m", "x", when=CURRENT_MONDAY.replace(hour=9)), _entry("s", "y", when=sunday.replace(hour=9))]
        assert when_sentence(entries) == "You wrote mostly on Sun morning."

    def test_weekday_tie_goes_to_earlier_day(self):
        tuesday = CURRENT_MONDAY + timedelta(days=1)
        entries = [_entry("t", "x", when=tuesday.replace(hour=20)), _entry("m", "y", when=CURRENT_MONDAY.replace(hour=20))]
        assert when_sentence(entries) == "You wrote mostly on Mon evening."

    def test_empty(self):
        assert when_sentence([]) == ""


class TestReflection:
    def test_falling_sleep_suggests_bedtime(self):
        entries = [_entry("a", "garden plans today", 0.2)]
        previous = [
            _entry("p1", "barely any sleep", -0.2, PREVIOUS_MONDAY),
            _entry("p2", "sleep was broken again", -0.1, PREVIOUS_MONDAY),
        ]
        digest = _compose(entries, previous)
        assert "sleep" in [t.term for t in digest.falling_themes]
        assert "bedtime" in digest.next_step

    def test_mood_drop_grounding_and_walk(self):
        entries = [_entry("a", "garden plans fell through", -0.6)]
        previous = [_entry("p", "garden plans looking good", 0.2, PREVIOUS_MONDAY)]
        digest = _compose(entries, previous)
        assert digest.mood_delta == pytest.approx(-0.8)
        assert "What would help you feel more grounded right now?" in digest.questions
        assert "10-minute walk" in digest.next_step

    def test_rising_theme_question_and_notice_step(self):
        entries = [_entry("a", "piano piano lessons", 0.3)]
        previous = [_entry("p", "quiet evening reading", 0.3, PREVIOUS_MONDAY)]
        digest = _compose(entries, previous)
        assert digest.questions[0] == 'What did "piano" actually mean to you this week?'
        assert digest.next_step == 'Notice when "piano" comes up next; write what preceded it.'

    def test_significant_entity_question(self):
        entries = [
            _entry("a", "long day at work", 0.1),
            _entry("b", "work again", 0.1),
            _entry("c", "work dinner", 0.1),
        ]
        previous = [_entry("p", "lazy sunday", 0.1, PREVIOUS_MONDAY)]
        digest = _compose(entries, previous)
        assert "What's one thing about work you want to remember?" in digest.questions
        assert len(digest.questions) <= 2

    def test_no_previous_uses_top_theme(self):
        themes = ThemeSet(words=["garden"])
        digest = _compose([_entry("a", "tulips", 0.2)], themes=themes)
        assert digest.next_step == 'Notice when "garden" comes up next; write what preceded it.'

    def test_generic_step_without_themes(self):
        digest = _compose([_entry("a", "ok", 0.2)])
        assert digest.next_step.startswith("Write one line")

    def test_low_mood_terms_surface(self):
        entries = [_entry("a", "deadline stress again", -0.7), _entry("b", "garden sunshine", 0.6)]
        digest = _compose(entries)
        assert digest.low_mood_terms == ["deadline", "stress"]

    def test_deterministic(self):
        entries = [_entry("a", "garden plans fell through", -0.6)]
        previous = [_entry("p", "garden plans looking good", 0.2, PREVIOUS_MONDAY)]
        assert _compose(entries, previous) == _compose(entries, previous)
