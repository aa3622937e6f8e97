"""Tests for lightnote.formatter: rendering digests."""

from datetime import datetime

import pytest
from lightnote.digest import compose_digest
from lightnote.formatter import DigestFormatter
from lightnote.models import JournalEntry, SentimentScore, ThemeEvidence, ThemeSet
from lightnote.rollup import rollup_week

WEEK = "2025-W03"


def _entry(entry_id: str, text: str, score: float, when: datetime) -> JournalEntry:
    return JournalEntry(id=entry_id, text=text, created_at=when, sentiment=SentimentScore(compound=score))


@pytest.fixture
def formatter() -> DigestFormatter:
    return DigestFormatter()


@pytest.fixture
def digest():
    entries = [
        _entry("a", "a good day at work", 0.6, datetime(2025, 1, 13, 9)),
        _entry("b", "a very bad day, everything fell apart", -0.7, datetime(2025, 1, 15, 20)),
    ]
    previous = [_entry("p", "quiet week with sleep issues", 0.1, datetime(2025, 1, 8, 21))]
    themes = ThemeSet(
        words=["work", "apart"],
        phrases=["bad day"],
        evidence=[ThemeEvidence(theme="bad day", quotes=["everything fell apart"])],
    )
    return compose_digest(WEEK, rollup_week(entries), rollup_week(previous), themes, entries, previous)


@pytest.fixture
def empty_digest():
    return compose_digest(WEEK, None, None, ThemeSet(), [], [])


class TestFormatText:
    def test_empty(self, formatter, empty_digest):
        text = formatter.format_text(empty_digest)
        assert text.splitlines() == [
            "Weekly Digest 2025-W03 (Jan 13 - Jan 19, 2025)",
            "No entries yet this week.",
        ]

    def test_summary_line(self, formatter, digest):
        lines = formatter.format_text(digest).splitlines()
        assert lines[0] == "Weekly Digest 2025-W03 (Jan 13 - Jan 19, 2025)"
        assert lines[1] == "Entries: 2 (+1 vs last week). Mood: -0.05 (± 0.65), down -0.15 vs last week."

    def test_sections(self, formatter, digest):
        text = formatter.format_text(digest)
        assert "Themes: bad day" in text
        assert "Entity: work: 1× (new) avg mood +0.60" in text
        assert 'Notable ↓ "a very bad day, everything fell apart"' in text
        assert 'Notable ↑ "a good day at work"' in text
        assert "Next tiny step: " in text

    def test_notables_show_id_score_and_summary(self, formatter, digest):
        lines = formatter.format_text(digest).splitlines()
        assert (
            'Notable ↓ "a very bad day, everything fell apart"  '
            "(id: b, score: -0.70): a very bad day, everything fell apart"
        ) in lines
        assert 'Notable ↑ "a good day at work"  (id: a, score: +0.60): a good day at work' in lines

    def test_summary_is_first_sentence(self, formatter):
        text = "Rough start. Then the bus broke down and I walked in the rain."
        entries = [JournalEntry(id="r", text=text, created_at=datetime(2025, 1, 14, 8), sentiment=SentimentScore(compound=-0.5))]
        digest = compose_digest(WEEK, rollup_week(entries), None, ThemeSet(), entries, [])
        assert f'Notable ↓ "{text}"  (id: r, score: -0.50): Rough start.' in formatter.format_text(digest)

    def test_evidence_lines(self, formatter, digest):
        assert '• bad day: "everything fell apart"' in formatter.format_text(digest).splitlines()

    def test_evidence_without_quotes_skipped(self, formatter):
        entries = [_entry("a", "a good day at work", 0.6, datetime(2025, 1, 13, 9))]
        themes = ThemeSet(words=["work"], evidence=[ThemeEvidence(theme="work", quotes=[])])
        digest = compose_digest(WEEK, rollup_week(entries), None, themes, entries, [])
        assert "•" not in formatter.format_text(digest)

    def test_no_mood(self, formatter):
        entries = [JournalEntry(id="a", text="unscored entry here", created_at=datetime(2025, 1, 14))]
        digest = compose_digest(WEEK, rollup_week(entries), None, ThemeSet(), entries, [])
        assert "Entries: 1. Mood: n/a." in formatter.format_text(digest)


class TestFormatMarkdown:
    def test_empty(self, formatter, empty_digest):
        md = formatter.format_markdown(empty_digest)
        assert md.startswith("# Weekly Digest: 2025-W03")
        assert "No entries yet this week." in md
        assert "## Themes" not in md

    def test_full(self, formatter, digest):
        md = formatter.format_markdown(digest)
        assert "*Jan 13 - Jan 19, 2025*" in md
        assert "## Themes" in md
        assert "- **Phrases:** bad day" in md
        assert '  - "everything fell apart"' in md
        assert "## Tracked" in md
        assert "> ↓ a very bad day, everything fell apart" in md
        assert "## Reflect" in md
        assert "- **Next tiny step:** " in md
