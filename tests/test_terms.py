"""Tests for lightnote.terms: tokenization and term rankings."""

from datetime import datetime

from lightnote.models import JournalEntry, SentimentScore
from lightnote.terms import STOP_WORDS, TermCount, low_mood_terms, tokenize, top_terms


def _entry(entry_id: str, text: str, score: float | None = None) -> JournalEntry:
    return JournalEntry(
        id=entry_id,
        text=text,
        created_at=datetime(2025, 1, 14, 20),
        sentiment=SentimentScore(compound=score) if score is not None else None,
    )


class TestTokenize:
    def test_drops_stop_words_and_punctuation(self):
        assert tokenize("I don't know, Charlotte & I went hiking!") == ["charlotte", "hiking"]

    def test_spelled_out_negation_collapses(self):
        assert tokenize("I do not care") == ["care"]
        assert tokenize("I cannot sleep") == ["sleep"]

    def test_curly_apostrophes(self):
        assert tokenize("I can’t sleep") == ["sleep"]

    def test_short_tokens_dropped(self):
        assert tokenize("go to gym ok") == ["gym"]

    def test_unicode_letters_and_digits(self):
        assert tokenize("Café crème brûlée") == ["café", "crème", "brûlée"]
        assert tokenize("ran 5km 2x") == ["ran", "5km"]

    def test_underscores_split(self):
        assert tokenize("garden_party") == ["garden", "party"]

    def test_empty(self):
        assert tokenize("") == []
        assert tokenize(None) == []

    def test_stop_word_list_is_broad(self):
        assert len(STOP_WORDS) > 300
        assert {"the", "really", "thing", "felt", "dont"} <= STOP_WORDS


class TestTopTerms:
    def test_ties_keep_first_seen_order(self):
        ranking = top_terms([_entry("a", "coffee garden"), _entry("b", "garden coffee")])
        assert ranking.words == [TermCount(term="coffee", count=2), TermCount(term="garden", count=2)]
        assert ranking.phrase_terms() == ["coffee garden", "garden coffee"]

    def test_count_order(self):
        ranking = top_terms([_entry("a", "rain rain garden rain garden dog")])
        assert ranking.word_terms() == ["rain", "garden", "dog"]
        assert ranking.words[0].count == 3

    def test_bigrams_do_not_cross_entries(self):
        ranking = top_terms([_entry("a", "alpha beta"), _entry("b", "gamma delta")])
        assert ranking.phrase_terms() == ["alpha beta", "gamma delta"]

    def test_bigrams_join_across_removed_stop_words(self):
        ranking = top_terms([_entry("a", "late and tired")])
        assert ranking.phrase_terms() == ["late tired"]

    def test_k_limits_results(self):
        text = " ".join(f"word{i}" for i in range(20))
        ranking = top_terms([_entry("a", text)], k=5)
        assert len(ranking.words) == 5
        assert len(ranking.phrases) == 5
        assert ranking.word_terms()[0] == "word0"

    def test_empty(self):
        ranking = top_terms([])
        assert ranking.words == []
        assert ranking.phrases == []


class TestLowMoodTerms:
    def test_only_low_entries(self):
        entries = [
            _entry("a", "deadline deadline stress", -0.6),
            _entry("b", "garden sunshine", 0.7),
            _entry("c", "deadline again", -0.2),
            _entry("d", "unscored rambling"),
        ]
        ranking = low_mood_terms(entries)
        assert ranking.word_terms() == ["deadline", "stress"]

    def test_threshold_is_inclusive_and_unscored_is_zero(self):
        entries = [_entry("a", "neutral musing"), _entry("b", "cheerful walk", 0.5)]
        assert low_mood_terms(entries, threshold=0.0).word_terms() == ["neutral", "musing"]

    def test_k_defaults_to_six(self):
        text = " ".join(f"term{i}" for i in range(10))
        assert len(low_mood_terms([_entry("a", text, -0.9)]).words) == 6
