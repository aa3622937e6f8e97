"""Heuristic term mining: tokenization, stop words, unigram/bigram rankings."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from lightnote.models import JournalEntry

MIN_TOKEN_LENGTH = 3

STOP_WORDS: frozenset[str] = frozenset(
    # pronouns & self references
    """
    i im id ill ive you youre youd youll youve your yours u we were weve our ours
    he hes she shes they theyre theyve them their theirs me my mine him his her
    hers ourselves yourself yourselves himself herself themselves myself itself
    someone something anything everything everyone anyone nobody nothing
    somebody anybody everybody
    """.split()
    # articles, determiners, connectives
    + """
    a an the this that these those same and or but so if than then because as
    while when where which who whom whose whether although though unless until
    since also too very such each every either neither both all any some most
    more other another own only even
    """.split()
    # prepositions
    + """
    of in on at for from by with about into over out up down to through between
    during before after under above below within without onto off across
    against along around behind beside besides beyond toward towards upon via
    """.split()
    # auxiliaries & modals
    + """
    is am are was be been being do does did doing done have has had having can
    could may might must shall should will would ought need needs needed let
    lets
    """.split()
    # high-frequency light verbs
    + """
    get gets got getting gotten make makes made making know knows knew known
    knowing think thinks thought thinking feel feels felt feeling want wants
    wanted wanting try tries tried trying seem seems seemed seeming go goes went
    gone going come comes came coming take takes took taken taking give gives
    gave given giving put puts putting keep keeps kept keeping start starts
    started starting say says said saying tell tells told telling see sees saw
    seen seeing look looks looked looking ask asks asked asking use uses used
    using work works worked working needing guess guessed mean means meant
    """.split()
    # discourse fillers, hedges, slang
    + """
    just really like kind sort maybe perhaps actually basically literally
    honestly probably possibly kinda sorta gonna wanna gotta yeah yes yep nope
    ok okay uh um hmm oh ah well anyway anyways lol pretty quite rather somehow
    somewhat definitely totally seriously
    """.split()
    # negation
    + """
    no not never dont doesnt didnt cant couldnt shouldnt wouldnt wont isnt arent
    wasnt werent hasnt havent hadnt mustnt neednt aint
    """.split()
    # time-ish & generic
    + """
    today yesterday tomorrow tonight now again already still time times day days
    week weeks month months year years morning afternoon evening night it its
    what whats how hows why there theres here heres soon later ago always often
    sometimes usually once twice ever lately recently
    """.split()
    # generic nouns & quantities
    + """
    thing things stuff way ways lot lots bit bits part parts much many few
    little less one two three first last next
    """.split()
)

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})
# anything that is not a letter, digit, whitespace or apostrophe
_NON_WORD_RE = re.compile(r"[^\w\s']|_")
_CONTRACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bdo\s*not\b"), "don't"),
    (re.compile(r"\bdoes\s+not\b"), "doesn't"),
    (re.compile(r"\bdid\s+not\b"), "didn't"),
    (re.compile(r"\bcan\s*not\b"), "can't"),
    (re.compile(r"\bwill\s+not\b"), "won't"),
    (re.compile(r"\bis\s+not\b"), "isn't"),
    (re.compile(r"\bare\s+not\b"), "aren't"),
    (re.compile(r"\bwas\s+not\b"), "wasn't"),
    (re.compile(r"\bcould\s+not\b"), "couldn't"),
    (re.compile(r"\bshould\s+not\b"), "shouldn't"),
    (re.compile(r"\bwould\s+not\b"), "wouldn't"),
]


class TermCount(BaseModel):
    term: str
    count: int


class TermRanking(BaseModel):
    """Top unigrams and adjacent bigrams, highest count first."""

    words: list[TermCount] = Field(default_factory=list)
    phrases: list[TermCount] = Field(default_factory=list)

    def word_terms(self) -> list[str]:
        return [w.term for w in self.words]

    def phrase_terms(self) -> list[str]:
        return [p.term for p in self.phrases]


def tokenize(text: str) -> list[str]:
    """Lowercase content tokens with punctuation, stop words and short words removed.

    Multi-word negations collapse to their contraction first ("do not" ->
    "dont") so both spellings hit the same stop word.
    """
    raw = (text or "").lower().translate(_APOSTROPHES)
    raw = _NON_WORD_RE.sub(" ", raw)
    for pattern, replacement in _CONTRACTIONS:
        raw = pattern.sub(replacement, raw)
    raw = raw.replace("'", "")
    return [
        token
        for token in raw.split()
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]


def term_counts(entries: Iterable[JournalEntry]) -> tuple[Counter[str], Counter[str]]:
    """Unigram and bigram counters in first-seen insertion order."""
    unigrams: Counter[str] = Counter()
    bigrams: Counter[str] = Counter()
    for entry in entries:
        tokens = tokenize(entry.text)
        for i, token in enumerate(tokens):
            unigrams[token] += 1
            if i < len(tokens) - 1:
                bigrams[f"{token} {tokens[i + 1]}"] += 1
    return unigrams, bigrams


def rank_counts(counter: Counter[str], k: int) -> list[TermCount]:
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counter.items(), key=lambda item: -item[1])
    return [TermCount(term=term, count=count) for term, count in ranked[:k]]


def top_terms(entries: Sequence[JournalEntry], k: int = 8) -> TermRanking:
    """Top-``k`` words and phrases across all entries' tokens."""
    unigrams, bigrams = term_counts(entries)
    return TermRanking(words=rank_counts(unigrams, k), phrases=rank_counts(bigrams, k))


def low_mood_terms(
    entries: Sequence[JournalEntry], threshold: float = -0.2, k: int = 6
) -> TermRanking:
    """Same ranking restricted to entries scoring at or below ``threshold``.

    Unscored entries count as 0.
    """
    low = [e for e in entries if (e.score if e.score is not None else 0.0) <= threshold]
    return top_terms(low, k)
